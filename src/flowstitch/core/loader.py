# src/flowstitch/core/loader.py
"""Subsection and binding-list loading.

Artifacts are YAML or JSON documents (JSON is parsed by the YAML loader).
Document shape is validated with Pydantic; every problem is converted into
a SubsectionLoadError so malformed input never reaches the merge engine.

Subsection document:
    name: checkout               # optional, defaults to the file stem
    nodes:
      - {id: start, type: trigger}
      - {id: charge, type: action, name: Charge card, parameters: {...}}
    connections:                 # list form ...
      - {source: start, target: charge}
      - {source: charge, target: notify, kind: error}
    boundary:
      imports: [{name: raw, node: start, port: 0}]
      exports: [{name: done, node: charge}]

``connections`` may instead use the n8n mapping form, keyed by source node:
    connections:
      start: {main: [[{node: charge, index: 0}]]}
where the outer list position is the source output port and ``index`` the
target input port.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError, ValidationInfo, field_validator, model_validator

from flowstitch.contracts.enums import EdgeKind, NodeType
from flowstitch.contracts.errors import SubsectionLoadError
from flowstitch.contracts.types import PortName, SubsectionName
from flowstitch.core.canonical import canonical_json, normalize_for_canonical
from flowstitch.core.graph import NAMESPACE_SEPARATOR, Binding, BoundaryContract, Port, Subsection, WorkflowGraph
from flowstitch.core.logging import get_logger

logger = get_logger(__name__)

SUBSECTION_SUFFIXES = (".yaml", ".yml", ".json")


# =============================================================================
# Document schema
# =============================================================================


def _check_identifier(value: str, what: str) -> str:
    if NAMESPACE_SEPARATOR in value:
        raise ValueError(f"{what} '{value}' must not contain '{NAMESPACE_SEPARATOR}'")
    return value


class NodeRecord(BaseModel):
    """One node entry. Unknown keys (n8n position, typeVersion, ...) are ignored."""

    model_config = {"frozen": True, "extra": "ignore"}

    id: str = Field(min_length=1)
    type: NodeType
    name: str | None = None
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("parameters", "config"),
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return _check_identifier(v, "Node id")

    @field_validator("parameters", mode="before")
    @classmethod
    def empty_parameters(cls, v: Any) -> Any:
        return {} if v is None else v


class ConnectionRecord(BaseModel):
    """One edge entry in list form."""

    model_config = {"frozen": True, "extra": "forbid"}

    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    source_port: int = Field(default=0, ge=0, validation_alias=AliasChoices("source_port", "sourcePort"))
    target_port: int = Field(default=0, ge=0, validation_alias=AliasChoices("target_port", "targetPort"))
    kind: EdgeKind = EdgeKind.MAIN


class MappedTarget(BaseModel):
    """Target entry of the n8n connections mapping."""

    model_config = {"frozen": True, "extra": "ignore"}

    node: str = Field(min_length=1)
    index: int = Field(default=0, ge=0)


# {source node: {edge kind: [[targets of output 0], [targets of output 1], ...]}}
MappedConnections = dict[str, dict[EdgeKind, list[list[MappedTarget]]]]


class PortRecord(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1)
    node: str = Field(min_length=1)
    port: int = Field(default=0, ge=0)


class BoundaryRecord(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    imports: list[PortRecord] = Field(default_factory=list)
    exports: list[PortRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_port_names(self) -> BoundaryRecord:
        for direction, ports in (("import", self.imports), ("export", self.exports)):
            seen: set[str] = set()
            for port in ports:
                if port.name in seen:
                    raise ValueError(f"duplicate {direction} port name '{port.name}'")
                seen.add(port.name)
        return self


class SubsectionDocument(BaseModel):
    """A complete subsection artifact."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str | None = Field(default=None, min_length=1)
    nodes: list[NodeRecord]
    connections: list[ConnectionRecord] | MappedConnections = Field(default_factory=list)
    boundary: BoundaryRecord = Field(default_factory=BoundaryRecord)

    @field_validator("connections", "boundary", mode="before")
    @classmethod
    def empty_section_is_default(cls, v: Any, info: ValidationInfo) -> Any:
        # A bare "connections:" key parses as None
        if v is None:
            return [] if info.field_name == "connections" else {}
        return v

    @model_validator(mode="after")
    def validate_references(self) -> SubsectionDocument:
        ids: set[str] = set()
        for node in self.nodes:
            if node.id in ids:
                raise ValueError(f"duplicate node id '{node.id}'")
            ids.add(node.id)
        for port in [*self.boundary.imports, *self.boundary.exports]:
            if port.node not in ids:
                raise ValueError(f"boundary port '{port.name}' references unknown node '{port.node}'")
        return self


class BindingRecord(BaseModel):
    """One binding entry; accepts snake_case and camelCase keys."""

    model_config = {"frozen": True, "extra": "forbid"}

    export_subsection: str = Field(min_length=1, validation_alias=AliasChoices("export_subsection", "exportSubsection"))
    export_port: str = Field(min_length=1, validation_alias=AliasChoices("export_port", "exportPort"))
    import_subsection: str = Field(min_length=1, validation_alias=AliasChoices("import_subsection", "importSubsection"))
    import_port: str = Field(min_length=1, validation_alias=AliasChoices("import_port", "importPort"))


# =============================================================================
# Document -> model conversion
# =============================================================================


def _format_validation_error(error: ValidationError) -> list[str]:
    details = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        details.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return details


def _resolve_mapped_node(key: str, ids: set[str], names: Mapping[str, str]) -> str:
    # n8n keys connections by display name; ids win when both match
    if key in ids:
        return key
    return names.get(key, key)


def _add_connections(graph: WorkflowGraph, document: SubsectionDocument) -> None:
    if isinstance(document.connections, list):
        for record in document.connections:
            graph.add_edge(
                record.source,
                record.target,
                source_port=record.source_port,
                target_port=record.target_port,
                kind=record.kind,
            )
        return

    ids = {node.id for node in document.nodes}
    names = {node.name: node.id for node in document.nodes if node.name}
    for source_key, groups in document.connections.items():
        source = _resolve_mapped_node(source_key, ids, names)
        for kind, outputs in groups.items():
            for source_port, targets in enumerate(outputs):
                for target in targets:
                    graph.add_edge(
                        source,
                        _resolve_mapped_node(target.node, ids, names),
                        source_port=source_port,
                        target_port=target.index,
                        kind=kind,
                    )


def _json_parameters(node: NodeRecord, path: Path | None) -> dict[str, Any]:
    """Normalize a node's parameters to plain JSON values (YAML dates become ISO strings).

    Raises:
        SubsectionLoadError: If the parameters have no canonical JSON form
    """
    try:
        parameters: dict[str, Any] = normalize_for_canonical(node.parameters)
        canonical_json(parameters)
    except (ValueError, TypeError) as e:
        raise SubsectionLoadError(
            f"node '{node.id}' has parameters that cannot be represented as JSON",
            path=path,
            details=[str(e)],
        ) from e
    return parameters


def parse_subsection(
    document: Any,
    *,
    default_name: str | None = None,
    path: Path | None = None,
) -> Subsection:
    """Validate a raw subsection document and build a Subsection.

    Dangling connections (endpoints not among the nodes) are NOT load
    errors: they are carried into the graph and reported by the validator.

    Args:
        document: Parsed YAML/JSON content
        default_name: Name used when the document has none (usually the file stem)
        path: Source file, for error messages

    Raises:
        SubsectionLoadError: If the document is malformed
    """
    if not isinstance(document, Mapping):
        raise SubsectionLoadError("subsection document must be a mapping", path=path)
    try:
        parsed = SubsectionDocument.model_validate(document)
    except ValidationError as e:
        raise SubsectionLoadError("invalid subsection document", path=path, details=_format_validation_error(e)) from e

    name = parsed.name or default_name
    if not name:
        raise SubsectionLoadError("subsection has no name", path=path)
    if NAMESPACE_SEPARATOR in name:
        raise SubsectionLoadError(f"subsection name '{name}' must not contain '{NAMESPACE_SEPARATOR}'", path=path)

    graph = WorkflowGraph(name=name)
    for node in parsed.nodes:
        graph.add_node(
            node.id,
            node_type=node.type,
            name=node.name,
            config=_json_parameters(node, path),
            subsection=name,
            local_id=node.id,
        )
    _add_connections(graph, parsed)

    boundary = BoundaryContract(
        imports=tuple(Port(name=PortName(p.name), node=p.node, port=p.port) for p in parsed.boundary.imports),
        exports=tuple(Port(name=PortName(p.name), node=p.node, port=p.port) for p in parsed.boundary.exports),
    )
    subsection = Subsection(name=SubsectionName(name), graph=graph, boundary=boundary)
    logger.debug(
        "subsection_loaded",
        subsection=name,
        nodes=graph.node_count,
        edges=graph.edge_count,
        imports=len(boundary.imports),
        exports=len(boundary.exports),
        path=str(path) if path is not None else None,
    )
    return subsection


def _read_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SubsectionLoadError("file does not exist", path=path) from None
    except OSError as e:
        raise SubsectionLoadError(f"cannot read file: {e.strerror}", path=path) from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        problem = getattr(e, "problem", None)
        raise SubsectionLoadError("malformed YAML/JSON", path=path, details=[str(problem or e)]) from e


def load_subsection(path: Path) -> Subsection:
    """Load one subsection artifact; its name defaults to the file stem."""
    return parse_subsection(_read_document(path), default_name=path.stem, path=path)


def load_subsections(path: Path) -> list[Subsection]:
    """Load the ordered subsection set.

    Args:
        path: Either a directory (every *.yaml/*.yml/*.json file, sorted by
            file name), a manifest file with a ``subsections`` list of inline
            documents or relative paths, or a single subsection file.

    Raises:
        SubsectionLoadError: If any artifact is missing or malformed
    """
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUBSECTION_SUFFIXES)
        if not files:
            raise SubsectionLoadError("directory contains no subsection artifacts", path=path)
        return [load_subsection(file) for file in files]

    document = _read_document(path)
    if not (isinstance(document, Mapping) and "subsections" in document):
        return [parse_subsection(document, default_name=path.stem, path=path)]

    entries = document["subsections"]
    if not isinstance(entries, list) or not entries:
        raise SubsectionLoadError("'subsections' must be a non-empty list", path=path)
    subsections = []
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            subsections.append(load_subsection(path.parent / entry))
        elif isinstance(entry, Mapping):
            subsections.append(parse_subsection(entry, path=path))
        else:
            raise SubsectionLoadError(f"subsections[{index}] must be a path or an inline document", path=path)
    return subsections


def parse_bindings(document: Any, *, path: Path | None = None) -> list[Binding]:
    """Validate a raw binding list (a list, or a mapping with a ``bindings`` list).

    Raises:
        SubsectionLoadError: If the binding list is malformed
    """
    if isinstance(document, Mapping):
        document = document.get("bindings")
    if document is None:
        return []
    if not isinstance(document, list):
        raise SubsectionLoadError("binding list must be a list or a mapping with a 'bindings' list", path=path)

    bindings = []
    details = []
    for index, entry in enumerate(document):
        try:
            record = BindingRecord.model_validate(entry)
        except ValidationError as e:
            details.extend(f"bindings[{index}].{detail}" for detail in _format_validation_error(e))
            continue
        bindings.append(
            Binding(
                export_subsection=record.export_subsection,
                export_port=record.export_port,
                import_subsection=record.import_subsection,
                import_port=record.import_port,
            )
        )
    if details:
        raise SubsectionLoadError("invalid binding list", path=path, details=details)
    return bindings


def load_bindings(path: Path) -> list[Binding]:
    """Load a binding list file."""
    bindings = parse_bindings(_read_document(path), path=path)
    logger.debug("bindings_loaded", count=len(bindings), path=str(path))
    return bindings
