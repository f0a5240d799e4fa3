# src/flowstitch/core/canonical.py
"""Canonical JSON and the merged-graph fingerprint.

Canonical form is RFC 8785 (JCS) via the rfc8785 package: sorted keys, no
whitespace, one number encoding. Hashing that form gives a fingerprint that
does not move with key order, platform or Python version, so two merges of
the same subsections can be compared by a single string.

Node configuration is opaque, but it must still have a JSON form. Values
that YAML produces and JSON lacks are normalized first: datetimes become
UTC ISO strings, dates become ISO strings, bytes become base64 and Decimals
become strings. Non-finite numbers have no JSON encoding and are rejected
outright, and so are integers outside the +/-(2**53 - 1) range JSON numbers
carry exactly.
"""

from __future__ import annotations

import base64
import hashlib
import math
from collections.abc import Mapping
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import rfc8785

if TYPE_CHECKING:
    from flowstitch.core.graph import EdgeInfo, NodeInfo, WorkflowGraph

# Recorded next to every fingerprint so a future format change is detectable
CANONICAL_VERSION = "sha256-rfc8785-v1"


# Largest integer magnitude an IEEE-754 double (a JSON number) holds exactly
MAX_SAFE_INTEGER = 2**53 - 1


def _normalize_value(obj: Any) -> Any:
    """Convert one scalar to a JSON-safe primitive.

    Raises:
        ValueError: On NaN/Infinity (float or Decimal) or an unsafe integer
        TypeError: On a type with no JSON form
    """
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueError(f"Cannot canonicalize non-finite float: {obj}")
        return obj
    # bool is an int subclass and must pass through untouched
    if obj is None or isinstance(obj, str | bool):
        return obj
    if isinstance(obj, int):
        if abs(obj) > MAX_SAFE_INTEGER:
            raise ValueError(f"Cannot canonicalize integer outside +/-(2**53 - 1): {obj}")
        return obj

    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=UTC)
        return obj.astimezone(UTC).isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return {"__bytes__": base64.b64encode(obj).decode("ascii")}
    if isinstance(obj, Decimal):
        if not obj.is_finite():
            raise ValueError(f"Cannot canonicalize non-finite Decimal: {obj}")
        return str(obj)

    raise TypeError(f"Cannot canonicalize value of type {type(obj).__name__}: {obj!r}")


def normalize_for_canonical(data: Any) -> Any:
    """Recursively turn data into plain JSON values.

    Mappings (MappingProxyType included) become dicts with string keys,
    tuples and lists become lists, scalars go through _normalize_value.

    Raises:
        ValueError: On NaN, Infinity or an integer JSON cannot hold exactly
        TypeError: On a value with no JSON form
    """
    if isinstance(data, Mapping):
        return {str(key): normalize_for_canonical(value) for key, value in data.items()}
    if isinstance(data, list | tuple):
        return [normalize_for_canonical(item) for item in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """Serialize to RFC 8785 canonical JSON.

    Raises:
        ValueError: If obj contains a non-finite number or an unsafe integer
        TypeError: If obj contains a value JSON cannot represent
    """
    encoded: bytes = rfc8785.dumps(normalize_for_canonical(obj))
    return encoded.decode("utf-8")


def stable_hash(obj: Any) -> str:
    """SHA-256 hex digest of the canonical JSON of obj."""
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()


def _node_fingerprint(info: NodeInfo) -> dict[str, str]:
    return {"id": info.node_id, "type": info.node_type.value, "config": stable_hash(info.config)}


def _edge_fingerprint(edge: EdgeInfo) -> list[str | int]:
    return [edge.source, edge.source_port, edge.target, edge.target_port, edge.kind.value]


def compute_topology_hash(graph: WorkflowGraph) -> str:
    """Fingerprint a graph's nodes (id, type, config) and edges (endpoints, ports, kind).

    Both collections are sorted first, so insertion order does not affect
    the result. Synthesized edges hash like authored ones.
    """
    nodes = sorted((_node_fingerprint(info) for info in graph.nodes), key=lambda n: n["id"])
    edges = sorted((_edge_fingerprint(edge) for edge in graph.edges), key=lambda e: (str(e[0]), e[1], str(e[2]), e[3], str(e[4])))
    return stable_hash({"nodes": nodes, "edges": edges})
