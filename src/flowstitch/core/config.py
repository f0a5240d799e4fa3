# src/flowstitch/core/config.py
"""
Configuration schema and loading for flowstitch.

Pydantic models define and validate the schema; Dynaconf merges the optional
settings file with FLOWSTITCH_* environment variables. All models are frozen.

Example YAML:
    validation:
      orphan_severity: error
    layout:
      min_label_width: 16
      show_ports: false
    logging:
      level: INFO
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from flowstitch.contracts.enums import Severity

ENV_PREFIX = "FLOWSTITCH"


class ValidationSettings(BaseModel):
    """Validator policy.

    Orphan nodes may be staged on purpose for future wiring, so they are
    warnings by default. Workflows where an unreachable node always means a
    forgotten wiring step can promote them to errors.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    orphan_severity: Severity = Field(
        default=Severity.WARNING,
        description="Severity of OrphanNode diagnostics (warning or error)",
    )


class LayoutSettings(BaseModel):
    """ASCII diagram rendering options."""

    model_config = {"frozen": True, "extra": "forbid"}

    min_label_width: int = Field(
        default=12,
        ge=1,
        le=200,
        description="Minimum width of the id inside a node label",
    )
    show_ports: bool = Field(
        default=True,
        description="Annotate edges whose ports are not 0>0",
    )
    header: bool = Field(
        default=True,
        description="Emit the 'workflow <name>: N nodes, M edges' header line",
    )


class LoggingSettings(BaseModel):
    """Logging defaults; CLI flags take precedence."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Root log level",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class FlowstitchSettings(BaseModel):
    """Top-level settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path | None = None) -> FlowstitchSettings:
    """Load settings from a YAML file with environment variable overrides.

    Sources, highest precedence first:
    1. Environment variables (FLOWSTITCH_*)
    2. Config file, when given
    3. Schema defaults

    Environment variable format: FLOWSTITCH_VALIDATION__ORPHAN_SEVERITY for nested keys.

    Args:
        config_path: Path to YAML configuration file, or None for defaults + environment

    Returns:
        Validated FlowstitchSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENV_PREFIX,
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # The CLI loads .env itself
        merge_enabled=True,  # Deep merge nested dicts
    )

    # Top-level keys come back uppercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return FlowstitchSettings(**raw_config)


def _lower_keys(value: object) -> object:
    """Lowercase nested mapping keys (environment overrides arrive uppercase)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value
