"""Configuration models for treemd.

Configuration is optional. It is read from ~/.config/treemd/config.yaml when
that file exists, and individual values can be overridden with TREEMD_*
environment variables:

- TREEMD_OUTPUT_FORMAT: Override output.format
- TREEMD_PARSER_RESOLVE_LINKS: Override parser.resolve_links
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from treemd.query.output import OutputFormat


DEFAULT_CONFIG_PATH = Path("~/.config/treemd/config.yaml")


class OutputConfig(BaseModel):
    """Settings for rendering query results."""

    format: str = Field(
        default="plain",
        description="Default output format (plain, json, json-pretty, jsonl, markdown)"
    )

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Normalize format aliases to their canonical name."""
        return OutputFormat.parse(v).value

    @property
    def output_format(self) -> OutputFormat:
        return OutputFormat(self.format)

    model_config = {"frozen": True}


class ParserConfig(BaseModel):
    """Settings for building documents."""

    resolve_links: bool = Field(
        default=True,
        description="Resolve relative link targets against the file's directory"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for treemd."""

    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")
    parser: ParserConfig = Field(default_factory=ParserConfig, description="Parser settings")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """
        Load configuration from a YAML file with environment overrides.

        A missing file is not an error: defaults apply, then any TREEMD_*
        environment variables.

        Args:
            path: Path to config.yaml. Defaults to ~/.config/treemd/config.yaml

        Returns:
            Validated Config instance

        Raises:
            ValueError: If the YAML is malformed or validation fails
        """
        if path is None:
            path = DEFAULT_CONFIG_PATH.expanduser()

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            if not isinstance(data, dict):
                raise ValueError(f"Configuration must be a mapping: {path}")

        return cls(**_apply_env_overrides(data))

    model_config = {"frozen": True}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply TREEMD_SECTION_KEY environment variables to configuration data.

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    data = dict(data)
    output = dict(data.get("output") or {})
    parser = dict(data.get("parser") or {})

    if env_format := os.getenv("TREEMD_OUTPUT_FORMAT"):
        output["format"] = env_format

    if env_resolve := os.getenv("TREEMD_PARSER_RESOLVE_LINKS"):
        parser["resolve_links"] = env_resolve

    data["output"] = output
    data["parser"] = parser
    return data
