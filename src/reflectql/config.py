from pathlib import Path
from typing import Any, cast

import yaml
from caseconverter import camelcase
from pydantic import BaseModel, ConfigDict, Field, field_validator

from reflectql import log

DEFAULT_SKIP_METHODS = frozenset(
    {
        "graphql_type_name",
        "table_name",
        "table_names",
        "before_create",
        "after_create",
        "before_update",
        "after_update",
        "before_delete",
        "after_delete",
        "before_save",
        "after_save",
        "after_find",
    }
)


class BuilderConfig(BaseModel):
    """Settings of a schema build."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tag_key: str = "gql"
    auto_camel_case: bool = True
    allow_shared_types: bool = True
    skip_methods: frozenset[str] = Field(default=DEFAULT_SKIP_METHODS)

    @field_validator("tag_key")
    @classmethod
    def validate_tag_key(cls, tag_key: str) -> str:
        if not tag_key.strip():
            raise ValueError("tag_key must not be empty")
        return tag_key

    def field_name(self, name: str) -> str:
        """Schema field name of a method or property."""
        if self.auto_camel_case:
            return str(camelcase(name))
        return name


def load_builder_config(config_path: Path | None) -> BuilderConfig:
    """
    Load and validate a builder configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None for defaults.

    Returns:
        A validated BuilderConfig.

    Raises:
        OSError: If the file cannot be read.
        yaml.YAMLError: If the file is not valid YAML.
        TypeError: If the YAML root is not a mapping.
        ValidationError: If validation against BuilderConfig fails.
    """
    if config_path is None:
        log.debug("No builder config provided")
        return BuilderConfig()

    raw: Any
    with config_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    log.debug("Loaded builder config from %s", config_path)

    # Treat empty file or explicit YAML null as "defaults"
    if raw is None or raw == {}:
        return BuilderConfig()

    if not isinstance(raw, dict):
        raise TypeError(f"Builder config root must be a mapping (YAML object), got {type(raw).__name__}")

    return BuilderConfig.model_validate(cast(dict[str, Any], raw))
