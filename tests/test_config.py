from pathlib import Path

import pytest
from pydantic import ValidationError

from reflectql.config import DEFAULT_SKIP_METHODS, BuilderConfig, load_builder_config


def test_defaults() -> None:
    config = BuilderConfig()
    assert config.tag_key == "gql"
    assert config.auto_camel_case is True
    assert config.allow_shared_types is True
    assert config.skip_methods == DEFAULT_SKIP_METHODS


@pytest.mark.parametrize(
    "auto_camel_case,name,expected",
    [
        (True, "get_widget", "getWidget"),
        (True, "whoami", "whoami"),
        (True, "all_widgets", "allWidgets"),
        (False, "get_widget", "get_widget"),
    ],
)
def test_field_name(auto_camel_case: bool, name: str, expected: str) -> None:
    assert BuilderConfig(auto_camel_case=auto_camel_case).field_name(name) == expected


def test_load_none_returns_defaults() -> None:
    assert load_builder_config(None) == BuilderConfig()


def test_load_empty_file_returns_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("", encoding="utf-8")
    assert load_builder_config(config_file) == BuilderConfig()


def test_load_values(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "tag_key: graphql\nauto_camel_case: false\nskip_methods:\n  - save\n  - delete\n",
        encoding="utf-8",
    )
    config = load_builder_config(config_file)
    assert config.tag_key == "graphql"
    assert config.auto_camel_case is False
    assert config.allow_shared_types is True
    assert config.skip_methods == frozenset({"save", "delete"})


def test_load_rejects_non_mapping_root(tmp_path: Path) -> None:
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- tag_key\n- gql\n", encoding="utf-8")
    with pytest.raises(TypeError, match="must be a mapping"):
        load_builder_config(config_file)


def test_load_rejects_unknown_keys(tmp_path: Path) -> None:
    config_file = tmp_path / "unknown.yaml"
    config_file.write_text("tag_key: gql\nnaming: camelCase\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_builder_config(config_file)


def test_empty_tag_key_is_rejected() -> None:
    with pytest.raises(ValidationError, match="tag_key must not be empty"):
        BuilderConfig(tag_key="  ")


def test_config_is_frozen() -> None:
    config = BuilderConfig()
    with pytest.raises(ValidationError):
        config.tag_key = "other"  # type: ignore[misc]
