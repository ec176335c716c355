import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from reflectql import __version__, log
from reflectql.cli import cli
from reflectql.logger import ReflectQLLogger, get_logger

QUERY = "tests.sample_app:Query"
MUTATIONS = "tests.sample_app:mutations"


@pytest.fixture(scope="module")
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_export_sdl_to_stdout(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["export", "sdl", "-q", QUERY, "-m", MUTATIONS])
    assert result.exit_code == 0, result.output
    assert "type Query" in result.output
    assert "getWidget(id: String!): Widget" in result.output
    assert "createWidget(name: String!, tags: [String]): Widget" in result.output


def test_export_sdl_to_file(runner: CliRunner, tmp_path: Path) -> None:
    out = tmp_path / "nested" / "schema.graphql"
    result = runner.invoke(cli, ["export", "sdl", "--query", QUERY, "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert out.exists()
    content = out.read_text(encoding="utf-8")
    assert "widgets: [Widget]" in content
    assert "type Mutation" not in content


def test_export_sdl_with_config(runner: CliRunner, tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("auto_camel_case: false\n", encoding="utf-8")
    result = runner.invoke(cli, ["export", "sdl", "-q", QUERY, "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert "get_widget(id: String!): Widget" in result.output


def test_invalid_config_exits_with_error(runner: CliRunner, tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("unknown_option: true\n", encoding="utf-8")
    result = runner.invoke(cli, ["export", "sdl", "-q", QUERY, "--config", str(config)])
    assert result.exit_code == 1


def test_build_failure_exits_with_error(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["export", "sdl", "-q", "tests.sample_app:broken_query"])
    assert result.exit_code == 1


@pytest.mark.parametrize(
    "target",
    ["tests.sample_app", "tests.sample_app:", "tests.missing_module:Query", "tests.sample_app:Missing"],
)
def test_invalid_import_target(runner: CliRunner, target: str) -> None:
    result = runner.invoke(cli, ["export", "sdl", "-q", target])
    assert result.exit_code == 2


def test_query_is_required(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["export", "sdl"])
    assert result.exit_code == 2


def test_stats(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["stats", "-q", QUERY, "-m", MUTATIONS])
    assert result.exit_code == 0, result.output
    assert "root=2" in result.output
    assert "object=1" in result.output
    assert "input_object=0" in result.output


def test_log_file(runner: CliRunner, tmp_path: Path) -> None:
    log_file = tmp_path / "build.log"
    result = runner.invoke(cli, ["--log-level", "INFO", "--log-file", str(log_file), "export", "sdl", "-q", QUERY])
    assert result.exit_code == 0, result.output
    assert "Successfully built the GraphQL schema." in log_file.read_text(encoding="utf-8")

    for handler in [h for h in log.handlers if isinstance(h, logging.FileHandler)]:
        log.removeHandler(handler)
        handler.close()


def test_package_logger_class_does_not_leak() -> None:
    assert isinstance(log, ReflectQLLogger)
    assert get_logger() is log
    assert not isinstance(logging.getLogger("reflectql.tests.other"), ReflectQLLogger)
