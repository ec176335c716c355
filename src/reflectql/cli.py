import importlib
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import rich_click as click
import yaml
from graphql import GraphQLSchema, print_schema
from pydantic import ValidationError
from rich.traceback import install

from reflectql import __version__, log
from reflectql.config import load_builder_config
from reflectql.errors import SchemaBuildError
from reflectql.schema.builder import SchemaBuilder
from reflectql.schema.graphql_type import count_types


def import_target(target: str) -> Any:
    """
    Resolve a ``module:attribute`` import target.

    Raises:
        click.BadParameter: If the target is malformed or cannot be imported
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise click.BadParameter(f"Expected 'module:attribute', got '{target}'")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import module '{module_name}': {e}") from e

    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise click.BadParameter(f"Module '{module_name}' has no attribute '{attribute}'") from e
    return obj


class ImportTargetOption(click.Option):
    def process_value(self, ctx: click.Context, value: Any) -> Any:
        value = super().process_value(ctx, value)
        if value is None:
            return None
        return import_target(value)


def root_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--subscription",
        cls=ImportTargetOption,
        help="Subscription root as 'module:attribute'",
    )(func)
    func = click.option(
        "--mutation",
        "-m",
        cls=ImportTargetOption,
        help="Mutation root as 'module:attribute'",
    )(func)
    func = click.option(
        "--query",
        "-q",
        cls=ImportTargetOption,
        required=True,
        help="Query root as 'module:attribute' (an object, a class or a dict of functions)",
    )(func)
    return func


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file containing the builder configuration",
)


optional_output_option = click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    required=False,
    help="Output file",
)


def build_or_exit(query: Any, mutation: Any, subscription: Any, config_path: Path | None) -> GraphQLSchema:
    try:
        config = load_builder_config(config_path)
    except (ValidationError, TypeError, yaml.YAMLError) as e:
        log.error(f"Invalid builder configuration: {e}")
        sys.exit(1)

    try:
        builder = SchemaBuilder(config)
        builder.with_query(query).with_mutation(mutation).with_subscription(subscription)
        return builder.build_schema()
    except SchemaBuildError as e:
        log.error(f"Schema build failed: {e}")
        log.hint("Run with --log-level DEBUG to trace every type, field and method decision")
        sys.exit(1)


@click.group(context_settings={"auto_envvar_prefix": "reflectql"})
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Log level",
    show_default=True,
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Log file",
)
@click.version_option(__version__)
def cli(log_level: str, log_file: Path | None) -> None:
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(logging.Formatter("%(asctime)s:%(levelname)s:%(message)s"))
        log.addHandler(file_handler)

    log.setLevel(log_level.upper())
    if log_level.upper() == "DEBUG":
        _ = install(show_locals=True)


@click.group()
def export() -> None:
    """Export commands."""
    pass


@export.command(name="sdl")
@root_options
@config_option
@optional_output_option
def export_sdl(
    query: Any, mutation: Any, subscription: Any, config_path: Path | None, output: Path | None
) -> None:
    """Build a schema from Python definitions and print it as SDL."""
    schema = build_or_exit(query, mutation, subscription, config_path)
    sdl = print_schema(schema)

    if output:
        log.key_value("Output file", output)
        output.parent.mkdir(parents=True, exist_ok=True)
        _ = output.write_text(sdl + "\n", encoding="utf-8")
        log.success(f"Schema written to {output}")
    else:
        click.echo(sdl)


@click.command()
@root_options
@config_option
def stats(query: Any, mutation: Any, subscription: Any, config_path: Path | None) -> None:
    """Get stats of a schema built from Python definitions."""
    schema = build_or_exit(query, mutation, subscription, config_path)
    type_counts = count_types(schema)

    log.rule("GraphQL Schema Type Counts")
    log.print_dict(type_counts)
    click.echo(" ".join(f"{kind}={count}" for kind, count in type_counts.items()))


cli.add_command(export)
cli.add_command(stats)

if __name__ == "__main__":
    cli()
