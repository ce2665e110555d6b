"""Command line interface entry point."""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from pathlib import Path

import click

from serde_struct_reconciler.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    MergeStrategy,
    ReconcileSettings,
    load_configuration,
    validate_root_name,
    write_placeholder_configuration,
)
from serde_struct_reconciler.failures import PACKAGE_LOGGER
from serde_struct_reconciler.run_execution import RunOutcome, execute_evolution_runs

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    """Custom CLI error."""


class _ClickEchoHandler(logging.Handler):
    """Routes log records to stderr through click."""

    def emit(self, record: logging.LogRecord) -> None:
        click.echo(self.format(record), err=True)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="serde-struct-reconciler")
def cli() -> None:
    """Infer serde structs from JSON and reconcile them with existing Rust source."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML reconciliation configuration to write",
)
def generate_config(output_path: str) -> None:
    """Generate a YAML reconciliation configuration with the default values."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="generate")
@click.option(
    "-i",
    "--input",
    "input_paths",
    multiple=True,
    type=click.Path(path_type=str),
    help="JSON input file; repeat to evolve through several samples (stdin when omitted)",
)
@click.option(
    "-e",
    "--existing",
    "existing_path",
    required=False,
    type=click.Path(path_type=str),
    help="Existing Rust source file to extend",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    required=False,
    type=click.Path(path_type=str),
    help="Output file (stdout when omitted)",
)
@click.option(
    "-n",
    "--name",
    "root_name",
    required=False,
    help="Name of the root struct [default: RootStruct]",
)
@click.option(
    "-s",
    "--merge-strategy",
    "merge_strategy",
    required=False,
    type=click.Choice([strategy.value for strategy in MergeStrategy]),
    help="Strategy for merging incompatible shapes [default: optional]",
)
@click.option(
    "--config",
    "config_path",
    required=False,
    type=click.Path(path_type=str),
    help="Path to a YAML reconciliation configuration file",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log merge decisions to stderr.")
def generate(  # pylint: disable=too-many-arguments
    input_paths: tuple[str, ...],
    existing_path: str | None,
    output_path: str | None,
    root_name: str | None,
    merge_strategy: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Generate or extend serde structs from JSON samples."""
    _configure_logging(verbose)
    try:
        settings = load_configuration(config_path) if config_path else ReconcileSettings()
        if root_name is not None:
            settings = replace(settings, root_name=validate_root_name(root_name, "--name"))
    except ConfigurationError as exc:
        raise CliError(str(exc)) from exc
    if merge_strategy is not None:
        settings = replace(settings, strategy=MergeStrategy.parse(merge_strategy))

    json_texts = [_read_text(path) for path in input_paths]
    if not json_texts:
        json_texts = [click.get_text_stream("stdin").read()]
    existing_source = _read_text(existing_path) if existing_path else None
    outcome = execute_evolution_runs(json_texts, existing_source, settings)
    source_text = _source_or_raise(outcome)
    if output_path:
        try:
            Path(output_path).write_text(source_text, encoding="utf-8")
        except OSError as exc:
            raise CliError(f"Failed to write output file {output_path}: {exc}") from exc
        click.echo(str(Path(output_path).resolve()))
    else:
        click.echo(source_text, nl=False)


def _configure_logging(verbose: bool) -> None:
    for handler in list(PACKAGE_LOGGER.handlers):
        if isinstance(handler, _ClickEchoHandler):
            PACKAGE_LOGGER.removeHandler(handler)
    handler = _ClickEchoHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    PACKAGE_LOGGER.addHandler(handler)
    PACKAGE_LOGGER.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CliError(f"Failed to read {path}: {exc}") from exc


def _source_or_raise(outcome: RunOutcome) -> str:
    failure = outcome.failure
    if failure is None:
        return outcome.source_text or ""
    location = (
        f" ({failure.location})"
        if failure.location and failure.location not in failure.message
        else ""
    )
    raise CliError(f"{failure.kind.value}: {failure.message}{location}")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
