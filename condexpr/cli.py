"""
condexpr Command-Line Interface

Evaluates condition-expression trees against JSON documents.

Input files are JSON. Expression trees use the tree document form accepted by
:func:`condexpr.expression.nodes.node_from_dict`; documents and placeholder
values use typed JSON (``{"$binary": "..."}``, ``{"$set": [...]}``).
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from condexpr import __version__
from condexpr.core.config_manager import ConfigManager, CondExprConfig
from condexpr.core.logging_config import setup_logging, log_with_context
from condexpr.expression.evaluator import ConditionEvaluator
from condexpr.expression.exceptions import ConditionExpressionError
from condexpr.expression.nodes import node_from_dict
from condexpr.expression.values import decode_value, encode_value

logger = logging.getLogger("condexpr.cli")

EXIT_TRUE = 0
EXIT_FALSE = 1
EXIT_ERROR = 2

_input_file = click.Path(exists=True, dir_okay=False, path_type=Path)


def _common_options(command):
    """Options shared by every evaluating command."""
    options = [
        click.option(
            "--expression", "-e",
            "expression_file",
            required=True,
            type=_input_file,
            help="Expression tree (JSON tree document)",
        ),
        click.option(
            "--values", "-v",
            "values_file",
            type=_input_file,
            help="Placeholder values (JSON object)",
        ),
        click.option(
            "--aliases", "-a",
            "aliases_file",
            type=_input_file,
            help="Field name aliases (JSON object)",
        ),
        click.option(
            "--config", "-c",
            "config_file",
            type=_input_file,
            help="Path to configuration file",
        ),
        click.option(
            "--log-level",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
            help="Logging level (overrides configuration)",
        ),
    ]
    for option in reversed(options):
        command = option(command)
    return command


@click.group()
@click.version_option(version=__version__, prog_name="condexpr")
@click.pass_context
def cli(ctx):
    """
    condexpr - condition expressions for document data

    Check documents against parsed condition expressions.
    """
    ctx.ensure_object(dict)


@cli.command()
@_common_options
@click.option(
    "--document", "-d",
    "document_file",
    required=True,
    type=_input_file,
    help="Document to evaluate against (JSON object)",
)
def evaluate(
    expression_file: Path,
    values_file: Optional[Path],
    aliases_file: Optional[Path],
    config_file: Optional[Path],
    log_level: Optional[str],
    document_file: Path,
):
    """
    Evaluate an expression against one document.

    Prints "true" or "false". Exit code is 0 when the condition holds,
    1 when it does not and 2 on errors.

    Examples:
        condexpr evaluate -e tree.json -d item.json -v values.json
    """
    evaluator, tree, placeholders, aliases = _prepare(
        expression_file, values_file, aliases_file, config_file, log_level
    )
    document = _load_json(document_file, "document")
    if not isinstance(document, dict):
        click.echo("[ERROR] Document file must contain a JSON object", err=True)
        sys.exit(EXIT_ERROR)

    try:
        result = evaluator.evaluate(tree, document, placeholders, aliases)
    except ConditionExpressionError as e:
        _fail(e)

    click.echo("true" if result else "false")
    sys.exit(EXIT_TRUE if result else EXIT_FALSE)


@cli.command(name="filter")
@_common_options
@click.option(
    "--documents", "-d",
    "documents_file",
    required=True,
    type=_input_file,
    help="Documents to filter (JSON array of objects)",
)
def filter_command(
    expression_file: Path,
    values_file: Optional[Path],
    aliases_file: Optional[Path],
    config_file: Optional[Path],
    log_level: Optional[str],
    documents_file: Path,
):
    """
    Print the documents for which an expression holds, as a JSON array.

    Examples:
        condexpr filter -e tree.json -d items.json -v values.json
    """
    evaluator, tree, placeholders, aliases = _prepare(
        expression_file, values_file, aliases_file, config_file, log_level
    )
    documents = _load_json(documents_file, "documents")
    if not isinstance(documents, list) or not all(isinstance(d, dict) for d in documents):
        click.echo("[ERROR] Documents file must contain a JSON array of objects", err=True)
        sys.exit(EXIT_ERROR)

    try:
        matches = list(evaluator.filter_documents(tree, documents, placeholders, aliases))
    except ConditionExpressionError as e:
        _fail(e)

    click.echo(json.dumps([encode_value(document) for document in matches], indent=2))


def _prepare(
    expression_file: Path,
    values_file: Optional[Path],
    aliases_file: Optional[Path],
    config_file: Optional[Path],
    log_level: Optional[str],
):
    config = _load_config(config_file, log_level)
    setup_logging(
        level=config.logging.level,
        format_type=config.logging.format,
        log_file=config.logging.file,
        rotation_size=config.logging.rotation_size,
        rotation_count=config.logging.rotation_count,
    )

    try:
        tree = node_from_dict(
            _load_json(expression_file, "expression", decode=False),
            max_depth=config.evaluator.max_depth,
        )
    except ConditionExpressionError as e:
        _fail(e)

    placeholders = _load_json(values_file, "values") if values_file else {}
    aliases = _load_json(aliases_file, "aliases", decode=False) if aliases_file else {}
    for name, table in (("values", placeholders), ("aliases", aliases)):
        if not isinstance(table, dict):
            click.echo(f"[ERROR] {name.capitalize()} file must contain a JSON object", err=True)
            sys.exit(EXIT_ERROR)

    return ConditionEvaluator(config.evaluator), tree, placeholders, aliases


def _load_config(config_file: Optional[Path], log_level: Optional[str]) -> CondExprConfig:
    overrides: Dict[str, Any] = {}
    if log_level:
        overrides["logging"] = {"level": log_level.upper()}

    try:
        return ConfigManager().load(
            config_file=str(config_file) if config_file else None,
            cli_overrides=overrides,
        )
    except (ValidationError, ValueError) as e:
        click.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        sys.exit(EXIT_ERROR)


def _load_json(path: Path, label: str, decode: bool = True) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return decode_value(data) if decode else data
    except json.JSONDecodeError as e:
        click.echo(f"[ERROR] Could not parse {label} file {path}: {e}", err=True)
        sys.exit(EXIT_ERROR)
    except RecursionError:
        click.echo(f"[ERROR] {label.capitalize()} file {path} is nested too deeply", err=True)
        sys.exit(EXIT_ERROR)
    except ConditionExpressionError as e:
        _fail(e)


def _fail(error: ConditionExpressionError) -> None:
    log_with_context(
        logger, logging.ERROR, error.message, error_code=error.error_code, details=error.details
    )
    click.echo(f"[ERROR] {error.error_code}: {error.message}", err=True)
    sys.exit(EXIT_ERROR)


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
