import json
import logging
import sys
from pathlib import Path

import click

from .bridge import merge_with_report
from .config import FILE_TYPE_ALIASES, MergeConfig, Notation, notation_for_path
from .merger import AtomicWriter, CodeMergeError, ParseError
from .response_cleaner import clean_response


@click.group()
def code_bridge():
    """Merge code snippets into existing source files."""


@code_bridge.command()
@click.option("--notation", "-n", default=None, type=click.Choice([n.value for n in Notation] + sorted(FILE_TYPE_ALIASES)))
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--output", "-o", default=None, type=click.Path(resolve_path=True), help="Write the merged document here instead of stdout")
@click.option("--clean-response", "clean_response_flag", is_flag=True, default=False, help="Extract the snippet from a model response (markdown fences, prose)")
@click.option("--language", "-l", default=None, type=str, help="Preferred code fence language for --clean-response")
@click.option("--verbose", "-v", count=True)
@click.argument("original", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.argument("snippet", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
def merge(notation, config, output, clean_response_flag, language, verbose, original, snippet):
    """Merge SNIPPET into ORIGINAL and print the merged document.

    SNIPPET may be '-' to read the snippet from stdin.
    """
    logging.basicConfig(level=logging.DEBUG if verbose > 1 else logging.INFO if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if config is not None:
        with open(config) as f:
            config = MergeConfig.from_dict(json.load(f))
    else:
        config = MergeConfig()

    if notation is None:
        notation = notation_for_path(original)
        if notation is None:
            raise click.UsageError(f"Cannot infer a notation from '{Path(original).name}', use --notation")

    with open(original, encoding="utf-8") as f:
        original_text = f.read()
    with click.open_file(snippet, encoding="utf-8") as f:
        snippet_text = f.read()

    if clean_response_flag:
        snippet_text = clean_response(snippet_text, language)

    try:
        result = merge_with_report(original_text, snippet_text, notation, config)
    except ParseError as e:
        location = f"{e.line}:{e.column}: " if e.line is not None else ""
        click.echo(f"Error: {location}{e}", err=True)
        sys.exit(1)
    except CodeMergeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if output is None:
        click.echo(result.text, nl=False)
        return

    try:
        AtomicWriter().write(Path(output), result.text, result.notation, validate=config.validate_output)
    except CodeMergeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@code_bridge.command()
def notations():
    """List the supported notation tags and their file types."""
    for notation in Notation:
        file_types = ", ".join(sorted(k for k, v in FILE_TYPE_ALIASES.items() if v is notation))
        click.echo(f"{notation.value}\t{file_types}")
