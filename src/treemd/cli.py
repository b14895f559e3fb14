"""CLI entry point for treemd."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from markdown_outline import Document, Heading, SectionNotFoundError
from treemd.input import InputError
from treemd.models.config import Config
from treemd.query import ElementRef, ListValue, OutputFormat, QueryError, serialize
from treemd.session import DocumentSession
from treemd.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)


def load_config() -> Config:
    """
    Load configuration from ~/.config/treemd/config.yaml.

    Returns:
        Validated Config instance (defaults when no file exists)

    Raises:
        click.ClickException: If validation fails
    """
    try:
        config = Config.load()
        logger.info("config_loaded", format=config.output.format, resolve_links=config.parser.resolve_links)
        return config
    except ValueError as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")


def open_session(file: Optional[str], config: Config) -> DocumentSession:
    """Build a session for FILE (or standard input), converting input errors."""
    try:
        return DocumentSession.from_path(
            Path(file) if file else None,
            resolve_links=config.parser.resolve_links,
        )
    except InputError as e:
        logger.error("input_error", source=e.source, error=e.message)
        raise click.ClickException(str(e))


def resolve_format(name: Optional[str], config: Config) -> OutputFormat:
    if name is None:
        return config.output.output_format
    try:
        return OutputFormat.parse(name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'-o' / '--output'")


def emit(text: str) -> None:
    if text:
        click.echo(text)


FORMAT_HELP = "Output format: plain, json, json-pretty, jsonl or markdown (default from config)"


@click.group()
@click.version_option(version="0.1.0", prog_name="treemd")
def cli():
    """treemd: Navigate and query the structure of markdown documents."""
    configure_logging()


@cli.command()
@click.argument("query")
@click.argument("file", required=False)
@click.option("-o", "--output", "output_format", default=None, help=FORMAT_HELP)
def query(query: str, file: Optional[str], output_format: Optional[str]):
    """
    Run a query against a markdown document.

    FILE defaults to standard input. A QUERY of "-" reads the query itself
    from standard input (FILE is then required).

    Examples:
        treemd query '.h2 | text' README.md
        treemd query '.h1 > .h2[install] >> .code | lang' README.md
        treemd query '[.link] | group_by(kind)' -o json-pretty README.md
        cat notes.md | treemd query '. | stats'
    """
    config = load_config()
    fmt = resolve_format(output_format, config)

    if query == "-":
        if not file or file == "-":
            raise click.UsageError("FILE is required when the query is read from standard input")
        query = sys.stdin.read().strip()

    logger.info("query_command_started", query=query, file=file, format=fmt.value)
    session = open_session(file, config)

    try:
        result = session.query(query)
        text = serialize(result, fmt, session.document)
    except QueryError as e:
        logger.error("query_failed", query=query, error=str(e))
        raise click.ClickException(str(e))

    emit(text)


@cli.command("list")
@click.argument("file", required=False)
@click.option("-L", "--level", type=click.IntRange(1, 6), default=None, help="Deepest heading level to show")
@click.option("--filter", "text_filter", default=None, help="Only headings containing this text")
@click.option("-o", "--output", "output_format", default=None, help=FORMAT_HELP)
def list_headings(file: Optional[str], level: Optional[int], text_filter: Optional[str], output_format: Optional[str]):
    """
    List the headings of a markdown document.

    Examples:
        treemd list README.md
        treemd list -L 2 --filter install README.md
    """
    config = load_config()
    fmt = resolve_format(output_format, config)
    session = open_session(file, config)

    headings = session.headings(max_level=level, text_filter=text_filter)
    logger.info("list_command", file=file, count=len(headings))
    value = ListValue(tuple(ElementRef(h) for h in headings))

    try:
        emit(serialize(value, fmt, session.document))
    except QueryError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("file", required=False)
@click.option("-L", "--level", type=click.IntRange(1, 6), default=None, help="Deepest heading level to show")
def tree(file: Optional[str], level: Optional[int]):
    """
    Show the heading outline of a markdown document as a tree.

    Examples:
        treemd tree README.md
        treemd tree -L 2 README.md
    """
    config = load_config()
    session = open_session(file, config)
    document = session.document

    label = Path(file).name if file and file != "-" else "stdin"
    root = Tree(f"[bold]{escape(label)}[/bold]")
    for heading in document.roots:
        _add_branch(root, document, heading, level)

    logger.info("tree_command", file=file, headings=len(document.headings))
    Console().print(root)


def _add_branch(parent: Tree, document: Document, heading: Heading, max_level: Optional[int]) -> None:
    if max_level is not None and heading.level > max_level:
        return
    branch = parent.add(f"[cyan]{'#' * heading.level}[/cyan] {escape(heading.text)}")
    for child in document.children_of(heading):
        _add_branch(branch, document, child, max_level)


@cli.command()
@click.argument("name")
@click.argument("file", required=False)
def section(name: str, file: Optional[str]):
    """
    Print the raw markdown of a section, heading included.

    NAME matches a heading exactly (case-insensitive) or, failing that, as a
    substring. The first match in document order wins.

    Examples:
        treemd section Installation README.md
    """
    config = load_config()
    session = open_session(file, config)

    try:
        text = session.section(name)
    except SectionNotFoundError as e:
        logger.error("section_not_found", name=name, file=file)
        raise click.ClickException(str(e))

    logger.info("section_command", name=name, file=file, size=len(text))
    click.echo(text.rstrip("\n"))


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
