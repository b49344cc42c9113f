"""Command Line Interface for EpubSplit.

This module provides the CLI for listing the split points of an EPUB and
writing new EPUBs from a selection of them.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence
import click
from tqdm import tqdm

from . import __version__
from .config import Config, DEFAULT_CONFIG, coerce_value
from .error import initialize_error_handler, error_handler, EpubSplitError, SplitIndexError
from .epub import EpubModel, SplitEpubWriter, SplitPoint
from .utils import (
    clean_html,
    create_table,
    ensure_directory,
    ensure_epub_extension,
    numbered_filename,
    truncate_string,
)

# Set up logging
logger = logging.getLogger(__name__)


def display_split_points(points: Sequence[SplitPoint]) -> None:
    """Display split points in a table format.

    Args:
        points: The split point catalog.
    """
    if not points:
        click.secho("No split points found.", fg="yellow")
        return

    headers = ["#", "Navigation", "Guide", "Anchor", "File", "Preview"]
    rows = []
    for index, point in enumerate(points):
        rows.append([
            str(index),
            truncate_string(" / ".join(point.navigation_labels), 40),
            point.guide.type if point.guide else "",
            point.anchor or "",
            truncate_string(point.href, 30),
            truncate_string(clean_html(point.preview_sample), 40),
        ])

    click.echo(create_table(headers, rows, width=160))


def resolve_output_path(config: Config, output: Optional[str], output_dir: Optional[str]) -> Path:
    """Build the output file path from options and configuration."""
    filename = ensure_epub_extension(output or config.get("output_filename", DEFAULT_CONFIG["output_filename"]))
    directory = output_dir or config.get_output_dir()
    if directory:
        return ensure_directory(directory) / filename
    return Path(filename)


def default_description(model: EpubModel, count: int) -> str:
    sections = "section" if count == 1 else "sections"
    return f"Split from {model.title} by {', '.join(model.authors)}: {count} {sections}."


def load_model(ctx: click.Context, input_path: str) -> EpubModel:
    config: Config = ctx.obj['CONFIG']
    return EpubModel(input_path, preview_length=config.get_preview_length())


def _fail(ctx: click.Context, error: Exception) -> None:
    """Report an error through the global handler and exit with status 1."""
    handled = error_handler.handle(error)
    error_handler.display_error(handled)
    ctx.exit(1)


def output_options(func):
    """Options shared by the commands that write EPUBs."""
    options = [
        click.option('--output', '-o', help="Output file name (default from config: split.epub)"),
        click.option('--output-dir', help="Output directory"),
        click.option('--title', '-t', help="Metadata title for the output EPUB"),
        click.option('--description', '-d', help="Metadata description for the output EPUB"),
        click.option('--author', '-a', 'authors', multiple=True, help="Author(s) for the output EPUB (repeatable)"),
        click.option('--tag', '-g', 'tags', multiple=True, help="Subject tag(s) for the output EPUB (repeatable)"),
        click.option('--language', '-l', 'languages', multiple=True, help="Language(s) for the output EPUB (repeatable)"),
        click.option('--cover', '-c', type=click.Path(exists=True, dir_okay=False), help="Path to cover image (JPG)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option('--debug', is_flag=True, help="Enable debug logging")
@click.option('--log-dir', help="Directory for log files")
@click.pass_context
def cli(ctx, debug, log_dir):
    """EpubSplit: split EPUB files into smaller books.

    Run 'list' on an EPUB to see its numbered split points, then pass some of
    those numbers to 'extract' to write them into one new EPUB, or to 'split'
    to write one EPUB per split point.

    Basic usage:
      - List split points: epubsplit list book.epub
      - Extract sections: epubsplit extract book.epub 3 4 5 -o part.epub
      - One book per section: epubsplit split book.epub --output-dir parts
    """
    ctx.ensure_object(dict)

    log_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    ctx.obj['DEBUG'] = debug

    initialize_error_handler(debug=debug, log_dir=log_dir)

    ctx.obj['CONFIG'] = Config()


@cli.command(name="list")
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def list_command(ctx, input_path):
    """List the split points of an EPUB.

    Examples:
      epubsplit list book.epub
    """
    try:
        with load_model(ctx, input_path) as model:
            points = model.split_points()
            click.echo(f"{model.title} by {', '.join(model.authors)}\n")
            display_split_points(points)
    except EpubSplitError as e:
        _fail(ctx, e)


@cli.command()
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('lines', nargs=-1, required=True, type=int)
@output_options
@click.pass_context
def extract(ctx, input_path, lines, output, output_dir, title, description, authors, tags, languages, cover):
    """Write the given split points into one new EPUB.

    Examples:
      epubsplit extract book.epub 0 3 4 -o excerpt.epub -t "Excerpt"
    """
    config: Config = ctx.obj['CONFIG']
    try:
        with load_model(ctx, input_path) as model:
            output_path = resolve_output_path(config, output, output_dir)
            written = SplitEpubWriter(model).write(
                output_path,
                list(lines),
                authors=list(authors) or model.authors,
                title=title or f"{model.title} Split",
                description=description or default_description(model, len(lines)),
                tags=list(tags),
                languages=list(languages) or config.get_languages(),
                cover_path=cover,
            )
            click.secho(f"✅ Wrote {written}", fg="green")
    except SplitIndexError as e:
        raise click.UsageError(e.message)
    except EpubSplitError as e:
        _fail(ctx, e)


@cli.command()
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('lines', nargs=-1, type=int)
@output_options
@click.pass_context
def split(ctx, input_path, lines, output, output_dir, title, description, authors, tags, languages, cover):
    """Write one new EPUB per split point (all of them if none are given).

    Output files are numbered after the split point, e.g. split-004.epub.

    Examples:
      epubsplit split book.epub --output-dir chapters
      epubsplit split book.epub 2 5 -o part.epub
    """
    config: Config = ctx.obj['CONFIG']
    try:
        with load_model(ctx, input_path) as model:
            points = model.split_points()
            indices: List[int] = list(lines) or list(range(len(points)))
            writer = SplitEpubWriter(model)
            writer.validate_indices(indices)

            base_path = resolve_output_path(config, output, output_dir)
            written = []
            for index in tqdm(indices, desc="Writing sections", unit="book", disable=not indices):
                point = points[index]
                output_path = base_path.with_name(numbered_filename(base_path.name, index))
                written.append(writer.write(
                    output_path,
                    [index],
                    authors=list(authors) or model.authors,
                    title=title or point.label or f"{model.title} {index}",
                    description=description or default_description(model, 1),
                    tags=list(tags),
                    languages=list(languages) or config.get_languages(),
                    cover_path=cover,
                ))

            click.secho(f"✅ Wrote {len(written)} EPUB files", fg="green")
            for path in written:
                click.echo(f"  {path}")
    except SplitIndexError as e:
        raise click.UsageError(e.message)
    except EpubSplitError as e:
        _fail(ctx, e)


@cli.command(name="config")
@click.argument('key', required=False)
@click.argument('value', required=False)
@click.option('--reset', is_flag=True, help="Reset all settings to defaults")
@click.pass_context
def config_command(ctx, key, value, reset):
    """Show or change configuration values.

    Examples:
      epubsplit config
      epubsplit config default_languages en,fr
    """
    config: Config = ctx.obj['CONFIG']

    if reset:
        config.reset()
        click.secho("Configuration reset to defaults", fg="green")
        return

    if key is None:
        for name, current in sorted(config.items().items()):
            click.echo(f"{name} = {current}")
        return

    if key not in DEFAULT_CONFIG:
        raise click.UsageError(f"Unknown setting '{key}'. Known settings: {', '.join(sorted(DEFAULT_CONFIG))}")

    if value is None:
        click.echo(f"{key} = {config.get(key)}")
        return

    try:
        converted = coerce_value(key, value)
    except ValueError:
        raise click.BadParameter(f"Invalid value for {key}: {value}", param_hint="VALUE")

    if config.set(key, converted):
        click.secho(f"{key} = {converted}", fg="green")
    else:
        click.secho(f"Could not save setting {key}", fg="red")
        ctx.exit(1)
