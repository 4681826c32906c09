"""
Main entry point for the bloom command line: list, search, show and export the
documents in the Bloom storage folder.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.text import Text

from bloom.app import BloomApp
from bloom.config.logger import get_logger
from bloom.config.settings import APP_NAME
from bloom.config.setup import setup
from bloom.config.text_styles import COLOR_EMPH, COLOR_HINT
from bloom.errors import BloomError, InvalidInput, is_fatal
from bloom.exports.export_formats import ExportFormat
from bloom.exports.export_service import (
    Clipboard,
    convert_for_export,
    copy_as_markdown,
    export_to_file,
    ExportResult,
    PathChooser,
    SystemClipboard,
)
from bloom.model.documents_model import Document
from bloom.text_formatting.markdown_converter import to_markdown
from bloom.text_formatting.text_stats import doc_word_count
from bloom.text_ui.command_output import (
    format_tags,
    output,
    output_markdown,
    output_raw,
    output_sidebar_items,
    rprint,
)
from bloom.util.format_utils import fmt_count_items, fmt_path
from bloom.version import get_version


# Ensure logging is set up before anything else.
setup()

log = get_logger(__name__)

__version__ = get_version()

APP_VERSION = f"{APP_NAME} {__version__}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description=__doc__)
    parser.add_argument("--version", action="version", version=APP_VERSION)
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List documents, most recent first.")
    list_parser.add_argument("--tag", help="Only documents with this tag.")
    list_parser.add_argument("--search", default="", help="Only documents whose title contains this.")

    subparsers.add_parser("tags", help="List all tags in use.")

    export_parser = subparsers.add_parser("export", help="Export a document.")
    export_parser.add_argument("doc_id", metavar="ID")
    export_parser.add_argument(
        "--format",
        dest="extension",
        default="md",
        help="Format extension, e.g. md or html. With --output, the file's extension decides.",
    )
    export_parser.add_argument(
        "--output", type=Path, help="File or directory to write to. Default is stdout."
    )

    show_parser = subparsers.add_parser("show", help="Show a document as Markdown.")
    show_parser.add_argument("doc_id", metavar="ID")

    copy_parser = subparsers.add_parser("copy", help="Copy a document to the clipboard as Markdown.")
    copy_parser.add_argument("doc_id", metavar="ID")

    return parser


async def load_document(app: BloomApp, doc_id: str) -> Document:
    meta = await app.store.find(doc_id)
    if not meta:
        raise InvalidInput(f"No document with id: {doc_id}")
    return await app.store.load(meta.path)


async def list_command(app: BloomApp, tag: Optional[str], search: str) -> None:
    manager = app.manager
    await manager.refresh_summaries()
    manager.active_tag_filter = tag
    manager.search_query = search
    output_sidebar_items(manager.sidebar_items)


async def tags_command(app: BloomApp) -> None:
    await app.manager.refresh_summaries()
    tags = app.manager.all_tags
    if not tags:
        output("No tags.", color=COLOR_HINT)
    else:
        rprint(format_tags(tags))


def _output_path_chooser(output_path: Path, export_format: ExportFormat) -> PathChooser:
    async def choose(default_name: str, formats: List[ExportFormat]) -> Optional[Path]:
        if output_path.is_dir():
            return output_path / f"{default_name}.{export_format.extension}"
        return output_path

    return choose


async def export_command(
    app: BloomApp, doc_id: str, extension: str, output_path: Optional[Path]
) -> None:
    doc = await load_document(app, doc_id)
    export_format = app.exports.get(extension)

    if output_path:
        chooser = _output_path_chooser(output_path, export_format)
        result = await export_to_file(doc.title, doc.content, "", chooser, app.exports)
        if result == ExportResult.exported:
            log.info("Exported %s from %s", doc_id, fmt_path(app.store.path_for(doc_id)))
    else:
        output_raw(await convert_for_export(export_format, doc.content))


async def show_command(app: BloomApp, doc_id: str) -> None:
    doc = await load_document(app, doc_id)
    rprint(
        Text.assemble(
            (doc.title, COLOR_EMPH),
            (f"  {fmt_count_items(doc_word_count(doc.content), 'word')}", COLOR_HINT),
            format_tags(doc.tags),
        )
    )
    if doc.subtitle:
        output(doc.subtitle, color=COLOR_HINT)
    output()
    output_markdown(to_markdown(doc.content))


async def copy_command(app: BloomApp, doc_id: str, clipboard: Optional[Clipboard] = None) -> None:
    doc = await load_document(app, doc_id)
    markdown = await copy_as_markdown(doc.content, clipboard or SystemClipboard())
    log.message("Copied %s to clipboard (%s chars)", doc_id, len(markdown))


async def run_command(args: argparse.Namespace, app: BloomApp) -> None:
    if args.command == "list":
        await list_command(app, args.tag, args.search)
    elif args.command == "tags":
        await tags_command(app)
    elif args.command == "export":
        await export_command(app, args.doc_id, args.extension, args.output)
    elif args.command == "show":
        await show_command(app, args.doc_id)
    elif args.command == "copy":
        await copy_command(app, args.doc_id)
    app.recent_actions.record(args.command)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    app = BloomApp.create()
    try:
        asyncio.run(run_command(args, app))
    except (BloomError, OSError) as e:
        if is_fatal(e):
            log.error("%s", e, exc_info=True)
        else:
            log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
