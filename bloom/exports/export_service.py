import asyncio
import inspect
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol

import regex

from bloom.config.logger import get_logger
from bloom.config.text_styles import EMOJI_SAVED
from bloom.errors import InvalidState
from bloom.exports.export_formats import ExportFormat, ExportRegistry
from bloom.model.doc_tree import Node
from bloom.model.documents_model import UNTITLED
from bloom.text_formatting.markdown_converter import to_markdown
from bloom.util.format_utils import fmt_path

log = get_logger(__name__)


class ExportResult(Enum):
    exported = "exported"
    cancelled = "cancelled"


class PathChooser(Protocol):
    """
    Asks the user where to export, e.g. a save dialog. Returns None if cancelled.
    """

    async def __call__(self, default_name: str, formats: List[ExportFormat]) -> Optional[Path]: ...


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


def derive_filename(title: str) -> str:
    """
    A filename stem for a title: ASCII letters, digits, spaces and hyphens only, with
    runs of whitespace turned into single hyphens.
    """
    sanitized = regex.sub(r"[^a-zA-Z0-9\s-]", "", title).strip()
    sanitized = regex.sub(r"\s+", "-", sanitized)
    return sanitized or UNTITLED


async def convert_for_export(
    export_format: ExportFormat, content: Node, raw_html: str = ""
) -> str:
    output = export_format.convert(content, raw_html)
    if inspect.isawaitable(output):
        output = await output
    return output


async def export_to_file(
    title: str,
    content: Node,
    raw_html: str,
    choose_path: PathChooser,
    registry: ExportRegistry,
) -> ExportResult:
    """
    Export a document to a file the user picks. The format is chosen by the file's
    extension, falling back to Markdown, and the result is written verbatim.
    """
    path = await choose_path(derive_filename(title), registry.formats())
    if not path:
        return ExportResult.cancelled

    path = Path(path)
    export_format = registry.for_extension(path.suffix)
    output = await convert_for_export(export_format, content, raw_html)

    await asyncio.to_thread(path.write_text, output, encoding="utf-8")
    log.message("%s Exported %s to %s", EMOJI_SAVED, export_format.name, fmt_path(path))
    return ExportResult.exported


class SystemClipboard:
    """
    The OS-native clipboard.
    """

    async def write_text(self, text: str) -> None:
        import pyperclip

        try:
            await asyncio.to_thread(pyperclip.copy, text)
        except pyperclip.PyperclipException as e:
            raise InvalidState(f"Clipboard is not available: {e}") from e


async def copy_as_markdown(content: Node, clipboard: Clipboard) -> str:
    markdown = to_markdown(content)
    await clipboard.write_text(markdown)
    return markdown


## Tests


def test_derive_filename():
    assert derive_filename("My Great Post!") == "My-Great-Post"
    assert derive_filename("  spaced   out  ") == "spaced-out"
    assert derive_filename("already-hyphened") == "already-hyphened"
    assert derive_filename("!!!") == UNTITLED
    assert derive_filename("") == UNTITLED


def _content() -> Node:
    from bloom.model.doc_tree import node_from_dict

    return node_from_dict(
        {
            "type": "doc",
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Hi"}]}
            ],
        }
    )


def test_export_to_file(tmp_path: Path):
    registry = ExportRegistry()
    offered: List[str] = []

    def chooser_for(name: Optional[str]) -> PathChooser:
        async def choose(default_name: str, formats: List[ExportFormat]) -> Optional[Path]:
            offered.append(default_name)
            assert [f.extension for f in formats] == ["md", "html"]
            return tmp_path / name if name else None

        return choose

    async def run():
        result = await export_to_file("Hi there", _content(), "", chooser_for("out.md"), registry)
        assert result == ExportResult.exported
        assert (tmp_path / "out.md").read_text() == "# Hi"

        raw_html = '<h1 class="title" data-id="1">Hi</h1>'
        await export_to_file("Hi there", _content(), raw_html, chooser_for("out.html"), registry)
        assert (tmp_path / "out.html").read_text() == "<h1>Hi</h1>"

        await export_to_file("Hi there", _content(), raw_html, chooser_for("out.rtf"), registry)
        assert (tmp_path / "out.rtf").read_text() == "# Hi"

        result = await export_to_file("Hi there", _content(), "", chooser_for(None), registry)
        assert result == ExportResult.cancelled

    asyncio.run(run())
    assert offered == ["Hi-there"] * 4


def test_async_converter_and_clipboard():
    registry = ExportRegistry()

    async def shout(content: Node, raw_html: str) -> str:
        return to_markdown(content).upper()

    registry.register(ExportFormat(name="Shout", extension="txt", convert=shout))

    class FakeClipboard:
        text = ""

        async def write_text(self, text: str) -> None:
            self.text = text

    clipboard = FakeClipboard()

    async def run():
        assert await convert_for_export(registry.for_extension("txt"), _content()) == "# HI"
        await copy_as_markdown(_content(), clipboard)

    asyncio.run(run())
    assert clipboard.text == "# Hi"
