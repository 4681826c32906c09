"""
Output methods. These are for user interaction, not logging.
"""

import sys
import threading
from contextlib import contextmanager
from io import StringIO
from typing import Any, Callable, List

import rich
from rich.markdown import Markdown
from rich.text import Text

from bloom.config.logger import get_console
from bloom.config.text_styles import COLOR_EMPH, COLOR_HINT, COLOR_KEY, COLOR_TAG, EMOJI_TAG
from bloom.model.documents_model import ProcessedSidebarItem

console = get_console()


# Allow output stream to be redirected if desired.
_output_context = threading.local()
_output_context.stream = None


@contextmanager
def redirect_output(new_output):
    old_output = getattr(_output_context, "stream", sys.stdout)
    _output_context.stream = new_output
    try:
        yield
    finally:
        _output_context.stream = old_output


def output_as_string(func: Callable, *args: Any, **kwargs: Any) -> str:
    """
    Collect output printed by the given function as a string.
    """
    buffer = StringIO()
    with redirect_output(buffer):
        func(*args, **kwargs)
    return buffer.getvalue()


def rprint(*args, **kwargs):
    """Print to global console, unless output stream is redirected."""

    stream = getattr(_output_context, "stream", None)
    if stream:
        rich.print(*args, **kwargs, file=stream)
    else:
        console.print(*args, **kwargs)


def output(message: str | Text | Markdown = "", *args, color=None, end="\n"):
    if isinstance(message, str):
        text = message % args if args else message
        rprint(Text(text, color) if color else text, end=end)
    else:
        rprint(message, end=end)


def output_raw(text: str):
    """
    Write text exactly as is, with no markup or highlighting, e.g. for exported files.
    """
    stream = getattr(_output_context, "stream", None) or sys.stdout
    stream.write(text)
    if not text.endswith("\n"):
        stream.write("\n")


def output_markdown(markdown: str):
    rprint(Markdown(markdown))


def format_tags(tags: List[str]) -> Text:
    return Text.assemble(*[(f" {EMOJI_TAG}{tag}", COLOR_TAG) for tag in tags])


def format_sidebar_item(item: ProcessedSidebarItem) -> Text:
    return Text.assemble(
        (item.title, COLOR_EMPH),
        ("  ", ""),
        (item.modified_at_label, COLOR_KEY),
        format_tags(item.tags),
        ("  ", ""),
        (item.id, COLOR_HINT),
    )


def output_sidebar_items(items: List[ProcessedSidebarItem]):
    if not items:
        output("No documents.", color=COLOR_HINT)
    for item in items:
        rprint(format_sidebar_item(item))


## Tests


def test_output_sidebar_items():
    items = [
        ProcessedSidebarItem(id="doc-1", title="First", modified_at_label="just now", tags=["a", "b"]),
        ProcessedSidebarItem(id="doc-2", title="Second", modified_at_label="Yesterday", tags=[]),
    ]
    text = output_as_string(output_sidebar_items, items)
    lines = text.splitlines()
    assert lines[0] == "First  just now #a #b  doc-1"
    assert lines[1] == "Second  Yesterday  doc-2"

    assert output_as_string(output_sidebar_items, []).strip() == "No documents."


def test_output_raw():
    assert output_as_string(output_raw, "# [bold]Hi[/bold]") == "# [bold]Hi[/bold]\n"
