"""
Settings that define the visual appearance of console and log output.
"""

import re

from rich.highlighter import _combine_regex, RegexHighlighter
from rich.style import Style

## Colors

COLOR_EMPH = "bright_green"

COLOR_KEY = "bright_blue"

COLOR_VALUE = "cyan"

COLOR_PATH = "cyan"

COLOR_HINT = "bright_black"

COLOR_WARN = "bright_red"

COLOR_ERROR = "bright_red"

COLOR_SAVED = "blue"

COLOR_TAG = "magenta"


## Symbols and emojis

EMOJI_WARN = "△"

EMOJI_ERROR = EMOJI_WARN + EMOJI_WARN

EMOJI_SAVED = "⩣"

EMOJI_TAG = "#"


## Rich setup

URL_CHARS = r"-0-9a-zA-Z$_+!`(),.?/;:&=%#~"


class BloomHighlighter(RegexHighlighter):
    """
    Highlighter for log and console lines.
    """

    base_style = "bloom."
    highlights = [
        _combine_regex(
            f"(?P<warn>{re.escape(EMOJI_WARN)})",
            f"(?P<saved>{re.escape(EMOJI_SAVED)})",
        ),
        _combine_regex(
            r"\b(?P<time_ago>([0-9]+ ?(min|h|days) ago|just now|Yesterday))\b",
            r"(?P<doc_file>[-\w.]+\.bloom)\b",
            r"(?P<path>\B(/[-\w._+]+)*\/)(?P<filename>[-\w._+]*)?",
            rf"(?P<url>(file|https|http)://[{URL_CHARS}]*)",
            r"(?P<code_span>`[^`\n]+`)",
        ),
    ]


RICH_STYLES = {
    "markdown.h1": Style(color=COLOR_EMPH, bold=True),
    "markdown.h2": Style(color=COLOR_EMPH, bold=True),
    "markdown.h3": Style(color=COLOR_EMPH, bold=True, italic=True),
    "bloom.warn": Style(color=COLOR_WARN, bold=True),
    "bloom.saved": Style(color=COLOR_SAVED, bold=True),
    "bloom.time_ago": Style(color=COLOR_KEY, italic=False),
    "bloom.doc_file": Style(color=COLOR_VALUE),
    "bloom.path": Style(color=COLOR_PATH),
    "bloom.filename": Style(color=COLOR_VALUE),
    "bloom.url": Style(underline=True, color=COLOR_VALUE, italic=False, bold=False),
    "bloom.code_span": Style(color=COLOR_VALUE, italic=False),
    "bloom.tag": Style(color=COLOR_TAG),
    "bloom.hint": Style(color=COLOR_HINT),
}
