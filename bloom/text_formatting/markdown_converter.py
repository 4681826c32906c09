"""
Convert a document content tree to Markdown.

Conversion is total: anything missing or unrecognized renders as empty text rather
than failing. Marks are applied in the order they are declared on a text node, each
wrapping the result so far, so `[bold, italic]` gives `***x***` with the italic
markers outermost.
"""

from textwrap import dedent
from typing import assert_never, List

from bloom.model.doc_tree import (
    Blockquote,
    Bold,
    BulletList,
    Code,
    CodeBlock,
    Doc,
    flatten_text,
    Heading,
    Italic,
    Link,
    ListItem,
    Mark,
    Node,
    node_from_dict,
    OpaqueMark,
    OpaqueNode,
    OrderedList,
    Paragraph,
    Text,
)

INDENT = "  "


def to_markdown(doc: Node) -> str:
    """
    Convert a document tree to Markdown. Top-level blocks are separated by a blank line.
    """
    return "\n\n".join(_convert_block(node, 0) for node in doc.content)


def _convert_block(node: Node, indent: int) -> str:
    match node:
        case Paragraph():
            return _render_inline_content(node)
        case Heading():
            return f"{'#' * node.level} {_render_inline_content(node)}"
        case BulletList() | OrderedList():
            return _render_list(node, indent)
        case CodeBlock():
            return f"```\n{flatten_text(node)}\n```"
        case Blockquote():
            return "\n".join(
                _prefix_lines(_convert_block(child, indent), "> ") for child in node.content
            )
        case Doc() | ListItem() | Text() | OpaqueNode():
            return ""
        case _ as unreachable:
            assert_never(unreachable)


def _prefix_lines(text: str, prefix: str) -> str:
    return "\n".join(f"{prefix}{line}" for line in text.split("\n"))


def _render_list(node: BulletList | OrderedList, indent: int) -> str:
    padding = INDENT * indent
    lines: List[str] = []
    for index, item in enumerate(node.content):
        marker = "- " if isinstance(node, BulletList) else f"{index + 1}. "
        lines.append(_render_list_item(item, indent, f"{padding}{marker}"))
    return "\n".join(lines)


def _render_list_item(item: Node, indent: int, prefix: str) -> str:
    if not item.content:
        return prefix

    parts: List[str] = []
    for index, child in enumerate(item.content):
        if index == 0 and isinstance(child, Paragraph):
            parts.append(f"{prefix}{_render_inline_content(child)}")
        elif isinstance(child, (BulletList, OrderedList)):
            parts.append(_render_list(child, indent + 1))
        else:
            parts.append(_prefix_lines(_convert_block(child, indent + 1), INDENT * (indent + 1)))
    return "\n".join(parts)


def _render_inline_content(node: Node) -> str:
    return "".join(_render_inline(child) for child in node.content)


def _render_inline(node: Node) -> str:
    if isinstance(node, Text):
        return apply_marks(node.text, node.marks)
    return ""


def apply_marks(text: str, marks: List[Mark]) -> str:
    result = text
    for mark in marks:
        result = _wrap_with_mark(result, mark)
    return result


def _wrap_with_mark(text: str, mark: Mark) -> str:
    match mark:
        case Bold():
            return f"**{text}**"
        case Italic():
            return f"*{text}*"
        case Code():
            return f"`{text}`"
        case Link():
            return f"[{text}]({mark.href})"
        case OpaqueMark():
            return text
        case _ as unreachable:
            assert_never(unreachable)


## Tests


def _text(text: str, *marks: dict) -> dict:
    node: dict = {"type": "text", "text": text}
    if marks:
        node["marks"] = list(marks)
    return node


def _para(*children: dict) -> dict:
    return {"type": "paragraph", "content": list(children)}


def _doc(*children: dict) -> Doc:
    doc = node_from_dict({"type": "doc", "content": list(children)})
    assert isinstance(doc, Doc)
    return doc


def _list(list_type: str, *items: list) -> dict:
    return {
        "type": list_type,
        "content": [{"type": "listItem", "content": item} for item in items],
    }


def test_paragraph_and_headings():
    assert to_markdown(_doc(_para(_text("Hello world")))) == "Hello world"

    doc = _doc(
        {"type": "heading", "attrs": {"level": 1}, "content": [_text("Title")]},
        {"type": "heading", "attrs": {"level": 2}, "content": [_text("Subtitle")]},
        {"type": "heading", "attrs": {"level": 3}, "content": [_text("Section")]},
    )
    assert to_markdown(doc) == "# Title\n\n## Subtitle\n\n### Section"


def test_marks():
    bold = _doc(_para(_text("Hello "), _text("bold", {"type": "bold"}), _text(" world")))
    assert to_markdown(bold) == "Hello **bold** world"

    italic = _doc(_para(_text("Hello "), _text("italic", {"type": "italic"}), _text(" world")))
    assert to_markdown(italic) == "Hello *italic* world"

    link = _doc(
        _para(
            _text("Visit "),
            _text("Google", {"type": "link", "attrs": {"href": "https://google.com"}}),
        )
    )
    assert to_markdown(link) == "Visit [Google](https://google.com)"

    both = _doc(_para(_text("emphasis", {"type": "bold"}, {"type": "italic"})))
    assert to_markdown(both) == "***emphasis***"

    ordered = _doc(_para(_text("x", {"type": "code"}, {"type": "bold"})))
    assert to_markdown(ordered) == "**`x`**"
    reversed_order = _doc(_para(_text("x", {"type": "bold"}, {"type": "code"})))
    assert to_markdown(reversed_order) == "`**x**`"

    unknown = _doc(_para(_text("plain", {"type": "highlight"})))
    assert to_markdown(unknown) == "plain"


def test_lists():
    bullets = _doc(_list("bulletList", [_para(_text("First"))], [_para(_text("Second"))]))
    assert to_markdown(bullets) == "- First\n- Second"

    ordered = _doc(_list("orderedList", [_para(_text("First"))], [_para(_text("Second"))]))
    assert to_markdown(ordered) == "1. First\n2. Second"

    nested = _doc(
        _list(
            "bulletList",
            [_para(_text("Parent")), _list("bulletList", [_para(_text("Child"))])],
        )
    )
    assert to_markdown(nested) == "- Parent\n  - Child"

    deeper = _doc(
        _list(
            "orderedList",
            [
                _para(_text("One")),
                _list(
                    "bulletList",
                    [_para(_text("A")), _list("orderedList", [_para(_text("i"))])],
                ),
            ],
            [_para(_text("Two"))],
        )
    )
    assert to_markdown(deeper) == dedent(
        """
        1. One
          - A
            1. i
        2. Two
        """
    ).strip("\n")

    continued = _doc(_list("bulletList", [_para(_text("One")), _para(_text("More"))]))
    assert to_markdown(continued) == "- One\n  More"


def test_code_block_and_quote():
    code = _doc({"type": "codeBlock", "content": [_text("const x = 1;")]})
    assert to_markdown(code) == "```\nconst x = 1;\n```"

    quote = _doc({"type": "blockquote", "content": [_para(_text("To be or not to be"))]})
    assert to_markdown(quote) == "> To be or not to be"

    quoted_list = _doc(
        {"type": "blockquote", "content": [_list("bulletList", [_para(_text("a"))], [_para(_text("b"))])]}
    )
    assert to_markdown(quoted_list) == "> - a\n> - b"


def test_empty_and_unknown():
    assert to_markdown(_doc()) == ""
    assert to_markdown(Doc()) == ""

    doc = _doc(_para(_text("Before")), {"type": "mystery", "content": [_text("hidden")]}, _para(_text("After")))
    assert to_markdown(doc) == "Before\n\n\n\nAfter"
