"""
The document content tree.

A document's content is a recursive tree of block nodes (paragraphs, headings, lists,
code blocks, quotes) whose leaves are text nodes carrying inline marks (bold, italic,
code, links). On disk and on the wire, nodes use the editor's JSON shape:

    {"type": "heading", "attrs": {"level": 1}, "content": [
        {"type": "text", "text": "Hello", "marks": [{"type": "bold"}]}]}

Each recognized node and mark type is its own dataclass, so converters can `match`
on them. Unrecognized types parse into `OpaqueNode` or `OpaqueMark`, which keep
everything they were given, so newer files survive a load and save unchanged.

No validation happens here. Malformed shapes (a `content` that isn't a list, a child
that isn't an object) are read as empty content, never as an error.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Tuple, Type, Union


## Marks


@dataclass
class MarkBase:
    attrs: Dict[str, Any] = field(default_factory=dict)
    empty_keys: Tuple[str, ...] = field(default=(), compare=False, repr=False)
    """Wire keys that were present but empty, written back as they were."""

    mark_type: ClassVar[str] = ""

    @property
    def type_name(self) -> str:
        return self.mark_type

    def to_dict(self) -> Dict[str, Any]:
        mark_dict: Dict[str, Any] = {"type": self.type_name}
        if self.attrs or "attrs" in self.empty_keys:
            mark_dict["attrs"] = dict(self.attrs)
        return mark_dict


@dataclass
class Bold(MarkBase):
    mark_type = "bold"


@dataclass
class Italic(MarkBase):
    mark_type = "italic"


@dataclass
class Code(MarkBase):
    mark_type = "code"


@dataclass
class Link(MarkBase):
    mark_type = "link"

    @property
    def href(self) -> str:
        href = self.attrs.get("href")
        return href if isinstance(href, str) else ""


@dataclass
class OpaqueMark(MarkBase):
    """A mark of a type we don't recognize."""

    raw_type: str = ""

    @property
    def type_name(self) -> str:
        return self.raw_type


Mark = Union[Bold, Italic, Code, Link, OpaqueMark]

MARK_TYPES: Dict[str, Type[MarkBase]] = {cls.mark_type: cls for cls in (Bold, Italic, Code, Link)}


## Nodes


@dataclass
class NodeBase:
    attrs: Dict[str, Any] = field(default_factory=dict)
    content: List["Node"] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)
    """Any other keys found on the node, kept for round-tripping."""
    empty_keys: Tuple[str, ...] = field(default=(), compare=False, repr=False)
    """Wire keys that were present but empty, written back as they were."""

    node_type: ClassVar[str] = ""
    wire_keys: ClassVar[Tuple[str, ...]] = ("type", "attrs", "content")

    @property
    def type_name(self) -> str:
        return self.node_type

    def to_dict(self) -> Dict[str, Any]:
        node_dict: Dict[str, Any] = {"type": self.type_name}
        if self.attrs or "attrs" in self.empty_keys:
            node_dict["attrs"] = dict(self.attrs)
        if self.content or "content" in self.empty_keys:
            node_dict["content"] = [child.to_dict() for child in self.content]
        node_dict.update(self.extra)
        return node_dict


@dataclass
class Doc(NodeBase):
    node_type = "doc"


@dataclass
class Paragraph(NodeBase):
    node_type = "paragraph"


@dataclass
class Heading(NodeBase):
    node_type = "heading"

    @property
    def level(self) -> int:
        level = self.attrs.get("level", 1)
        if isinstance(level, bool) or not isinstance(level, int) or level < 1:
            return 1
        return level


@dataclass
class BulletList(NodeBase):
    node_type = "bulletList"


@dataclass
class OrderedList(NodeBase):
    node_type = "orderedList"


@dataclass
class ListItem(NodeBase):
    node_type = "listItem"


@dataclass
class CodeBlock(NodeBase):
    node_type = "codeBlock"


@dataclass
class Blockquote(NodeBase):
    node_type = "blockquote"


@dataclass
class Text(NodeBase):
    text: str = ""
    marks: List[Mark] = field(default_factory=list)

    node_type = "text"
    wire_keys = ("type", "attrs", "text", "marks")

    def to_dict(self) -> Dict[str, Any]:
        node_dict: Dict[str, Any] = {"type": self.type_name}
        if self.attrs or "attrs" in self.empty_keys:
            node_dict["attrs"] = dict(self.attrs)
        node_dict["text"] = self.text
        if self.marks or "marks" in self.empty_keys:
            node_dict["marks"] = [mark.to_dict() for mark in self.marks]
        node_dict.update(self.extra)
        return node_dict


@dataclass
class OpaqueNode(NodeBase):
    """
    A node of a type we don't recognize. Converters render it as nothing, but it keeps
    its type, attributes, children, text and marks so it can be written back out.
    """

    raw_type: str = ""
    text: Optional[str] = None
    marks: List[Mark] = field(default_factory=list)

    wire_keys = ("type", "attrs", "content", "text", "marks")

    @property
    def type_name(self) -> str:
        return self.raw_type

    def to_dict(self) -> Dict[str, Any]:
        node_dict = super().to_dict()
        if self.text is not None:
            node_dict["text"] = self.text
        if self.marks or "marks" in self.empty_keys:
            node_dict["marks"] = [mark.to_dict() for mark in self.marks]
        return node_dict


Node = Union[
    Doc,
    Paragraph,
    Heading,
    BulletList,
    OrderedList,
    ListItem,
    CodeBlock,
    Blockquote,
    Text,
    OpaqueNode,
]

NODE_TYPES: Dict[str, Type[NodeBase]] = {
    cls.node_type: cls
    for cls in (Doc, Paragraph, Heading, BulletList, OrderedList, ListItem, CodeBlock, Blockquote, Text)
}


## Parsing


def _dict_or_empty(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _empty_keys(data: Mapping[str, Any], keys: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(key for key in keys if isinstance(data.get(key), (list, Mapping)) and not data[key])


def mark_from_dict(data: Mapping[str, Any]) -> Mark:
    type_name = data.get("type")
    attrs = _dict_or_empty(data.get("attrs"))
    cls = MARK_TYPES.get(type_name) if isinstance(type_name, str) else None
    empty_keys = _empty_keys(data, ("attrs",))
    if cls:
        return cls(attrs=attrs, empty_keys=empty_keys)  # type: ignore
    return OpaqueMark(
        attrs=attrs,
        empty_keys=empty_keys,
        raw_type=type_name if isinstance(type_name, str) else "",
    )


def _marks_from(value: Any) -> List[Mark]:
    if not isinstance(value, list):
        return []
    return [mark_from_dict(mark) for mark in value if isinstance(mark, Mapping)]


def _children_from(value: Any) -> List[Node]:
    if not isinstance(value, list):
        return []
    return [node_from_dict(child) for child in value if isinstance(child, Mapping)]


def node_from_dict(data: Mapping[str, Any]) -> Node:
    """
    Build a node (and its subtree) from its JSON dictionary form.
    """
    type_name = data.get("type")
    cls = NODE_TYPES.get(type_name) if isinstance(type_name, str) else None
    attrs = _dict_or_empty(data.get("attrs"))
    empty_keys = _empty_keys(data, ("attrs", "content", "marks"))

    if cls is Text:
        text = data.get("text")
        return Text(
            attrs=attrs,
            text=text if isinstance(text, str) else "",
            marks=_marks_from(data.get("marks")),
            extra={k: v for k, v in data.items() if k not in Text.wire_keys},
            empty_keys=empty_keys,
        )
    elif cls:
        return cls(  # type: ignore
            attrs=attrs,
            content=_children_from(data.get("content")),
            extra={k: v for k, v in data.items() if k not in cls.wire_keys},
            empty_keys=empty_keys,
        )
    else:
        text = data.get("text")
        return OpaqueNode(
            attrs=attrs,
            content=_children_from(data.get("content")),
            extra={k: v for k, v in data.items() if k not in OpaqueNode.wire_keys},
            empty_keys=empty_keys,
            raw_type=type_name if isinstance(type_name, str) else "",
            text=text if isinstance(text, str) else None,
            marks=_marks_from(data.get("marks")),
        )


def empty_doc() -> Doc:
    return Doc()


## Traversal


def iter_nodes(node: Node) -> Iterator[Node]:
    """
    Depth-first, pre-order enumeration of a node and all its descendants.
    """
    yield node
    for child in node.content:
        yield from iter_nodes(child)


def flatten_text(node: Node) -> str:
    """
    All leaf text under a node, concatenated in document order. Marks are ignored.
    """
    if isinstance(node, Text):
        return node.text
    if isinstance(node, OpaqueNode) and node.text:
        return node.text
    return "".join(flatten_text(child) for child in node.content)


def plain_text(node: Node) -> str:
    """
    Text of a subtree with blocks separated by newlines, so words in adjacent
    paragraphs don't run together.
    """
    if isinstance(node, Text):
        return node.text
    if not node.content or any(isinstance(child, Text) for child in node.content):
        return flatten_text(node)
    return "\n".join(plain_text(child) for child in node.content)


## Tests


def _sample_dict() -> Dict[str, Any]:
    return {
        "type": "doc",
        "content": [
            {
                "type": "heading",
                "attrs": {"level": 2},
                "content": [{"type": "text", "text": "Intro"}],
            },
            {
                "type": "paragraph",
                "content": [
                    {"type": "text", "text": "Hello "},
                    {"type": "text", "text": "bold", "marks": [{"type": "bold"}]},
                    {
                        "type": "text",
                        "text": "link",
                        "marks": [
                            {"type": "link", "attrs": {"href": "https://example.com", "target": "_blank"}},
                            {"type": "highlight", "attrs": {"color": "yellow"}},
                        ],
                    },
                ],
            },
            {"type": "callout", "attrs": {"tone": "info"}, "content": [{"type": "text", "text": "Note"}]},
        ],
    }


def test_node_from_dict_types():
    doc = node_from_dict(_sample_dict())
    assert isinstance(doc, Doc)
    heading, para, callout = doc.content
    assert isinstance(heading, Heading) and heading.level == 2
    assert isinstance(para, Paragraph)
    link_text = para.content[2]
    assert isinstance(link_text, Text)
    link, highlight = link_text.marks
    assert isinstance(link, Link) and link.href == "https://example.com"
    assert isinstance(highlight, OpaqueMark) and highlight.type_name == "highlight"
    assert isinstance(callout, OpaqueNode) and callout.type_name == "callout"


def test_round_trip_preserves_unknowns():
    data = _sample_dict()
    data["content"][1]["futureKey"] = {"x": 1}
    assert node_from_dict(data).to_dict() == data


def test_malformed_shapes_are_empty():
    doc = node_from_dict({"type": "doc", "content": [{"type": "paragraph", "content": "oops"}, 7]})
    assert len(doc.content) == 1
    assert doc.content[0].content == []
    assert flatten_text(doc) == ""

    heading = node_from_dict({"type": "heading", "attrs": {"level": "big"}})
    assert isinstance(heading, Heading) and heading.level == 1


def test_traversal():
    doc = node_from_dict(_sample_dict())
    types = [node.type_name for node in iter_nodes(doc)]
    assert types == ["doc", "heading", "text", "paragraph", "text", "text", "text", "callout", "text"]
    assert flatten_text(doc) == "IntroHello boldlinkNote"
    assert plain_text(doc) == "Intro\nHello boldlink\nNote"


def test_explicit_empty_keys_are_kept():
    data = {
        "type": "doc",
        "content": [
            {"type": "paragraph", "attrs": {}, "content": []},
            {"type": "text", "text": "x", "marks": [{"type": "bold", "attrs": {}}]},
        ],
    }
    assert node_from_dict(data).to_dict() == data
    assert node_from_dict({"type": "doc", "content": []}).to_dict() == {"type": "doc", "content": []}
    assert node_from_dict({"type": "doc", "content": []}) == Doc()
    assert Doc().to_dict() == {"type": "doc"}
