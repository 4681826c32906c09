from bloom.model.doc_tree import flatten_text, Heading, iter_nodes, Node, node_from_dict
from bloom.model.documents_model import UNTITLED


def extract_title(doc: Node) -> str:
    """
    Best guess at a title for a document: the text of the first level-1 heading
    anywhere in the tree, else the first top-level block with non-blank text,
    else "Untitled".
    """
    for node in iter_nodes(doc):
        if isinstance(node, Heading) and node.level == 1:
            return flatten_text(node)

    for node in doc.content:
        text = flatten_text(node).strip()
        if text:
            return text

    return UNTITLED


## Tests


def _doc(*children: dict) -> Node:
    return node_from_dict({"type": "doc", "content": list(children)})


def _h1(*children: dict) -> dict:
    return {"type": "heading", "attrs": {"level": 1}, "content": list(children)}


def _para(text: str) -> dict:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}] if text else []}


def test_h1_wins():
    doc = _doc(_para("Intro text"), _h1({"type": "text", "text": "Real Title"}), _para("More"))
    assert extract_title(doc) == "Real Title"


def test_nested_h1_found():
    quote = {"type": "blockquote", "content": [_h1({"type": "text", "text": "Quoted"})]}
    assert extract_title(_doc(_para(""), quote)) == "Quoted"


def test_h1_marks_stripped():
    doc = _doc(
        _h1(
            {"type": "text", "text": "Bold", "marks": [{"type": "bold"}]},
            {"type": "text", "text": " and "},
            {"type": "text", "text": "linked", "marks": [{"type": "link", "attrs": {"href": "x"}}]},
        )
    )
    assert extract_title(doc) == "Bold and linked"


def test_fallbacks():
    h2 = {"type": "heading", "attrs": {"level": 2}, "content": [{"type": "text", "text": "Sub"}]}
    assert extract_title(_doc(_para("  "), _para("  First words "), h2)) == "First words"
    assert extract_title(_doc(_para(""))) == UNTITLED
    assert extract_title(_doc()) == UNTITLED
