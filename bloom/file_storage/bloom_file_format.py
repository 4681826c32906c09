"""
The `.bloom` file format: one JSON object per document.

    {"content": <node>, "title": "...", "subtitle": "...",
     "createdAt": "<ISO-8601>", "modifiedAt": "<ISO-8601>",
     "tags": ["..."], "status": "draft" | "published", ...}

Any other top-level keys are kept on the document and written back unchanged.
"""

import json
from typing import Any, Dict, Mapping, Optional

from bloom.config.logger import get_logger
from bloom.errors import FileFormatError
from bloom.model.doc_tree import Doc, empty_doc, node_from_dict
from bloom.model.documents_model import dedupe_tags, DocStatus, Document, UNTITLED
from bloom.util.time_utils import now_iso

log = get_logger(__name__)

BLOOM_EXT = ".bloom"

DOCUMENT_FIELDS = ["content", "title", "subtitle", "createdAt", "modifiedAt", "tags", "status"]


def document_to_dict(doc: Document) -> Dict[str, Any]:
    doc_dict: Dict[str, Any] = {
        "content": doc.content.to_dict(),
        "title": doc.title,
        "subtitle": doc.subtitle,
        "createdAt": doc.created_at,
        "modifiedAt": doc.modified_at,
        "tags": list(doc.tags),
        "status": doc.status.value,
    }
    for key, value in doc.extra.items():
        if key not in doc_dict:
            doc_dict[key] = value
    return doc_dict


def serialize_document(doc: Document) -> str:
    """
    Canonical JSON for a document, including any unknown fields it was loaded with.
    """
    return json.dumps(document_to_dict(doc), ensure_ascii=False)


def _content_from(value: Any) -> Doc:
    if not isinstance(value, Mapping):
        return empty_doc()
    node = node_from_dict(value)
    if isinstance(node, Doc):
        return node
    log.warning("Document content has root type %r, wrapping it in a doc", node.type_name)
    return Doc(content=[node])


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def document_from_dict(doc_dict: Mapping[str, Any], doc_id: Optional[str] = None) -> Document:
    """
    Build a document from its JSON object, defaulting any field that is missing or
    of the wrong type.
    """
    tags = doc_dict.get("tags")
    return Document(
        content=_content_from(doc_dict.get("content")),
        title=_str_or(doc_dict.get("title"), UNTITLED),
        subtitle=_str_or(doc_dict.get("subtitle"), ""),
        created_at=_str_or(doc_dict.get("createdAt"), now_iso()),
        modified_at=_str_or(doc_dict.get("modifiedAt"), now_iso()),
        tags=dedupe_tags(tags) if isinstance(tags, list) else [],
        status=DocStatus.published if doc_dict.get("status") == "published" else DocStatus.draft,
        extra={k: v for k, v in doc_dict.items() if k not in DOCUMENT_FIELDS},
        id=doc_id,
    )


def deserialize_document(text: str, doc_id: Optional[str] = None) -> Document:
    """
    Parse the contents of a `.bloom` file. Raises `FileFormatError` if the text
    isn't valid JSON or isn't a JSON object.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise FileFormatError(f"Failed to parse bloom file: {e}") from e

    if not isinstance(parsed, dict):
        raise FileFormatError(
            f"Failed to parse bloom file: expected a JSON object but got {type(parsed).__name__}"
        )

    return document_from_dict(parsed, doc_id=doc_id)


## Tests


def _sample_document() -> Document:
    content = node_from_dict(
        {
            "type": "doc",
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Hi"}]},
                {"type": "paragraph", "content": [{"type": "text", "text": "Body ✿"}]},
            ],
        }
    )
    assert isinstance(content, Doc)
    return Document(
        content=content,
        title="Hi",
        subtitle="A subtitle",
        created_at="2026-01-01T00:00:00.000Z",
        modified_at="2026-01-02T00:00:00.000Z",
        tags=["a", "b"],
        status=DocStatus.published,
        extra={"wordGoal": 500, "plugins": {"focus": True}},
    )


def test_round_trip():
    doc = _sample_document()
    text = serialize_document(doc)
    again = deserialize_document(text)
    assert again == doc
    assert again.extra == {"wordGoal": 500, "plugins": {"focus": True}}
    assert serialize_document(again) == text


def test_parse_error():
    try:
        deserialize_document("not valid json{")
        assert False
    except FileFormatError as e:
        assert "Failed to parse bloom file" in str(e)
        assert isinstance(e.__cause__, json.JSONDecodeError)

    try:
        deserialize_document("[1, 2]")
        assert False
    except FileFormatError as e:
        assert "expected a JSON object" in str(e)


def test_defaults():
    doc = deserialize_document('{"content": {"type": "doc", "content": []}}', doc_id="x")
    assert doc.id == "x"
    assert doc.title == UNTITLED
    assert doc.subtitle == ""
    assert doc.tags == []
    assert doc.status == DocStatus.draft
    assert doc.created_at and doc.modified_at
    assert doc.extra == {}

    odd = deserialize_document('{"content": 5, "title": 7, "tags": "x", "status": "archived"}')
    assert odd.content == empty_doc()
    assert odd.title == UNTITLED
    assert odd.tags == []
    assert odd.status == DocStatus.draft

    wrapped = deserialize_document('{"content": {"type": "paragraph"}, "tags": ["a", "a"]}')
    assert wrapped.content.content[0].type_name == "paragraph"
    assert wrapped.tags == ["a"]
