"""
Clean editor HTML for export by dropping `data-*` and `class` attributes.

This is a text transform, not a DOM parse. It only looks inside start tags and
tokenizes their attributes, so text content and attribute values that merely contain
`class=` or `data-` are left alone. Tag names, nesting and other attributes
(notably `href`) are untouched.
"""

import regex

_ATTR_VALUE = r"""(?:"[^"]*"|'[^']*'|[^\s"'=<>`]+)"""

_ATTR_NAME = r"""[^\s"'>/=]+"""

_START_TAG_RE = regex.compile(
    rf"<(?P<name>[A-Za-z][\w:-]*)(?P<attrs>(?:\s+{_ATTR_NAME}(?:\s*=\s*{_ATTR_VALUE})?)*)(?P<end>\s*/?)>"
)

_ATTR_RE = regex.compile(rf"(?P<space>\s+)(?P<name>{_ATTR_NAME})(?:\s*=\s*{_ATTR_VALUE})?")


def _is_stripped_attr(name: str) -> bool:
    name = name.lower()
    return name == "class" or name.startswith("data-")


def _clean_attrs(attrs: str) -> str:
    return _ATTR_RE.sub(
        lambda match: "" if _is_stripped_attr(match.group("name")) else match.group(0), attrs
    )


def clean_html(raw_html: str) -> str:
    """
    Remove every `data-*` and `class` attribute from the start tags in `raw_html`.
    """
    return _START_TAG_RE.sub(
        lambda match: f"<{match.group('name')}{_clean_attrs(match.group('attrs'))}{match.group('end')}>",
        raw_html,
    )


## Tests


def test_clean_html_data_attrs():
    assert clean_html('<p data-pm-slice="1 1 []">Hello</p>') == "<p>Hello</p>"
    assert clean_html("<p data-x='a' data-y=b>Hi</p>") == "<p>Hi</p>"


def test_clean_html_class_attrs():
    raw = '<div class="wrapper"><h1 class="title big">Title</h1><p>Body</p></div>'
    assert clean_html(raw) == "<div><h1>Title</h1><p>Body</p></div>"


def test_clean_html_keeps_href():
    raw = '<a class="link" href="https://example.com" data-tracking="1" target="_blank">x</a>'
    assert clean_html(raw) == '<a href="https://example.com" target="_blank">x</a>'


def test_clean_html_leaves_text_and_values_alone():
    raw = '<p title="see class=&quot;a&quot; data-x">Use class="x" and data-y="z" in text</p>'
    assert clean_html(raw) == raw

    raw_value = '<a href="https://example.com/?q= data-foo=1 class=2">link</a>'
    assert clean_html(raw_value) == raw_value

    assert clean_html("<br/>") == "<br/>"
    assert clean_html('<img class="i" src="a.png" />') == '<img src="a.png" />'
    assert clean_html("<!-- class=\"x\" -->") == "<!-- class=\"x\" -->"
