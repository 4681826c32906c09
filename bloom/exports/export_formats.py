from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from bloom.errors import UnknownExportFormat
from bloom.model.doc_tree import Node
from bloom.text_formatting.html_cleanup import clean_html
from bloom.text_formatting.markdown_converter import to_markdown
from bloom.text_formatting.markdown_util import markdown_to_html

ConvertFn = Callable[[Node, str], Union[str, Awaitable[str]]]
"""Takes the content tree and the editor's raw HTML, and returns the exported text."""


@dataclass(frozen=True)
class ExportFormat:
    name: str
    extension: str
    convert: ConvertFn


def _convert_markdown(content: Node, raw_html: str) -> str:
    return to_markdown(content)


def _convert_html(content: Node, raw_html: str) -> str:
    if not raw_html:
        raw_html = markdown_to_html(to_markdown(content))
    return clean_html(raw_html)


MARKDOWN_FORMAT = ExportFormat(name="Markdown", extension="md", convert=_convert_markdown)

HTML_FORMAT = ExportFormat(name="HTML", extension="html", convert=_convert_html)


def _canon_ext(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


class ExportRegistry:
    """
    The export formats on offer. Markdown and HTML are always present to start with.
    Markdown is the fallback for any unrecognized extension.
    """

    def __init__(self, formats: Optional[Iterable[ExportFormat]] = None):
        self._formats: List[ExportFormat] = [MARKDOWN_FORMAT, HTML_FORMAT]
        for export_format in formats or []:
            self.register(export_format)

    def register(self, export_format: ExportFormat) -> None:
        """
        Add a format, replacing any existing format with the same extension.
        """
        ext = _canon_ext(export_format.extension)
        self._formats = [f for f in self._formats if _canon_ext(f.extension) != ext]
        self._formats.append(export_format)

    def formats(self) -> List[ExportFormat]:
        return list(self._formats)

    def get(self, extension: str) -> ExportFormat:
        ext = _canon_ext(extension)
        for export_format in self._formats:
            if _canon_ext(export_format.extension) == ext:
                return export_format
        raise UnknownExportFormat(f"No export format for extension: {extension!r}")

    def for_extension(self, extension: str) -> ExportFormat:
        try:
            return self.get(extension)
        except UnknownExportFormat:
            return self.markdown()

    def markdown(self) -> ExportFormat:
        return self.get(MARKDOWN_FORMAT.extension)


## Tests


def test_export_registry():
    registry = ExportRegistry()
    assert [f.extension for f in registry.formats()] == ["md", "html"]
    assert registry.for_extension(".HTML") is HTML_FORMAT
    assert registry.for_extension("docx") is MARKDOWN_FORMAT

    plain = ExportFormat(name="Plain text", extension="txt", convert=lambda content, html: "text")
    registry.register(plain)
    assert registry.for_extension("txt") is plain
    assert len(registry.formats()) == 3

    # Registries are independent.
    assert ExportRegistry().for_extension("txt") is MARKDOWN_FORMAT

    try:
        registry.get("pdf")
        assert False
    except UnknownExportFormat:
        pass


def test_html_convert():
    from bloom.model.doc_tree import node_from_dict

    content = node_from_dict(
        {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Hi"}]}]}
    )
    assert _convert_html(content, '<p class="x" data-y="1">Hi</p>') == "<p>Hi</p>"
    assert _convert_html(content, "").strip() == "<p>Hi</p>"
