from textwrap import dedent

import marko

standard_markdown = marko.Markdown()


def markdown_to_html(markdown: str, converter: marko.Markdown = standard_markdown) -> str:
    """
    Convert Markdown to HTML. Used when a document is exported as HTML without the
    editor's own rendering at hand.
    """
    return converter.convert(markdown)


## Tests


def test_markdown_to_html():
    markdown = dedent(
        """
        # Heading

        This is **bold** and a [link](https://example.com).

        - Item 1
        - Item 2
        """
    )
    expected_html = dedent(
        """
        <h1>Heading</h1>
        <p>This is <strong>bold</strong> and a <a href="https://example.com">link</a>.</p>
        <ul>
        <li>Item 1</li>
        <li>Item 2</li>
        </ul>
        """
    )

    assert markdown_to_html(markdown).strip() == expected_html.strip()
