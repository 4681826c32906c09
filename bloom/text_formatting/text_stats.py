from bloom.model.doc_tree import Node, node_from_dict, plain_text


def count_words(text: str) -> int:
    """
    Number of whitespace-separated words in `text`.
    """
    return len(text.split())


def doc_word_count(doc: Node) -> int:
    return count_words(plain_text(doc))


## Tests


def test_count_words():
    assert count_words("") == 0
    assert count_words("   \n\t  ") == 0
    assert count_words("The quick brown fox") == 4
    assert count_words("hello   world") == 2


def test_doc_word_count():
    doc = node_from_dict(
        {
            "type": "doc",
            "content": [
                {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]},
                {"type": "paragraph", "content": [{"type": "text", "text": "world again"}]},
            ],
        }
    )
    assert doc_word_count(doc) == 3
