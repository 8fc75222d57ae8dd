from __future__ import annotations

from stream_builder.extractor import ExtractedBlock, extract_blocks


def test_unterminated_fence_yields_nothing() -> None:
    assert list(extract_blocks("```jsx\ncode")) == []


def test_terminated_fence_yields_one_trimmed_block() -> None:
    blocks = list(extract_blocks("```jsx\ncode\n```"))
    assert len(blocks) == 1
    assert blocks[0].language_tag == "jsx"
    assert blocks[0].content == "code"


def test_extraction_is_idempotent() -> None:
    buffer = "Intro\n```css\n.a{}\n```\ntext\n```js\nlet x = 1;\n```\n```html\n<p>"
    first = list(extract_blocks(buffer))
    second = list(extract_blocks(buffer))
    assert first == second
    assert [b.language_tag for b in first] == ["css", "js"]


def test_blocks_come_in_document_order_with_offsets() -> None:
    buffer = "```css\na{}\n```\n```js\nb()\n```\n"
    blocks = list(extract_blocks(buffer))
    assert blocks == [
        ExtractedBlock("css", "a{}", 0),
        ExtractedBlock("js", "b()", buffer.index("```js")),
    ]


def test_fence_without_language_tag() -> None:
    blocks = list(extract_blocks("```\nplain\n```\n"))
    assert blocks[0].language_tag == ""
    assert blocks[0].content == "plain"


def test_closing_fence_must_be_bare() -> None:
    # "```css" is an opening line, not a close
    buffer = "```jsx\nfunction A() {}\n```css\n"
    assert list(extract_blocks(buffer)) == []


def test_crlf_buffers_are_normalized() -> None:
    blocks = list(extract_blocks("```js\r\nlet a;\r\n```\r\n"))
    assert blocks[0].content == "let a;"


def test_trailing_partial_block_waits_for_close() -> None:
    head = "```css\n.a{}\n```\n```jsx\nfunction Card() {"
    assert len(list(extract_blocks(head))) == 1
    assert len(list(extract_blocks(head + "}\n```"))) == 2


def test_info_text_after_tag_is_ignored() -> None:
    blocks = list(extract_blocks("```jsx title=App.jsx\nfunction App() {}\n```\n"))
    assert blocks[0].language_tag == "jsx"
    assert blocks[0].content == "function App() {}"


def test_long_unfinished_opening_line_is_scanned_quickly() -> None:
    # an opening line still arriving, no newline yet
    buffer = "```" + "a" * 50_000
    assert list(extract_blocks(buffer)) == []
    assert len(list(extract_blocks(buffer + "\nx\n```"))) == 1
