from __future__ import annotations

import json

import pytest

from errors import MalformedResponse
from response_parser import extract_json_text, extract_slide_schema


def test_fenced_json_block_is_extracted() -> None:
    raw = 'Sure! ```json\n{"slides":[]}\n```'
    assert extract_json_text(raw) == '{"slides":[]}'
    assert extract_slide_schema(raw).slides == []


def test_fenced_block_is_preferred_over_other_braces() -> None:
    raw = (
        'Here is a note {"slides": [{"title": "Wrong"}]} and the answer:\n'
        '```json\n{"slides": [{"title": "Right", "content": [], "image_keyword": ""}]}\n```\n'
        "Trailing {not json}"
    )
    result = extract_slide_schema(raw)
    assert [s.title for s in result.slides] == ["Right"]


def test_unfenced_object_is_found_between_first_and_last_brace() -> None:
    raw = 'Model says: {"slides": [{"title": "A", "content": ["x"], "image_keyword": "space"}]} Done.'
    result = extract_slide_schema(raw)
    assert result.slides[0].title == "A"
    assert result.slides[0].image_keyword == "space"


def test_invalid_fenced_block_falls_back_to_brace_span() -> None:
    raw ='prefix ```json\nnot json at all\n``` {"slides": [{"title": "Recovered"}]}'
    assert extract_slide_schema(raw).slides[0].title == "Recovered"


def test_bullet_order_is_preserved() -> None:
    bullets = ["zeta", "alpha", "mu", "beta", "omega"]
    raw = json.dumps({"slides": [{"title": "Order", "content": bullets, "image_keyword": "x"}]})
    assert extract_slide_schema(raw).slides[0].content == bullets


def test_missing_fields_get_defaults() -> None:
    raw = '{"slides": [{}, {"title": null, "content": null, "image_keyword": null}]}'
    result = extract_slide_schema(raw)
    for slide in result.slides:
        assert slide.title == ""
        assert slide.content == []
        assert slide.image_keyword == ""


def test_content_is_coerced_to_string_list() -> None:
    raw = json.dumps(
        {
            "slides": [
                {"title": "Text", "content": "line one\nline two", "image_keyword": " rocket "},
                {"title": 7, "content": [1, "two", 3.5]},
            ]
        }
    )
    first, second = extract_slide_schema(raw).slides
    assert first.content == ["line one", "line two"]
    assert first.image_keyword == "rocket"
    assert second.title == "7"
    assert second.content == ["1", "two", "3.5"]


@pytest.mark.parametrize(
    "raw",
    [
        "I could not produce slides today.",
        "",
        "{ this is not json }",
        '{"title": "No slides here"}',
        '{"slides": "not-a-list"}',
        '{"slides": ["just a string"]}',
        "[1, 2, 3]",
    ],
)
def test_malformed_responses_raise(raw: str) -> None:
    with pytest.raises(MalformedResponse) as exc:
        extract_slide_schema(raw)
    assert exc.value.raw_text == raw
    assert exc.value.status_code == 500
