"""Unit tests for search domain models."""

from pydantic import ValidationError
import pytest

from streamgrep.domain.search import FileMatches, MatchSnippet, SearchRequest, SearchResponse


pytestmark = pytest.mark.unit


def test_request_defaults():
    request = SearchRequest(query="x")

    assert request.limit == 0
    assert request.literal is False
    assert request.context_before == request.context_after == 0


@pytest.mark.parametrize(
    "fields",
    [
        {"query": ""},
        {"query": "x", "limit": -1},
        {"query": "x", "context_before": -2},
    ],
)
def test_request_validation(fields):
    with pytest.raises(ValidationError):
        SearchRequest(**fields)


def test_models_are_frozen():
    request = SearchRequest(query="x")

    with pytest.raises(ValidationError):
        request.query = "y"


def test_response_serializes_to_json():
    response = SearchResponse(
        query="x",
        files=[FileMatches(name="a.py", link="/show/a.py", matches=[MatchSnippet(line_number=1, line="x")])],
        match_count=1,
    )

    data = response.model_dump(mode="json")

    assert data["files"][0]["matches"][0] == {
        "line_number": 1,
        "line": "x",
        "before": [],
        "after": [],
        "stream_offset": 0,
    }
    assert data["limited"] is False
