"""Tests for filter string synthesis."""

import pytest

from ffcmd.filters import FilterSpec, make_filter_string, make_filter_strings, stream_label


@pytest.mark.unit
@pytest.mark.parametrize(
    ("spec", "expected"),
    [("0:a", "[0:a]"), ("[0:a]", "[0:a]"), ("out", "[out]"), ("[out", "[out]")],
)
def test_stream_label(spec: str, expected: str) -> None:
    """Labels are wrapped in exactly one pair of brackets."""
    assert stream_label(spec) == expected


@pytest.mark.unit
def test_string_passes_through() -> None:
    """Preformatted filter strings are left untouched."""
    assert make_filter_string("scale=w=640:h=-1") == "scale=w=640:h=-1"


@pytest.mark.unit
def test_options_forms() -> None:
    """Scalar, positional and named options."""
    assert make_filter_string({"filter": "hflip"}) == "hflip"
    assert make_filter_string({"filter": "volume", "options": 0.5}) == "volume=0.5"
    assert make_filter_string(FilterSpec("crop", options=[640, 480, 0, 0])) == (
        "crop=640:480:0:0"
    )
    assert make_filter_string(
        FilterSpec("scale", options={"w": 1280.0, "h": "trunc(ow/a/2)*2"})
    ) == "scale=w=1280:h=trunc(ow/a/2)*2"


@pytest.mark.unit
def test_values_with_commas_are_quoted() -> None:
    """Option values containing commas are single-quoted."""
    spec = FilterSpec("select", options={"expr": "eq(n,0)"})

    assert make_filter_string(spec) == "select=expr='eq(n,0)'"
    assert make_filter_string(FilterSpec("drawtext", options=["a,b"])) == "drawtext='a,b'"


@pytest.mark.unit
def test_inputs_and_outputs() -> None:
    """Input and output labels surround the filter."""
    spec = {
        "filter": "overlay",
        "inputs": ["0:v", "[logo]"],
        "outputs": "out",
        "options": {"x": 10, "y": 10},
    }

    assert make_filter_string(spec) == "[0:v][logo]overlay=x=10:y=10[out]"
    assert make_filter_string(FilterSpec("split", "0:v", ["a", "b"])) == "[0:v]split[a][b]"


@pytest.mark.unit
def test_mapping_without_filter_name() -> None:
    """A mapping spec must name its filter."""
    with pytest.raises(ValueError, match="no filter name"):
        make_filter_string({"options": {"w": 1}})


@pytest.mark.unit
def test_make_filter_strings_preserves_order() -> None:
    """Mixed specs are synthesized in order."""
    assert make_filter_strings(["hflip", {"filter": "vflip"}, FilterSpec("null")]) == [
        "hflip",
        "vflip",
        "null",
    ]
