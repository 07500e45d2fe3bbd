"""Tests for ArgumentList and token formatting."""

import pytest

from ffcmd.arguments import ArgumentList, format_token


@pytest.mark.unit
@pytest.mark.parametrize(
    ("token", "expected"),
    [("-i", "-i"), (2, "2"), (2.0, "2"), (29.97, "29.97"), (-0.5, "-0.5")],
)
def test_format_token(token: str | int | float, expected: str) -> None:
    """Whole floats render without a fractional part."""
    assert format_token(token) == expected


@pytest.mark.unit
def test_append_flattens_single_list() -> None:
    """A single list argument is flattened; several arguments are appended as-is."""
    args = ArgumentList()
    args.append("-acodec", "aac")
    args.append(["-ac", 2])
    args.append("-an")

    assert args.get() == ["-acodec", "aac", "-ac", 2, "-an"]
    assert len(args) == 5
    assert list(args) == args.get()


@pytest.mark.unit
def test_find() -> None:
    """find() returns the tokens following the first occurrence of a key."""
    args = ArgumentList(["-f", "mp4", "-t", 10, "-f", "flv"])

    assert args.find("-f", 1) == ["mp4"]
    assert args.find("-t", 3) == [10, "-f", "flv"]
    assert args.find("-t") == []
    assert args.find("-ss", 1) is None


@pytest.mark.unit
def test_remove() -> None:
    """remove() drops the first key and its following tokens."""
    args = ArgumentList(["-f", "mp4", "-t", 10])

    args.remove("-f", 1)
    assert args.get() == ["-t", 10]

    args.remove("-missing", 1)
    assert args.get() == ["-t", 10]


@pytest.mark.unit
def test_clear_and_clone_are_independent() -> None:
    """Clones do not share storage with the original."""
    args = ArgumentList(["-vn"])
    copy = args.clone()
    copy.append("-an")
    args.clear()

    assert not args
    assert copy.get() == ["-vn", "-an"]
