"""Filter graph string synthesis.

Turns declarative filter specifications into ffmpeg filter-graph syntax::

    [in1][in2]filter=opt1=v1:opt2=v2[out1]

A specification is either an already formatted string, which passes through
untouched, or a structured spec (a ``FilterSpec`` or an equivalent mapping
with ``filter``, ``inputs``, ``outputs`` and ``options`` keys).
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import re
from typing import Any

from .arguments import format_token

FilterOptions = str | int | float | Sequence[Any] | Mapping[str, Any] | None

_STREAM_LABEL_RE = re.compile(r"^\[?(.*?)\]?$")
_FILTER_ESCAPE_RE = re.compile(r"[,]")


@dataclass(frozen=True, slots=True)
class FilterSpec:
    """A structured filter specification.

    Attributes:
        filter: Filter name (e.g. ``scale``).
        inputs: Input stream label(s); ffmpeg picks unused streams when omitted.
        outputs: Output stream label(s); ffmpeg assigns the output when omitted.
        options: A scalar, a list of positional values, or named options.
    """

    filter: str
    inputs: str | Sequence[str] | None = None
    outputs: str | Sequence[str] | None = None
    options: FilterOptions = None


FilterLike = str | FilterSpec | Mapping[str, Any]


def stream_label(spec: str) -> str:
    """Wrap a stream specifier in brackets, stripping any existing ones."""
    return _STREAM_LABEL_RE.sub(r"[\1]", spec, count=1)


def _labels(value: str | Sequence[str] | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return stream_label(value)
    return "".join(stream_label(label) for label in value)


def _quote(value: Any) -> str:
    if isinstance(value, str) and _FILTER_ESCAPE_RE.search(value):
        return f"'{value}'"
    return format_token(value)


def _options(options: FilterOptions) -> str:
    if not options:
        return ""
    if isinstance(options, str | int | float):
        return "=" + format_token(options)
    if isinstance(options, Mapping):
        return "=" + ":".join(f"{key}={_quote(value)}" for key, value in options.items())
    return "=" + ":".join(_quote(value) for value in options)


def make_filter_string(spec: FilterLike) -> str:
    """Synthesize a single filter string.

    Args:
        spec: A filter string, ``FilterSpec``, or mapping.

    Returns:
        The filter in ffmpeg syntax.

    Raises:
        ValueError: When a mapping spec lacks a ``filter`` key.
    """
    if isinstance(spec, str):
        return spec
    if isinstance(spec, Mapping):
        if "filter" not in spec:
            raise ValueError(f"Filter specification has no filter name: {spec!r}")
        spec = FilterSpec(
            filter=spec["filter"],
            inputs=spec.get("inputs"),
            outputs=spec.get("outputs"),
            options=spec.get("options"),
        )
    return (
        _labels(spec.inputs) + spec.filter + _options(spec.options) + _labels(spec.outputs)
    )


def make_filter_strings(specs: Sequence[FilterLike]) -> list[str]:
    """Synthesize filter strings, preserving order."""
    return [make_filter_string(spec) for spec in specs]
