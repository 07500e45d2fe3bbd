"""Derivation of scale/pad filters from requested size, aspect and padding.

The filters are always recomputed from the complete ``SizeData`` record so
that ``size()``, ``aspect()`` and ``autopad()`` can be called in any order.
"""

from dataclasses import dataclass
import math
import re
from typing import Any

from .arguments import format_token
from .exceptions import InvalidAspectError, InvalidSizeError

_FIXED_SIZE_RE = re.compile(r"([0-9]+)x([0-9]+)")
_FIXED_WIDTH_RE = re.compile(r"([0-9]+)x\?")
_FIXED_HEIGHT_RE = re.compile(r"\?x([0-9]+)")
_PERCENT_RE = re.compile(r"\b([0-9]{1,3})%")
_ASPECT_RE = re.compile(r"^(\d+):(\d+)$")


@dataclass
class SizeData:
    """Most recently requested size, aspect and padding for one output.

    Attributes:
        size: Size specification (``640x480``, ``640x?``, ``?x480`` or ``50%``).
        aspect: Aspect ratio as a number.
        pad: Padding color, or False/None when padding is disabled.
    """

    size: str | None = None
    aspect: float | None = None
    pad: str | bool | None = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round_even(value: float) -> int:
    """Round to the nearest multiple of two, halves rounding up."""
    return _round_half_up(value / 2) * 2


def parse_aspect(aspect: str | float) -> float:
    """Parse an aspect ratio given as a number or ``W:H`` string.

    Raises:
        InvalidAspectError: When the value cannot be parsed or is not a
            positive finite ratio.
    """
    try:
        value = float(aspect)
    except ValueError:
        assert isinstance(aspect, str)
        match = _ASPECT_RE.match(aspect)
        if not match or int(match.group(2)) == 0:
            raise InvalidAspectError(aspect) from None
        value = int(match.group(1)) / int(match.group(2))
    if not math.isfinite(value) or value <= 0:
        raise InvalidAspectError(str(aspect))
    return value


def _scale_pad_filters(
    width: int, height: int, aspect_value: float, color: str
) -> list[dict[str, Any]]:
    aspect = format_token(aspect_value)
    # Padding goes on top/bottom when the input is wider than requested,
    # on left/right otherwise. Computed dimensions are truncated to even values.
    return [
        {
            "filter": "scale",
            "options": {
                "w": f"if(gt(a,{aspect}),{width},trunc({height}*a/2)*2)",
                "h": f"if(lt(a,{aspect}),{height},trunc({width}/a/2)*2)",
            },
        },
        {
            "filter": "pad",
            "options": {
                "w": width,
                "h": height,
                "x": f"if(gt(a,{aspect}),0,({width}-iw)/2)",
                "y": f"if(lt(a,{aspect}),0,({height}-ih)/2)",
                "color": color,
            },
        },
    ]


def size_filters(data: SizeData) -> list[dict[str, Any]]:
    """Compute the filter specs implementing ``data``.

    Args:
        data: The persisted size request.

    Returns:
        Filter specs (mappings accepted by ``make_filter_strings``); empty when
        no size has been requested.

    Raises:
        InvalidSizeError: When the size specification cannot be parsed.
    """
    if data.size is None:
        return []

    size = data.size
    pad = data.pad if isinstance(data.pad, str) and data.pad else None

    percent = _PERCENT_RE.search(size)
    fixed_size = _FIXED_SIZE_RE.search(size)
    fixed_width = _FIXED_WIDTH_RE.search(size)
    fixed_height = _FIXED_HEIGHT_RE.search(size)

    if percent:
        ratio = format_token(int(percent.group(1)) / 100)
        return [
            {
                "filter": "scale",
                "options": {
                    "w": f"trunc(iw*{ratio}/2)*2",
                    "h": f"trunc(ih*{ratio}/2)*2",
                },
            }
        ]

    if fixed_size:
        width = _round_even(int(fixed_size.group(1)))
        height = _round_even(int(fixed_size.group(2)))
        if pad:
            return _scale_pad_filters(width, height, width / height, pad)
        return [{"filter": "scale", "options": {"w": width, "h": height}}]

    if fixed_width or fixed_height:
        if data.aspect is not None:
            aspect = data.aspect
            if fixed_width:
                width = int(fixed_width.group(1))
                height = _round_half_up(width / aspect)
            else:
                assert fixed_height is not None
                height = int(fixed_height.group(1))
                width = _round_half_up(height * aspect)
            width = _round_even(width)
            height = _round_even(height)
            if pad:
                return _scale_pad_filters(width, height, aspect, pad)
            return [{"filter": "scale", "options": {"w": width, "h": height}}]

        # Keep input aspect ratio
        if fixed_width:
            return [
                {
                    "filter": "scale",
                    "options": {
                        "w": _round_even(int(fixed_width.group(1))),
                        "h": "trunc(ow/a/2)*2",
                    },
                }
            ]
        assert fixed_height is not None
        return [
            {
                "filter": "scale",
                "options": {
                    "w": "trunc(oh*a/2)*2",
                    "h": _round_even(int(fixed_height.group(1))),
                },
            }
        ]

    raise InvalidSizeError(size)
