# Copyright (C) 2018-'25  Frank Sachsenheim
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Classification of Unicode code points against the productions of XML names.

The tables are the ranges of the ``NameStartChar`` and ``NameChar`` productions of the
fifth edition of XML 1.0: https://www.w3.org/TR/REC-xml/#NT-NameStartChar
"""

from __future__ import annotations

import re
from bisect import bisect_right
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


# constants

MAX_CODE_POINT: Final = 0x10FFFF

NAME_START_RANGES: Final = (
    (0x3A, 0x3A),  # :
    (0x41, 0x5A),  # A-Z
    (0x5F, 0x5F),  # _
    (0x61, 0x7A),  # a-z
    (0xC0, 0xD6),
    (0xD8, 0xF6),
    (0xF8, 0x2FF),
    (0x370, 0x37D),
    (0x37F, 0x1FFF),
    (0x200C, 0x200D),
    (0x2070, 0x218F),
    (0x2C00, 0x2FEF),
    (0x3001, 0xD7FF),
    (0xF900, 0xFDCF),
    (0xFDF0, 0xFFFD),
    (0x10000, 0xEFFFF),
)
"""The ranges of the ``NameStartChar`` production, sorted and disjoint."""

NAME_TAILING_RANGES: Final = (
    (0x2D, 0x2E),  # - .
    (0x30, 0x39),  # 0-9
    (0xB7, 0xB7),  # middle dot
    (0x300, 0x36F),  # combining diacritical marks
    (0x203F, 0x2040),  # undertie, character tie
)
"""The ranges that ``NameChar`` adds to ``NameStartChar``."""

_NAME_START_LOWER_BOUNDS: Final = tuple(r[0] for r in NAME_START_RANGES)
_NAME_TAILING_LOWER_BOUNDS: Final = tuple(r[0] for r in NAME_TAILING_RANGES)


def _in_ranges(
    code_point: int, lower_bounds: Sequence[int], ranges: Sequence[tuple[int, int]]
) -> bool:
    index = bisect_right(lower_bounds, code_point) - 1
    return index >= 0 and code_point <= ranges[index][1]


def _normalized_code_point(code_point: Any) -> int | None:
    # bools are ints, but no code points
    if isinstance(code_point, bool):
        return None
    if isinstance(code_point, float):
        if not code_point.is_integer():
            return None
        code_point = int(code_point)
    if not isinstance(code_point, int):
        return None
    if not 0 <= code_point <= MAX_CODE_POINT:
        return None
    return code_point


# classifiers


def is_name_start_code_point(code_point: Any) -> bool:
    """
    Tests whether a code point may start an XML name. Input that isn't an integral
    number within the Unicode range is never a name start character.

    >>> is_name_start_code_point(ord("_"))
    True
    >>> is_name_start_code_point(ord("1"))
    False
    >>> is_name_start_code_point(-1)
    False
    """
    if (code_point := _normalized_code_point(code_point)) is None:
        return False
    return _in_ranges(code_point, _NAME_START_LOWER_BOUNDS, NAME_START_RANGES)


def is_name_code_point(code_point: Any) -> bool:
    """
    Tests whether a code point may continue an XML name.

    >>> is_name_code_point(ord("1"))
    True
    """
    if (code_point := _normalized_code_point(code_point)) is None:
        return False
    return _in_ranges(
        code_point, _NAME_START_LOWER_BOUNDS, NAME_START_RANGES
    ) or _in_ranges(code_point, _NAME_TAILING_LOWER_BOUNDS, NAME_TAILING_RANGES)


def iterate_code_points(string: str) -> Iterator[int]:
    """
    Yields the code points of a string. Surrogate pairs that were carried over from
    UTF-16 data are combined to the supplementary code point they encode, lone
    surrogates are yielded as they are.
    """
    index, end = 0, len(string)
    while index < end:
        code_point = ord(string[index])
        if 0xD800 <= code_point <= 0xDBFF and index + 1 < end:
            low = ord(string[index + 1])
            if 0xDC00 <= low <= 0xDFFF:
                yield 0x10000 + ((code_point - 0xD800) << 10) + (low - 0xDC00)
                index += 2
                continue
        yield code_point
        index += 1


# regular expression character classes


def _character_class(ranges: Sequence[tuple[int, int]]) -> str:
    result = []
    for start, end in ranges:
        if start == end:
            result.append(re.escape(chr(start)))
        else:
            result.append(f"{re.escape(chr(start))}-{re.escape(chr(end))}")
    return "".join(result)


# https://www.w3.org/TR/REC-xml/#NT-Char
char: Final = (
    r"(?s)[\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd"
    r"\U00010000-\U0010ffff]*"
)

name_start_characters: Final = _character_class(NAME_START_RANGES)
name_characters: Final = name_start_characters + _character_class(
    NAME_TAILING_RANGES
)
name_pattern: Final = f"[{name_start_characters}][{name_characters}]*"


# functions

_is_xml_char: Final = re.compile(char).fullmatch


__all__ = (
    "NAME_START_RANGES",
    "NAME_TAILING_RANGES",
    is_name_code_point.__name__,
    is_name_start_code_point.__name__,
    iterate_code_points.__name__,
)
