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

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, Final, Optional, overload

from _xmlbridge.exceptions import OutOfRangeError
from _xmlbridge.rfc3986 import nonzero_segment_regex

if TYPE_CHECKING:
    from _xmlbridge.typing import SegmentValidator


DEFAULT_DELIMITER: Final = "/"


def nonzero_segment_validator(delimiter: str = DEFAULT_DELIMITER) -> SegmentValidator:
    """
    Returns a predicate that accepts path segments that consist of at least one
    path character, excluding the delimiter.
    """
    match = nonzero_segment_regex(delimiter).fullmatch
    return lambda segment: match(segment) is not None


class Path(Sequence[str]):
    """
    An immutable sequence of path segments.

    :param source: A string that is split on the ``delimiter``, a sequence of segments
                   or another path whose properties are used unless given explicitly.
    :param delimiter: The character that separates the segments.
    :param allow_absolute: Whether a leading empty segment is allowed, which marks an
                           absolute path.
    :param validator: A predicate that all segments must satisfy. By default these must
                      be non-empty and consist of path characters.
    :raises OutOfRangeError: When a segment fails validation.

    >>> str(Path("/a/b"))
    '/a/b'
    >>> Path("/a/b").segments
    ('', 'a', 'b')
    """

    __slots__ = ("__allow_absolute", "__delimiter", "__segments", "__validator")

    def __init__(
        self,
        source: str | Iterable[str] | Path | None = None,
        *,
        delimiter: Optional[str] = None,
        allow_absolute: Optional[bool] = None,
        validator: Optional[SegmentValidator] = None,
    ):
        if isinstance(source, Path):
            if delimiter is None:
                delimiter = source.delimiter
            if allow_absolute is None:
                allow_absolute = source.allow_absolute
            if validator is None:
                validator = source.validator
            segments: tuple[str, ...] = source.segments
        elif source is None:
            segments = ()
        elif isinstance(source, str):
            if delimiter is None:
                delimiter = DEFAULT_DELIMITER
            segments = tuple(source.split(delimiter)) if source else ()
        else:
            segments = tuple(source)

        if delimiter is None:
            delimiter = DEFAULT_DELIMITER
        if len(delimiter) != 1:
            raise ValueError("A path delimiter must be a single character.")
        if allow_absolute is None:
            allow_absolute = True
        if validator is None:
            validator = nonzero_segment_validator(delimiter)

        for index, segment in enumerate(segments):
            if not isinstance(segment, str):
                raise TypeError(f"Path segments must be strings, got {segment!r}.")
            if index == 0 and segment == "" and allow_absolute:
                continue
            if not validator(segment):
                raise OutOfRangeError(f"Invalid path segment: {segment!r}")

        self.__segments: Final = segments
        self.__delimiter: Final = delimiter
        self.__allow_absolute: Final = allow_absolute
        self.__validator: Final = validator

    @overload
    def __getitem__(self, index: int) -> str: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[str, ...]: ...

    def __getitem__(self, index):
        return self.__segments[index]

    def __len__(self) -> int:
        return len(self.__segments)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Path):
            return (
                self.__segments == other.segments
                and self.__delimiter == other.delimiter
            )
        if isinstance(other, str):
            return str(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.__segments, self.__delimiter))

    def __repr__(self) -> str:
        return f"<{self.__class__.__qualname__}({str(self)!r})>"

    def __str__(self) -> str:
        return self.__delimiter.join(self.__segments)

    @property
    def allow_absolute(self) -> bool:
        return self.__allow_absolute

    @property
    def delimiter(self) -> str:
        return self.__delimiter

    @property
    def is_absolute(self) -> bool:
        """Whether the path starts with an empty segment."""
        return len(self.__segments) > 1 and self.__segments[0] == ""

    @property
    def segments(self) -> tuple[str, ...]:
        """A copy of the segments."""
        return tuple(self.__segments)

    @property
    def validator(self) -> Callable[[str], bool]:
        return self.__validator

    def is_compatible(self, other: Path) -> bool:
        """
        Tests whether another path uses the same delimiter and policy regarding absolute
        paths.
        """
        return (
            self.__delimiter == other.delimiter
            and self.__allow_absolute == other.allow_absolute
        )


__all__ = (Path.__name__, nonzero_segment_validator.__name__)
