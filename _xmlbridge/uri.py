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

import re
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Final, Optional
from urllib.parse import ParseResult, SplitResult

from _xmlbridge.exceptions import FormatError, InvalidURIFields, OutOfRangeError
from _xmlbridge.paths import Path
from _xmlbridge.rfc3986 import (
    AUTHORITY_BODY_PATTERN,
    PRODUCTIONS,
    URI_PATTERN,
    nonzero_segment_regex,
    path_regex,
    segment_pattern,
    segment_regex,
)


# https://datatracker.ietf.org/doc/html/rfc3986#appendix-B
_split_uri_reference: Final = re.compile(
    r"(?:(?P<scheme>[^:/?#]+):)?"
    r"(?://(?P<authority>[^/?#]*))?"
    r"(?P<path>[^?#]*)"
    r"(?:\?(?P<query>[^#]*))?"
    r"(?:#(?P<fragment>.*))?",
    re.DOTALL,
).fullmatch

_is_scheme: Final = re.compile(PRODUCTIONS["scheme"]).fullmatch
_is_authority_body: Final = AUTHORITY_BODY_PATTERN.fullmatch
_is_query_body: Final = re.compile(PRODUCTIONS["query_body"]).fullmatch
_is_fragment_body: Final = re.compile(PRODUCTIONS["fragment_body"]).fullmatch

_OPTIONAL_FIELD_DELIMITERS: Final = (
    ("authority", "//"),
    ("query", "?"),
    ("fragment", "#"),
)


class URIType(Enum):
    URL = "URL"
    URN = "URN"


def _url_segment_validator(segment: str) -> bool:
    return segment_regex("/").fullmatch(segment) is not None


def _urn_segment_validator(segment: str) -> bool:
    return nonzero_segment_regex(":").fullmatch(segment) is not None


class URI:
    """
    A validated URI reference with a scheme. A URL may have an authority, a query and
    a fragment, a URN consists only of its scheme and a path whose segments are
    separated by colons.

    :param scheme: The mandatory scheme.
    :param path: A string, a sequence of segments or a :class:`Path`.
    :param authority: The authority without the leading ``//``.
    :param query: The query without the leading ``?``.
    :param fragment: The fragment without the leading ``#``.
    :param type: The :class:`URIType`.
    :raises FormatError: If a component is malformed.
    :raises OutOfRangeError: If a component isn't allowed in the given combination.

    >>> str(URI("https", "/ns/1.0", authority="example.org"))
    'https://example.org/ns/1.0'
    """

    __slots__ = (
        "__authority",
        "__fragment",
        "__path",
        "__query",
        "__scheme",
        "__type",
    )

    def __init__(
        self,
        scheme: str,
        path: str | Iterable[str] | Path = "",
        *,
        authority: Optional[str] = None,
        query: Optional[str] = None,
        fragment: Optional[str] = None,
        type: URIType = URIType.URL,
    ):
        if not isinstance(type, URIType):
            raise TypeError(f"Invalid URI type: {type!r}")
        if not scheme:
            raise FormatError("A URI must have a scheme.", scheme)
        if not isinstance(scheme, str) or not _is_scheme(scheme):
            raise FormatError("Invalid scheme.", scheme)

        if type is URIType.URN:
            forbidden = [
                name
                for name, value in (
                    ("authority", authority),
                    ("query", query),
                    ("fragment", fragment),
                )
                if value is not None
            ]
            if forbidden:
                raise InvalidURIFields(type.value, forbidden)
            path = self.__urn_path(path)
        else:
            if authority is not None and not _is_authority_body(authority):
                raise FormatError("Invalid authority.", authority)
            if query is not None and not _is_query_body(query):
                raise FormatError("Invalid query.", query)
            if fragment is not None and not _is_fragment_body(fragment):
                raise FormatError("Invalid fragment.", fragment)
            path = self.__url_path(path, authority is not None)

        self.__path: Final = path
        self.__type: Final = type
        self.__scheme: Final = scheme
        self.__authority: Final = authority
        self.__query: Final = query
        self.__fragment: Final = fragment

    @staticmethod
    def __url_path(path: str | Iterable[str] | Path, has_authority: bool) -> Path:
        if isinstance(path, str):
            if path_regex("/", scheme=True, authority=has_authority).fullmatch(
                path
            ) is None or (not has_authority and path.startswith("//")):
                raise FormatError("Invalid path.", path)
            return Path(path, validator=_url_segment_validator)

        if isinstance(path, Path):
            template = Path(delimiter="/", allow_absolute=True)
            if not path.is_compatible(template):
                raise OutOfRangeError("The path is incompatible with a URL.")
        result = Path(path, validator=_url_segment_validator)

        if has_authority and result.segments and result.segments[0] != "":
            raise OutOfRangeError(
                "A path must be empty or start with a delimiter when an authority "
                "is present."
            )
        if not has_authority and str(result).startswith("//"):
            raise OutOfRangeError(
                "A path must not start with two delimiters without an authority."
            )
        return result

    @staticmethod
    def __urn_path(path: str | Iterable[str] | Path) -> Path:
        if isinstance(path, Path) and not path.is_compatible(
            Path(delimiter=":", allow_absolute=False)
        ):
            raise OutOfRangeError("The path is incompatible with a URN.")
        path = Path(
            path,
            delimiter=":",
            allow_absolute=False,
            validator=_urn_segment_validator,
        )
        if not path:
            raise FormatError("A URN must have a path.", str(path))
        return path

    @classmethod
    def urn(cls, scheme: str, path: str | Iterable[str] | Path) -> URI:
        """
        Creates a URN.

        >>> str(URI.urn("urn", "isbn:0451450523"))
        'urn:isbn:0451450523'
        """
        return cls(scheme, path, type=URIType.URN)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, URI):
            return self.__type is other.type and str(self) == str(other)
        if isinstance(other, str):
            return str(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))

    def __repr__(self) -> str:
        return f"<{self.__class__.__qualname__}({self.__type.value}: {str(self)!r})>"

    def __str__(self) -> str:
        result = f"{self.__scheme}:"
        if self.__authority is not None:
            result += f"//{self.__authority}"
        result += str(self.__path)
        if self.__query is not None:
            result += f"?{self.__query}"
        if self.__fragment is not None:
            result += f"#{self.__fragment}"
        return result

    @property
    def authority(self) -> Optional[str]:
        return self.__authority

    @property
    def fragment(self) -> Optional[str]:
        return self.__fragment

    @property
    def host(self) -> Optional[str]:
        """The host part of the authority."""
        if self.__authority is None:
            return None
        return self.__authority_parts()["host"]

    @property
    def path(self) -> Path:
        return self.__path

    @property
    def port(self) -> Optional[int]:
        if self.__authority is None:
            return None
        port = self.__authority_parts()["port"]
        return int(port) if port else None

    @property
    def query(self) -> Optional[str]:
        return self.__query

    @property
    def scheme(self) -> str:
        return self.__scheme

    @property
    def type(self) -> URIType:
        return self.__type

    @property
    def user_info(self) -> Optional[str]:
        if self.__authority is None:
            return None
        return self.__authority_parts()["user_info"]

    def __authority_parts(self) -> dict[str, Optional[str]]:
        assert self.__authority is not None
        match = _is_authority_body(self.__authority)
        assert match is not None
        return match.groupdict()


def parse_uri(string: str) -> URI:
    """
    Parses an absolute URI. References with the scheme ``urn`` are parsed as URNs.

    :raises FormatError: If the string isn't an absolute URI.
    :raises OutOfRangeError: If a URN has other components than a path.

    >>> uri = parse_uri("http://www.tei-c.org/ns/1.0")
    >>> uri.host, str(uri.path)
    ('www.tei-c.org', '/ns/1.0')
    """
    if not isinstance(string, str):
        raise TypeError("Only strings can be parsed as URI.")
    match = _split_uri_reference(string)
    assert match is not None
    parts = match.groupdict()
    if parts["scheme"] is None:
        raise FormatError("Not an absolute URI.", string)
    return URI(
        parts["scheme"],
        parts["path"],
        authority=parts["authority"],
        query=parts["query"],
        fragment=parts["fragment"],
        type=URIType.URN if parts["scheme"].lower() == "urn" else URIType.URL,
    )


def valid_uri(candidate: Any) -> bool:
    """
    Tests whether the candidate is or describes a valid URI:

    - strings must be absolute URIs
    - :class:`URI` instances and the results of :mod:`urllib.parse`'s parsing
      functions are trusted
    - mappings with the keys ``scheme`` and ``path`` and optionally ``authority``,
      ``query`` and ``fragment`` are validated per component, the latter may omit
      their leading delimiters
    - anything else, callables in particular, is invalid

    >>> valid_uri("https://example.org/")
    True
    >>> valid_uri({"scheme": "urn", "path": "isbn:0451450523"})
    True
    >>> valid_uri(valid_uri)
    False
    """
    match candidate:
        case str():
            return URI_PATTERN.fullmatch(candidate) is not None
        case URI() | ParseResult() | SplitResult():
            return True
        case _ if callable(candidate):
            return False
        case Mapping():
            return _valid_uri_fields(candidate)
        case _:
            return False


def _valid_uri_fields(fields: Mapping) -> bool:
    scheme, path = fields.get("scheme"), fields.get("path")
    if not isinstance(scheme, str) or path is None:
        return False
    if segment_pattern("scheme").fullmatch(scheme) is None:  # type: ignore
        return False
    if segment_pattern("path").fullmatch(str(path)) is None:  # type: ignore
        return False

    for name, delimiter in _OPTIONAL_FIELD_DELIMITERS:
        value = fields.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            return False
        if not value.startswith(delimiter):
            value = delimiter + value
        if segment_pattern(name).fullmatch(value) is None:  # type: ignore
            return False

    return True


__all__ = (
    parse_uri.__name__,
    URI.__name__,
    URIType.__name__,
    valid_uri.__name__,
)
