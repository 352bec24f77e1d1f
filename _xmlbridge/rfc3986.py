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
Regular expressions for the productions of `RFC 3986 "Uniform Resource Identifier
(URI): Generic Syntax" <https://tools.ietf.org/html/rfc3986>`_.

The productions are composed from named sub-patterns once when the module is imported.
The path productions can be derived for other delimiters than ``/``, e.g. the colon
that separates the parts of a URN's path.
"""

from __future__ import annotations

import re
from functools import cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Optional

from _xmlbridge.exceptions import OutOfRangeError

if TYPE_CHECKING:
    from re import Pattern


_patterns: dict[str, str] = {}


def _add_productions(*productions: tuple[str, str]):
    # productions refer only to those that are defined later in the sequence
    for name, pattern in reversed(productions):
        _patterns[name] = pattern.format(**_patterns)


_add_productions(
    # IP ADDRESSES
    ("ls32", r"(?:{h16}:{h16}|{IPv4address})"),
    ("h16", r"{hexdig}{{1,4}}"),
    ("IPv4address", r"(?:{dec_octet}\.){{3}}{dec_octet}"),
    ("dec_octet", r"(?:25[0-5]|2[0-4][0-9]|1[0-9]{{2}}|[1-9]?[0-9])"),
    # CHARACTER CLASSES
    ("pchar", r"(?:{unreserved}|{pct_encoded}|{sub_delims}|[:@])"),
    ("unreserved", r"[a-zA-Z0-9._~-]"),
    ("pct_encoded", r"%{hexdig}{{2}}"),
    ("gen_delims", r"[:/?#\[\]@]"),
    ("sub_delims", r"[!$&'()*+,;=]"),
    ("hexdig", r"[0-9A-Fa-f]"),
    # SCHEME
    ("scheme", r"[a-zA-Z][a-zA-Z0-9+.-]*"),
)


# IPv6 literals

_H16: Final = _patterns["h16"]
_LS32: Final = _patterns["ls32"]


def _ipv6_trailing_units(units: int, allow_ipv4_address: bool = True) -> str:
    # the pattern for the given number of 16 bit units that follow a gap, the last two
    # units can be noted as IPv4 address
    if units == 0:
        return ""
    if units == 1:
        return _H16
    if allow_ipv4_address:
        return f"(?:{_H16}:){{{units - 2}}}{_LS32}"
    return f"(?:{_H16}:){{{units - 1}}}{_H16}"


def ipv6_shorthand_pattern(
    trailing_segments: int = 6, allow_ipv4_address: bool = True
) -> str:
    """
    Returns the pattern source that matches IPv6 addresses with a gap (``::``) between
    the first and the last segment, followed by the given number of segments. The
    number of leading segments is between one and the remaining maximum.

    :param trailing_segments: The number of 16 bit segments after the gap, between 1
                              and 6.
    :param allow_ipv4_address: Whether the last two segments may be noted as an IPv4
                               address.
    :raises OutOfRangeError: For an unsupported number of trailing segments.
    """
    if not 1 <= trailing_segments <= 6:
        raise OutOfRangeError(
            f"Invalid count of trailing IPv6 segments: {trailing_segments}"
        )
    h16 = _H16
    leading_segments = 7 - trailing_segments
    return (
        f"(?:(?:{h16}:){{0,{leading_segments - 1}}}{h16}::"
        f"{_ipv6_trailing_units(trailing_segments, allow_ipv4_address)})"
    )


def _ipv6_address_pattern() -> str:
    h16, ls32 = _H16, _LS32
    full = f"(?:{h16}:){{6}}{ls32}"
    gap_at_start = f"::(?:(?:{h16}:){{0,5}}{ls32}|(?:{h16}:){{0,6}}{h16})?"
    gap_in_between = "|".join(ipv6_shorthand_pattern(n) for n in range(1, 7))
    gap_at_end = f"(?:{h16}:){{0,6}}{h16}::"
    return f"(?:{full}|{gap_at_start}|{gap_in_between}|{gap_at_end})"


_patterns["IPv6address"] = _ipv6_address_pattern()


_add_productions(
    # REFERENCES
    ("URI_reference", r"(?:{URI}|{relative_ref})"),
    ("URI", r"{scheme}:{hier_part}(?:{query})?(?:{fragment})?"),
    ("relative_ref", r"{relative_part}(?:{query})?(?:{fragment})?"),
    (
        "hier_part",
        r"(?:{authority}{path_abempty}|{path_absolute}|{path_rootless}|{path_empty})",
    ),
    (
        "relative_part",
        r"(?:{authority}{path_abempty}|{path_absolute}|{path_noscheme}|{path_empty})",
    ),
    # AUTHORITY
    ("authority", r"//{authority_body}"),
    ("authority_body", r"(?:{userinfo}@)?{host}(?::{port})?"),
    ("userinfo", r"(?:{unreserved}|{pct_encoded}|{sub_delims}|:)*"),
    ("host", r"(?:{IP_literal}|{IPv4address}|{reg_name})"),
    ("reg_name", r"(?:{unreserved}|{pct_encoded}|{sub_delims})*"),
    ("port", r"[0-9]*"),
    ("IP_literal", r"\[(?:{IPv6address}|{IPvFuture})\]"),
    ("IPvFuture", r"v{hexdig}+\.(?:{unreserved}|{sub_delims}|:)+"),
    # PATH
    (
        "path",
        r"(?:{path_rootless}|{path_noscheme}|{path_abempty}|{path_absolute})",
    ),
    ("path_empty", r""),
    ("path_rootless", r"{segment_nz}(?:/{segment})*"),
    ("path_noscheme", r"{segment_nz_nc}(?:/{segment})*"),
    ("path_absolute", r"/(?:{segment_nz}(?:/{segment})*)?"),
    ("path_abempty", r"(?:/{segment})*"),
    ("segment_nz_nc", r"(?:{unreserved}|{pct_encoded}|{sub_delims}|@)+"),
    ("segment_nz", r"{pchar}+"),
    ("segment", r"{pchar}*"),
    # QUERY & FRAGMENT
    ("query", r"\?{query_body}"),
    ("query_body", r"(?:{pchar}|[/?])*"),
    ("fragment", r"\#{fragment_body}"),
    ("fragment_body", r"(?:{pchar}|[/?])*"),
)


PRODUCTIONS: Final = MappingProxyType(dict(_patterns))
"""The pattern sources of all productions, keyed by their names in RFC 3986."""
del _patterns


# parametrized path productions

_PCHAR_LITERALS: Final = "-._~!$&'()*+,;=:@"
_PCT_ENCODED: Final = PRODUCTIONS["pct_encoded"]


@cache
def pchar_pattern(exclude: str = "") -> str:
    """
    Returns the pattern source of a ``pchar`` class that doesn't contain the characters
    in ``exclude``, e.g. a path delimiter other than ``/``.
    """
    literals = "".join(re.escape(c) for c in _PCHAR_LITERALS if c not in exclude)
    return f"(?:[a-zA-Z0-9{literals}]|{_PCT_ENCODED})"


@cache
def segment_regex(delimiter: str = "/") -> Pattern:
    """A possibly empty path segment."""
    return re.compile(f"(?:{pchar_pattern(delimiter)}*)")


@cache
def nonzero_segment_regex(delimiter: str = "/") -> Pattern:
    """A path segment with at least one character."""
    return re.compile(f"(?:{pchar_pattern(delimiter)}+)")


@cache
def nonzero_segment_without_colon_regex(delimiter: str = "/") -> Pattern:
    """A path segment with at least one character, but without a colon."""
    return re.compile(f"(?:{pchar_pattern(':' + delimiter)}+)")


@cache
def noscheme_path_regex(delimiter: str = "/") -> Pattern:
    return re.compile(
        f"(?:{nonzero_segment_without_colon_regex(delimiter).pattern}"
        f"(?:{re.escape(delimiter)}{segment_regex(delimiter).pattern})*)"
    )


@cache
def abempty_path_regex(delimiter: str = "/") -> Pattern:
    return re.compile(
        f"(?:(?:{re.escape(delimiter)}{segment_regex(delimiter).pattern})*)"
    )


@cache
def absolute_path_regex(delimiter: str = "/") -> Pattern:
    escaped_delimiter = re.escape(delimiter)
    return re.compile(
        f"(?:{escaped_delimiter}(?:{nonzero_segment_regex(delimiter).pattern}"
        f"(?:{escaped_delimiter}{segment_regex(delimiter).pattern})*)?)"
    )


@cache
def rootless_path_regex(delimiter: str = "/") -> Pattern:
    return re.compile(
        f"(?:{nonzero_segment_regex(delimiter).pattern}"
        f"(?:{re.escape(delimiter)}{segment_regex(delimiter).pattern})*)"
    )


@cache
def path_regex(
    delimiter: str = "/",
    *,
    scheme: Optional[bool] = None,
    authority: Optional[bool] = None,
) -> Pattern:
    """
    Returns a pattern that matches a path in the given context. The path is captured
    as group ``path``.

    :param delimiter: The character that separates the segments.
    :param scheme: Whether the path is part of a reference with a scheme. :obj:`None`
                   allows both variants.
    :param authority: Whether the path follows an authority. :obj:`None` allows both
                      variants.
    """
    if authority:
        variants: tuple[Pattern, ...] = (abempty_path_regex(delimiter),)
    elif scheme:
        variants = (absolute_path_regex(delimiter), rootless_path_regex(delimiter))
    elif scheme is None:
        variants = (
            rootless_path_regex(delimiter),
            noscheme_path_regex(delimiter),
            abempty_path_regex(delimiter),
            absolute_path_regex(delimiter),
        )
    else:
        variants = (absolute_path_regex(delimiter), noscheme_path_regex(delimiter))

    if authority is False and scheme is None:
        # an empty authority would be assumed otherwise
        return re.compile(
            f"(?P<path>(?!{re.escape(delimiter * 2)})"
            f"(?:{'|'.join(v.pattern for v in variants)})?)"
        )
    return re.compile(f"(?P<path>(?:{'|'.join(v.pattern for v in variants)})?)")


# lookups

_SEGMENT_PRODUCTIONS: Final = {
    "scheme": "scheme",
    "path": "path",
    "authority": "authority",
    "query": "query",
    "fragment": "fragment",
    "host_name": "host",
    "user_info": "userinfo",
}
_SEGMENT_ALIASES: Final = {"hostName": "host_name", "userInfo": "user_info"}

SEGMENT_PATTERNS: Final = MappingProxyType(
    {
        name: re.compile(PRODUCTIONS[production])
        for name, production in _SEGMENT_PRODUCTIONS.items()
    }
)

URI_PATTERN: Final = re.compile(PRODUCTIONS["URI"])
URI_REFERENCE_PATTERN: Final = re.compile(PRODUCTIONS["URI_reference"])
IPV6_ADDRESS_PATTERN: Final = re.compile(PRODUCTIONS["IPv6address"])
IPV4_ADDRESS_PATTERN: Final = re.compile(PRODUCTIONS["IPv4address"])
AUTHORITY_BODY_PATTERN: Final = re.compile(
    f"(?:(?P<user_info>{PRODUCTIONS['userinfo']})@)?"
    f"(?P<host>{PRODUCTIONS['host']})"
    f"(?::(?P<port>{PRODUCTIONS['port']}))?"
)


def segment_pattern(name: str) -> Optional[Pattern]:
    """
    Returns a pattern that fully matches valid values of the named URI component, or
    :obj:`None` for an unknown name. The patterns for ``authority``, ``query`` and
    ``fragment`` include their leading delimiters.

    Known names are ``scheme``, ``path``, ``authority``, ``query``, ``fragment``,
    ``host_name`` and ``user_info``.

    >>> segment_pattern("scheme").fullmatch("https") is not None
    True
    >>> segment_pattern("port") is None
    True
    """
    return SEGMENT_PATTERNS.get(_SEGMENT_ALIASES.get(name, name))


def is_uri_compliant(string: str) -> bool:
    """Tests whether the string is an absolute URI with optional fragment."""
    return URI_PATTERN.fullmatch(string) is not None


def is_uri_reference_compliant(string: str) -> bool:
    """Tests whether the string is a URI or a relative reference."""
    return URI_REFERENCE_PATTERN.fullmatch(string) is not None


__all__ = (
    "IPV6_ADDRESS_PATTERN",
    "PRODUCTIONS",
    "URI_PATTERN",
    absolute_path_regex.__name__,
    abempty_path_regex.__name__,
    ipv6_shorthand_pattern.__name__,
    is_uri_compliant.__name__,
    is_uri_reference_compliant.__name__,
    noscheme_path_regex.__name__,
    nonzero_segment_regex.__name__,
    nonzero_segment_without_colon_regex.__name__,
    path_regex.__name__,
    pchar_pattern.__name__,
    rootless_path_regex.__name__,
    segment_pattern.__name__,
    segment_regex.__name__,
)
