import re

import pytest

from _xmlbridge.exceptions import OutOfRangeError
from _xmlbridge.rfc3986 import (
    IPV4_ADDRESS_PATTERN,
    IPV6_ADDRESS_PATTERN,
    PRODUCTIONS,
    ipv6_shorthand_pattern,
    is_uri_compliant,
    is_uri_reference_compliant,
    path_regex,
    pchar_pattern,
    segment_pattern,
)


@pytest.mark.parametrize(
    "address",
    (
        "::",
        "::1",
        "1::",
        "2001:db8::1",
        "::ffff:192.0.2.1",
        "1:2:3:4:5:6:7:8",
        "1:2:3:4:5:6:192.0.2.1",
        "fe80::1:2:3:4:5:6",
        "1:2:3:4:5:6:7::",
        "1::2:3:4:5:6:7",
        "2001:DB8:0:0:8:800:200C:417A",
    ),
)
def test_valid_ipv6_addresses(address):
    assert IPV6_ADDRESS_PATTERN.fullmatch(address) is not None


@pytest.mark.parametrize(
    "address",
    (
        "1::2::3",
        ":::",
        "1:2:3:4:5:6:7:8:9",
        "1:2:3:4:5:6:7",
        "12345::1",
        "g::1",
        "::1.2.3",
        "",
    ),
)
def test_invalid_ipv6_addresses(address):
    assert IPV6_ADDRESS_PATTERN.fullmatch(address) is None


@pytest.mark.parametrize(
    ("address", "valid"),
    (
        ("192.0.2.1", True),
        ("255.255.255.255", True),
        ("0.0.0.0", True),
        ("256.0.0.1", False),
        ("01.0.0.1", False),
        ("1.2.3", False),
    ),
)
def test_ipv4_addresses(address, valid):
    assert (IPV4_ADDRESS_PATTERN.fullmatch(address) is not None) is valid


@pytest.mark.parametrize(
    ("trailing_segments", "address", "matches"),
    (
        (1, "2001:db8::1", True),
        (1, "1:2:3:4:5:6::7", True),
        (1, "1:2:3:4:5:6:7::8", False),
        (2, "1::2:3", True),
        (2, "1::192.0.2.1", True),
        (3, "1::2:192.0.2.1", True),
        (6, "1::2:3:4:5:6:7", True),
        (6, "1:2::3:4:5:6:7:8", False),
    ),
)
def test_ipv6_shorthand_pattern(trailing_segments, address, matches):
    pattern = ipv6_shorthand_pattern(trailing_segments)
    assert (re.fullmatch(pattern, address) is not None) is matches


def test_ipv6_shorthand_pattern_without_ipv4_address():
    pattern = ipv6_shorthand_pattern(2, allow_ipv4_address=False)
    assert re.fullmatch(pattern, "1::2:3") is not None
    assert re.fullmatch(pattern, "1::192.0.2.1") is None


@pytest.mark.parametrize("trailing_segments", (-1, 0, 7))
def test_ipv6_shorthand_pattern_range(trailing_segments):
    with pytest.raises(OutOfRangeError, match="trailing IPv6 segments"):
        ipv6_shorthand_pattern(trailing_segments)


@pytest.mark.parametrize(
    ("name", "value", "matches"),
    (
        ("scheme", "https", True),
        ("scheme", "1https", False),
        ("authority", "//user@example.org:8080", True),
        ("authority", "example.org", False),
        ("query", "?a=b&c", True),
        ("query", "a=b", False),
        ("fragment", "#section-1", True),
        ("path", "a/b/c", True),
        ("path", "/a b", False),
        ("host_name", "example.org", True),
        ("hostName", "[::1]", True),
        ("hostName", "[1::2::3]", False),
        ("user_info", "user:secret", True),
        ("userInfo", "user@host", False),
    ),
)
def test_segment_pattern(name, value, matches):
    pattern = segment_pattern(name)
    assert pattern is not None
    assert (pattern.fullmatch(value) is not None) is matches


@pytest.mark.parametrize("name", ("port", "Scheme", ""))
def test_unknown_segment_pattern(name):
    assert segment_pattern(name) is None


def test_productions_are_immutable():
    assert "IPv6address" in PRODUCTIONS
    with pytest.raises(TypeError):
        PRODUCTIONS["foo"] = "bar"  # type: ignore


def test_pchar_pattern_exclusion():
    assert re.fullmatch(f"{pchar_pattern()}+", "a:b") is not None
    assert re.fullmatch(f"{pchar_pattern(':')}+", "a:b") is None
    assert re.fullmatch(f"{pchar_pattern(':')}+", "a%3Ab") is not None


@pytest.mark.parametrize(
    ("delimiter", "kwargs", "path", "matches"),
    (
        ("/", {"scheme": True, "authority": True}, "", True),
        ("/", {"scheme": True, "authority": True}, "/a/b", True),
        ("/", {"scheme": True, "authority": True}, "a/b", False),
        ("/", {"scheme": True}, "a:b/c", True),
        ("/", {"scheme": True}, "/a/", True),
        ("/", {"scheme": False}, "a:b/c", False),
        ("/", {"scheme": False}, "a/b:c", True),
        ("/", {"authority": False}, "//a", False),
        (":", {"scheme": True}, "isbn:0451450523", True),
        (":", {"scheme": True}, "isbn::0451450523", True),
        (":", {"scheme": True}, "isbn/0451450523", False),
    ),
)
def test_path_regex(delimiter, kwargs, path, matches):
    match = path_regex(delimiter, **kwargs).fullmatch(path)
    assert (match is not None) is matches
    if matches:
        assert match.group("path") == path


@pytest.mark.parametrize(
    ("string", "uri", "reference"),
    (
        ("https://example.org/a?b#c", True, True),
        ("urn:isbn:0451450523", True, True),
        ("mailto:user@example.org", True, True),
        ("../a/b", False, True),
        ("//example.org/a", False, True),
        ("#fragment", False, True),
        ("a b", False, False),
        ("http://[::1/", False, False),
    ),
)
def test_uri_compliance(string, uri, reference):
    assert is_uri_compliant(string) is uri
    assert is_uri_reference_compliant(string) is reference
