import pytest

from _xmlbridge.exceptions import FormatError
from _xmlbridge.names import (
    XML_NAMESPACE,
    Namespaces,
    create_qname,
    deconstruct_clark_notation,
    is_valid_custom_id,
    is_valid_name_token,
    is_valid_ncname,
    is_valid_qname,
    is_valid_xml_identifier,
    is_valid_xml_key,
    is_valid_xml_name,
    parse_qname,
)


TEI_NAMESPACE = "http://www.tei-c.org/ns/1.0"

NAME_SAMPLES = (
    "a",
    "_a",
    ":a",
    "a:",
    "a:b",
    "a:b:c",
    "tei:text",
    "x-1.y",
    "1a",
    "-a",
    "a b",
    "",
    "é:ü",
    "a::b",
)


@pytest.mark.parametrize(
    ("name", "expected"),
    (
        ("a", True),
        ("_a", True),
        (":a", True),
        ("a:b:c", True),
        ("x-1.y", True),
        ("é", True),
        (chr(0xD800) + chr(0xDC00), True),
        ("1a", False),
        ("-a", False),
        ("a b", False),
        ("a" + chr(0xD800), False),
        ("", False),
        (None, False),
        (1, False),
    ),
)
def test_is_valid_xml_name(name, expected):
    assert is_valid_xml_name(name) is expected


@pytest.mark.parametrize(
    ("token", "expected"),
    (("1a", True), ("-", True), ("a:b", True), ("", False), ("a b", False)),
)
def test_is_valid_name_token(token, expected):
    assert is_valid_name_token(token) is expected


@pytest.mark.parametrize(
    ("name", "expected"),
    (("a", True), ("a:b", False), (":", False), ("1", False)),
)
def test_is_valid_ncname(name, expected):
    assert is_valid_ncname(name) is expected


@pytest.mark.parametrize(
    ("name", "expected"),
    (
        ("a", True),
        ("a:b", True),
        ("tei:text", True),
        ("a:b:c", False),
        (":a", False),
        ("a:", False),
        ("a::b", False),
        ("1:a", False),
        ("a:1", False),
    ),
)
def test_is_valid_qname(name, expected):
    assert is_valid_qname(name) is expected


@pytest.mark.parametrize("name", NAME_SAMPLES)
def test_qname_consists_of_two_ncnames(name):
    if is_valid_qname(name) and ":" in name:
        parts = name.split(":")
        assert len(parts) == 2
        assert all(is_valid_ncname(p) for p in parts)


@pytest.mark.parametrize("name", NAME_SAMPLES)
def test_qname_reconstruction(name):
    if not is_valid_qname(name):
        with pytest.raises(FormatError):
            parse_qname(name)
        return

    qname = parse_qname(name)
    assert str(create_qname(qname.local_name, prefix=qname.prefix)) == name


def test_create_qname():
    qname = create_qname("text", prefix="tei", uri=TEI_NAMESPACE)
    assert qname.local_name == "text"
    assert qname.prefix == "tei"
    assert qname.uri == TEI_NAMESPACE
    assert str(qname) == "tei:text"

    with pytest.raises(FormatError, match="Invalid local name"):
        create_qname("a:b")
    with pytest.raises(FormatError, match="Invalid prefix"):
        create_qname("a", prefix="1")
    with pytest.raises(FormatError, match="Invalid uri"):
        create_qname("a", uri="no uri")


def test_parse_qname_with_namespaces():
    namespaces = {"tei": TEI_NAMESPACE, None: "http://example.org/"}

    assert parse_qname("tei:text", namespaces=namespaces).uri == TEI_NAMESPACE
    assert parse_qname("text", namespaces=namespaces).uri == "http://example.org/"
    assert parse_qname("x:text", namespaces=namespaces).uri is None
    assert (
        parse_qname("tei:text", uri="http://example.org/", namespaces=namespaces).uri
        == "http://example.org/"
    )


def test_qname_equality():
    assert create_qname("a", prefix="x", uri=TEI_NAMESPACE) == create_qname(
        "a", prefix="y", uri=TEI_NAMESPACE
    )
    assert create_qname("a", prefix="x") != create_qname("a", prefix="y")
    assert create_qname("a", prefix="x") == create_qname(
        "a", prefix="x", uri=TEI_NAMESPACE
    )
    assert parse_qname("x:a") != 1
    assert len({create_qname("a"), create_qname("a")}) == 1


def test_qname_comparison_with_strings():
    qname = parse_qname("x:a")
    assert qname.is_equal("x:a")
    assert not qname.is_equal("a")
    assert qname != "x:a"
    assert "x:a" not in {qname}
    assert {qname: 1}.get(create_qname("a", prefix="x")) == 1


@pytest.mark.parametrize(
    ("value", "expected"),
    (("foo", True), ("xml:foo", False), ("XmL:foo", False), ("xmlfoo", True)),
)
def test_is_valid_custom_id(value, expected):
    assert is_valid_custom_id(value) is expected


def test_is_valid_xml_identifier(document):
    root = document.append_child(document.create_element("root"))
    root.set_attribute("xml:id", "a")

    assert is_valid_xml_identifier("b")
    assert is_valid_xml_identifier("b", root)
    assert not is_valid_xml_identifier("a", root)
    assert not is_valid_xml_identifier("1", root)


def test_is_valid_xml_key(document):
    root = document.append_child(document.create_element("root"))
    child = root.append_child(document.create_element("child"))
    child.set_attribute("key", "v")

    assert not is_valid_xml_key("key", "v", root)
    assert is_valid_xml_key("key", "w", root)
    assert is_valid_xml_key("other", "v", root)
    assert not is_valid_xml_key("key", "1", root)


@pytest.mark.parametrize(
    ("name", "expected"),
    (
        ("{http://www.tei-c.org/ns/1.0}text", (TEI_NAMESPACE, "text")),
        ("{}text", ("", "text")),
        ("text", (None, "text")),
    ),
)
def test_deconstruct_clark_notation(name, expected):
    assert deconstruct_clark_notation(name) == expected


def test_namespaces():
    namespaces = Namespaces({"tei": TEI_NAMESPACE, None: "http://example.org/"})
    assert namespaces["xml"] == XML_NAMESPACE
    assert namespaces["tei"] == TEI_NAMESPACE
    assert namespaces[None] == namespaces[""] == "http://example.org/"
    assert None in namespaces
    assert namespaces.lookup_prefix(TEI_NAMESPACE) == "tei"
    assert namespaces.lookup_prefix("http://example.org/") == ""
    assert Namespaces(namespaces) == namespaces


@pytest.mark.parametrize(
    ("declarations", "exception", "message"),
    (
        ({"xml": "http://example.org/"}, ValueError, "global prefix"),
        ({"x": XML_NAMESPACE}, ValueError, "must not be overridden"),
        ({"a:b": TEI_NAMESPACE}, FormatError, "Invalid namespace prefix"),
        ({"x": "not a uri"}, FormatError, "Invalid uri"),
        ({"x": TEI_NAMESPACE, "y": TEI_NAMESPACE}, ValueError, "redundantly"),
        ({"": TEI_NAMESPACE, None: TEI_NAMESPACE}, ValueError, "redundantly"),
    ),
)
def test_invalid_namespace_declarations(declarations, exception, message):
    with pytest.raises(exception, match=message):
        Namespaces(declarations)


def test_namespaces_require_a_mapping():
    with pytest.raises(TypeError):
        Namespaces([("x", TEI_NAMESPACE)])
