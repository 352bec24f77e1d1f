import pytest

from _xmlbridge.converter import parse_pi_data, to_parsed_object, to_target_tree
from _xmlbridge.exceptions import (
    DeclarationNotAllowed,
    StructuralError,
    UnknownPropertyType,
)
from _xmlbridge.nodes import Document
from _xmlbridge.parser import ParserOptions, parse
from _xmlbridge.typing import NodeType

from tests.utils import assert_equal_trees


ROUND_TRIP_SAMPLES = (
    '<root id="1">hi</root>',
    '<root xmlns="http://example.org/ns" id="1"><a>text &amp; more</a>'
    "<!-- c --><?pi data?><b/></root>",
    '<tei:TEI xmlns:tei="http://www.tei-c.org/ns/1.0" xml:lang="en">'
    "<tei:p>a <tei:hi>b</tei:hi> c</tei:p></tei:TEI>",
)


def test_to_target_tree():
    document = to_target_tree(
        [
            {"!root": {"@_public": "-//P//EN", "@_system": "root.dtd"}},
            {"?xml-stylesheet": {"@_href": "a.css"}},
            {"#text": "\n"},
            {"root": [{"@_id": "1"}, {"#text": "hi"}, {"#cdata": "<x>"}]},
            {"#comment": " end "},
        ]
    )

    assert document.doctype is not None
    assert document.doctype.public_id == "-//P//EN"
    assert document.document_element.get_attribute("id") == "1"
    assert str(document) == (
        '<!DOCTYPE root PUBLIC "-//P//EN" "root.dtd">\n'
        '<?xml-stylesheet href="a.css"?>\n'
        '<root id="1">hi<![CDATA[<x>]]></root>\n'
        "<!-- end -->"
    )


def test_to_target_tree_from_mapping():
    document = to_target_tree({"root": {"@_id": "1", "#text": "hi"}})
    assert str(document) == '<root id="1">hi</root>'
    assert to_parsed_object(document) == [{"root": [{"@_id": "1"}, {"#text": "hi"}]}]


def test_document_factory():
    class CustomDocument(Document):
        __slots__ = ()

    document = to_target_tree({"root": None}, document_factory=CustomDocument)
    assert isinstance(document, CustomDocument)
    assert document.document_element.owner_document is document


def test_doctype_with_system_id_only():
    document = to_target_tree(
        [{"!html": {"@_system": "about:legacy-compat"}}, {"html": None}]
    )
    assert document.doctype.public_id is None
    assert document.doctype.system_id == "about:legacy-compat"


@pytest.mark.parametrize(
    ("parsed", "message"),
    (
        ([{"@_id": "1"}, {"root": None}], "attributes"),
        ([{"#text": "x"}, {"root": None}], "character data"),
        ([{"#cdata": " "}, {"root": None}], "character data"),
        ([{"a": None}, {"b": None}], "one root element"),
        ("<root/>", "text only"),
        ([{"root": None}, "text"], "Expected a mapping"),
    ),
)
def test_invalid_documents(parsed, message):
    with pytest.raises(StructuralError, match=message):
        to_target_tree(parsed)


def test_ignored_document_level_whitespace():
    document = to_target_tree([{"#text": " \n"}, {"root": None}, {"#text": None}])
    assert document.child_nodes == (document.document_element,)


def test_nested_declarations():
    with pytest.raises(DeclarationNotAllowed):
        to_target_tree({"root": {"!root": None}})


def test_unknown_property():
    with pytest.raises(UnknownPropertyType):
        to_target_tree({"root": {"123bad": "x"}})
    with pytest.raises(UnknownPropertyType):
        to_target_tree({"#foo": "x"})


def test_to_parsed_object(document):
    document.doctype = document.create_document_type("root", None, "root.dtd")
    root = document.append_child(document.create_element("root"))
    root.set_attribute("a", '"x"')
    root.append_child(document.create_text_node("t"))
    root.append_child(document.create_cdata_section("c"))
    root.append_child(document.create_comment("d"))
    root.append_child(
        document.create_processing_instruction("pi", 'a="1" b="&quot;2&quot;"')
    )

    assert to_parsed_object(document) == [
        {"!root": {"@_system": "root.dtd"}},
        {
            "root": [
                {"@_a": '"x"'},
                {"#text": "t"},
                {"#cdata": "c"},
                {"#comment": "d"},
                {"?pi": 'a="1" b="&quot;2&quot;"'},
            ]
        },
    ]

    structured = to_parsed_object(document, structured_pi_data=True)
    assert structured[1]["root"][-1] == {"?pi": {"@_a": "1", "@_b": '"2&quot;'}}

    assert to_parsed_object(root.child_nodes[0]) == [{"#text": "t"}]
    assert to_parsed_object(document.create_document_type("x")) == [{"!x": None}]


def test_to_parsed_object_of_fragment(document):
    fragment = document.create_document_fragment()
    fragment.append_child(document.create_text_node("a"))
    fragment.append_child(document.create_element("b"))
    assert to_parsed_object(fragment) == [{"#text": "a"}, {"b": []}]


def test_to_parsed_object_of_attribute(document):
    attribute = document.create_attribute("a", "b")
    assert to_parsed_object(attribute) == [{"@_a": "b"}]


@pytest.mark.parametrize(
    ("data", "expected"),
    (
        (
            'version="1.0" encoding="utf-8"',
            {"@_version": "1.0", "@_encoding": "utf-8"},
        ),
        ('  a = "1"  ', {"@_a": "1"}),
        ('a="&quot;b&quot;"', {"@_a": '"b&quot;'}),
        ("", ""),
        ("free text", "free text"),
        ('a="1" trailing', 'a="1" trailing'),
        ("a='1'", "a='1'"),
    ),
)
def test_parse_pi_data(data, expected):
    assert parse_pi_data(data) == expected


@pytest.mark.parametrize("xml", ROUND_TRIP_SAMPLES)
def test_round_trip(parser_options, xml):
    parsed = parse(xml, parser_options)
    document = to_target_tree(parsed)
    assert str(document) == xml
    assert to_parsed_object(document) == parsed
    assert_equal_trees(to_target_tree(to_parsed_object(document)), document)


def test_round_trip_of_document_level_nodes():
    xml = '<!--before-->\n<root a="&quot;x&quot;">&lt;&gt;</root>\n<?after?>'
    parsed = parse(xml, ParserOptions(preferred_parsers="expat"))
    assert parsed == [
        {"#comment": "before"},
        {"root": [{"@_a": '"x"'}, {"#text": "<>"}]},
        {"?after": ""},
    ]
    assert str(to_target_tree(parsed)) == xml


def test_round_trip_of_cdata():
    xml = "<root><![CDATA[<a> & ]]]]><![CDATA[>]]></root>"
    parsed = parse(xml, ParserOptions(preferred_parsers="expat"))
    assert parsed == [{"root": [{"#cdata": "<a> & ]]"}, {"#cdata": ">"}]}]

    document = to_target_tree(parsed)
    assert document.document_element.child_nodes[0].node_type is NodeType.CDATA_SECTION
    assert str(document) == xml
