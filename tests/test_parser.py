from io import BytesIO

import pytest

from _xmlbridge.exceptions import ParsingEmptyStream, ParsingProcessingError
from _xmlbridge.parser import (
    DocTypeEventData,
    EventType,
    ParsedObjectBuilder,
    ParserOptions,
    TagEventData,
    detect_encoding,
    parse,
)
from _xmlbridge.plugins import PluginManager, plugin_manager
from _xmlbridge.plugins.lxml_parser import libxml2_encoding_name


@pytest.mark.parametrize(
    ("stream", "encoding"),
    (
        (b"\xff\xfe\00\x00<root/>", "utf-32-le"),
        (b"\x00\x00\xfe\xff<root/>", "utf-32-be"),
        (b"\xef\xbb\xbf<root/>", "utf-8"),
        (b"\xff\xfe<root/>", "utf-16-le"),
        (b"\xfe\xff<root/>", "utf-16-be"),
        (b'<?xml version="1.0" encoding="ISO-8859-1"?><root/>', "ISO-8859-1"),
        (b"<?xml version='1.1' encoding='utf-8' standalone='yes'?>", "utf-8"),
        (b'<?xml version="1.0"?><root/>', None),
        (b"<root/>", None),
    ),
)
def test_encoding_detection(stream, encoding):
    assert detect_encoding(stream) == encoding


def test_get_parser():
    assert plugin_manager.get_parser("expat").name == "expat"
    assert plugin_manager.get_parser(("unavailable", "expat")).name == "expat"
    assert plugin_manager.get_parser("unavailable") in plugin_manager.parsers.values()

    with pytest.raises(RuntimeError, match="No available parsers"):
        PluginManager().get_parser("expat")


def test_attributes_and_namespace_declarations(parser_options):
    content = parse(
        '<x:root xmlns:x="http://example.org/x" xmlns="http://example.org/" b="2" '
        'a="1"><child x:c="3"/></x:root>',
        parser_options,
    )[0]["x:root"]

    declarations = {
        k: v for e in content for k, v in e.items() if k.startswith("@_xmlns")
    }
    assert declarations == {
        "@_xmlns:x": "http://example.org/x",
        "@_xmlns": "http://example.org/",
    }
    assert content[2:] == [{"@_b": "2"}, {"@_a": "1"}, {"child": [{"@_x:c": "3"}]}]


def test_character_data(parser_options):
    assert parse("<root>a &amp; b &#x3C; c<br/>&#228;</root>", parser_options) == [
        {"root": [{"#text": "a & b < c"}, {"br": []}, {"#text": "ä"}]}
    ]


def test_cdata_sections():
    assert parse(
        "<root>a<![CDATA[<b/>]]>c</root>", ParserOptions(preferred_parsers="expat")
    ) == [{"root": [{"#text": "a"}, {"#cdata": "<b/>"}, {"#text": "c"}]}]


def test_comments_and_processing_instructions(parser_options):
    xml = "<root>a<!-- b --><?c d?>e</root>"

    assert parse(xml, parser_options) == [
        {"root": [{"#text": "a"}, {"#comment": " b "}, {"?c": "d"}, {"#text": "e"}]}
    ]

    content = parse(
        xml,
        parser_options._replace(
            remove_comments=True, remove_processing_instructions=True
        ),
    )[0]["root"]
    assert all(tuple(e) == ("#text",) for e in content)
    assert "".join(e["#text"] for e in content) == "ae"


def test_blank_text(parser_options):
    xml = "<root>\n  <a> </a>\n  <b>x</b>\n</root>"

    assert parse(xml, parser_options) == [
        {
            "root": [
                {"#text": "\n  "},
                {"a": [{"#text": " "}]},
                {"#text": "\n  "},
                {"b": [{"#text": "x"}]},
                {"#text": "\n"},
            ]
        }
    ]
    assert parse(xml, parser_options._replace(remove_blank_text=True)) == [
        {"root": [{"a": []}, {"b": [{"#text": "x"}]}]}
    ]


@pytest.mark.parametrize(
    ("doctype", "expected"),
    (
        ("<!DOCTYPE root>", {"!root": None}),
        ('<!DOCTYPE root SYSTEM "root.dtd">', {"!root": {"@_system": "root.dtd"}}),
        (
            '<!DOCTYPE root PUBLIC "-//Example//DTD Root//EN" "root.dtd">',
            {"!root": {"@_public": "-//Example//DTD Root//EN", "@_system": "root.dtd"}},
        ),
    ),
)
def test_doctype(parser_options, doctype, expected):
    assert parse(f"{doctype}\n<root/>", parser_options) == [expected, {"root": []}]


@pytest.mark.parametrize(
    ("remove_comments", "expected"),
    (
        (
            False,
            [
                {"#comment": "a"},
                {"?b": "c"},
                {"!r": None},
                {"#comment": "d"},
                {"r": []},
            ],
        ),
        (True, [{"?b": "c"}, {"!r": None}, {"r": []}]),
    ),
)
def test_document_level_nodes_around_doctype(
    parser_options, remove_comments, expected
):
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<!--a--><?b c?>\n<!DOCTYPE r>\n<!--d--><r/>"
    )
    options = parser_options._replace(remove_comments=remove_comments)
    assert parse(xml, options) == expected
    assert parse(BytesIO(xml.encode()), options) == expected


def test_encoded_bytes(parser_options):
    data = '<?xml version="1.0" encoding="ISO-8859-1"?><root>Hä</root>'.encode(
        "latin-1"
    )
    assert parse(data, parser_options) == [{"root": [{"#text": "Hä"}]}]
    assert parse(BytesIO(data), parser_options) == [{"root": [{"#text": "Hä"}]}]


def test_utf16_with_bom(parser_options):
    data = "<root>Hä</root>".encode("utf-16")
    assert parse(data, parser_options) == [{"root": [{"#text": "Hä"}]}]


@pytest.mark.parametrize(
    ("encoding", "expected"),
    (
        ("latin-1", "ISO-8859-1"),
        ("iso8859_15", "ISO-8859-15"),
        ("UTF-16-LE", "utf-16"),
        ("utf8", "utf-8"),
        ("windows-1252", "cp1252"),
    ),
)
def test_libxml2_encoding_name(encoding, expected):
    assert libxml2_encoding_name(encoding) == expected


@pytest.mark.parametrize("encoding", ("cp1252", "ISO-8859-1", "latin-1", "latin_1"))
def test_explicit_encoding(parser_options, encoding):
    data = "<root>Hä</root>".encode(encoding)
    options = parser_options._replace(encoding=encoding)
    assert parse(data, options) == [{"root": [{"#text": "Hä"}]}]


def test_unknown_encoding_warning():
    with pytest.warns(UserWarning, match="Defaulting to UTF-8"):
        assert parse(BytesIO("<root>ä</root>".encode())) == [
            {"root": [{"#text": "ä"}]}
        ]


@pytest.mark.parametrize("data", ("", "  \n", b"", b" "))
def test_empty_input(data):
    with pytest.raises(ParsingEmptyStream, match="empty"):
        parse(data)


def test_malformed_input(parser_options):
    with pytest.raises(Exception):  # noqa: B017
        parse("<root><a></root>", parser_options)


def test_builder():
    builder = ParsedObjectBuilder(ParserOptions())
    for event in (
        (EventType.Text, "\n"),
        (EventType.DocType, DocTypeEventData("root", None, None)),
        (EventType.Comment, "c"),
        (EventType.TagStart, TagEventData("root", {"a": "1"})),
        (EventType.Text, ""),
        (EventType.Text, " "),
        (EventType.CData, "d"),
        (EventType.ProcessingInstruction, ("e", "f")),
        (EventType.TagEnd, TagEventData("root", None)),
    ):
        builder.handle_event(event)

    assert builder.result == [
        {"!root": None},
        {"#comment": "c"},
        {"root": [{"@_a": "1"}, {"#text": " "}, {"#cdata": "d"}, {"?e": "f"}]},
    ]


def test_builder_errors():
    builder = ParsedObjectBuilder(ParserOptions())
    builder.handle_event((EventType.TagStart, TagEventData("root", None)))
    with pytest.raises(ParsingProcessingError, match="must precede"):
        builder.handle_event(
            (EventType.DocType, DocTypeEventData("root", None, "root.dtd"))
        )
    with pytest.raises(ParsingProcessingError, match="Unclosed elements: root"):
        builder.result

    builder = ParsedObjectBuilder(ParserOptions())
    builder.handle_event((EventType.Comment, "c"))
    with pytest.raises(ParsingEmptyStream, match="no root element"):
        builder.result


def test_event_data_types():
    assert [t.name for t in EventType] == [
        "CData",
        "Comment",
        "DocType",
        "ProcessingInstruction",
        "TagStart",
        "TagEnd",
        "Text",
    ]
    assert ParserOptions().preferred_parsers == ("expat", "lxml")
