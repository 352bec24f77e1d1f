from io import BytesIO
from types import SimpleNamespace

import httpx
import pytest
from pytest_httpx import IteratorStream

from _xmlbridge.exceptions import FailedDocumentLoading
from _xmlbridge.plugins import PluginManager, plugin_manager
from _xmlbridge.plugins.core_loaders import buffer_loader, path_loader, text_loader
from _xmlbridge.plugins.https_loader import https_loader, post_document
from xmlbridge import (
    Document,
    FormatOptions,
    ParserOptions,
    load,
    load_tree,
    save,
    send,
)
from xmlbridge.loaders import register_loader


TEST_CONTENTS = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<TEI xmlns="http://www.tei-c.org/ns/1.0"><text><body>'
    '<p xml:id="p1">Ein Gespenst geht um in Europa.</p>'
    "</body></text></TEI>"
)
TEST_PARSED = [
    {
        "TEI": [
            {"@_xmlns": "http://www.tei-c.org/ns/1.0"},
            {
                "text": [
                    {
                        "body": [
                            {
                                "p": [
                                    {"@_xml:id": "p1"},
                                    {"#text": "Ein Gespenst geht um in Europa."},
                                ]
                            }
                        ]
                    }
                ]
            },
        ]
    }
]


@pytest.fixture
def config():
    return SimpleNamespace(parser_options=ParserOptions())


@pytest.fixture
def test_file(tmp_path):
    path = tmp_path / "manifest.xml"
    path.write_text(TEST_CONTENTS, encoding="utf-8")
    return path


def test_loader_order():
    assert plugin_manager.loaders.index(path_loader) == 0
    assert plugin_manager.loaders.index(buffer_loader) == 1
    assert plugin_manager.loaders.index(https_loader) < plugin_manager.loaders.index(
        text_loader
    )
    assert register_loader == plugin_manager.register_loader


def test_path_loader(config, test_file):
    assert path_loader(test_file, config) == TEST_PARSED
    assert config.source_url == test_file.as_uri()

    assert isinstance(path_loader(str(test_file), config), str)


def test_relative_path_loader(config, test_file, monkeypatch):
    monkeypatch.chdir(test_file.parent)
    assert path_loader(type(test_file)(test_file.name), config) == TEST_PARSED
    assert config.source_url == test_file.as_uri()


def test_buffer_loader(config, test_file):
    with test_file.open("rb") as file:
        file.read(10)
        assert buffer_loader(file, config) == TEST_PARSED
    assert config.source_url == test_file.as_uri()

    config = SimpleNamespace(parser_options=ParserOptions())
    assert buffer_loader(BytesIO(TEST_CONTENTS.encode()), config) == TEST_PARSED
    assert getattr(config, "source_url", None) is None

    assert isinstance(buffer_loader(TEST_CONTENTS, config), str)


def test_text_loader(config):
    assert text_loader(TEST_CONTENTS, config) == TEST_PARSED
    assert text_loader(TEST_CONTENTS.encode(), config) == TEST_PARSED
    assert getattr(config, "source_url", None) is None
    assert isinstance(text_loader(object(), config), str)


@pytest.mark.parametrize("s", ("", "s"))
def test_https_loader(httpx_mock, s):
    httpx_mock.add_response(
        stream=IteratorStream(
            (
                TEST_CONTENTS[i : i + 32].encode()
                for i in range(0, len(TEST_CONTENTS), 32)
            )
        )
    )
    url = f"http{s}://bdk.london/das_manifest.xml"
    config = SimpleNamespace(parser_options=ParserOptions())
    assert https_loader(url, config) == TEST_PARSED
    assert config.source_url == url


def test_https_loader_declines(config):
    assert isinstance(https_loader("ftp://example.org/a.xml", config), str)
    assert isinstance(https_loader(b"https://example.org/", config), str)


def test_failed_https_request(httpx_mock):
    httpx_mock.add_response(status_code=404)
    url = "https://example.org/missing.xml"

    with pytest.raises(FailedDocumentLoading) as exception_info:
        load(url)

    excuses = exception_info.value.excuses
    assert isinstance(excuses[https_loader], httpx.HTTPStatusError)
    assert isinstance(excuses[path_loader], str)


def test_load(test_file):
    assert load(test_file) == TEST_PARSED
    assert load(TEST_CONTENTS) == TEST_PARSED
    with test_file.open("rb") as file:
        assert load(file) == TEST_PARSED


def test_load_with_parser_options():
    assert load(
        "<root>\n  <a/>\n</root>", ParserOptions(remove_blank_text=True)
    ) == [{"root": [{"a": []}]}]


def test_failed_loading():
    source = object()
    with pytest.raises(FailedDocumentLoading) as exception_info:
        load(source)

    exception = exception_info.value
    assert exception.source is source
    assert set(exception.excuses) == set(plugin_manager.loaders)
    assert all(isinstance(e, str) for e in exception.excuses.values())
    assert str(exception).startswith("Couldn't load")


def test_config_options(monkeypatch):
    received = {}

    def custom_loader(data, config):
        received.update(vars(config))
        return [{"root": []}]

    monkeypatch.setattr(plugin_manager, "loaders", [custom_loader])
    assert load("anything", answer=42) == [{"root": []}]
    assert received["answer"] == 42
    assert received["parser_options"] == ParserOptions()


def test_register_loader():
    manager = PluginManager()

    def a(data, config):
        return "a"

    def b(data, config):
        return "b"

    def c(data, config):
        return "c"

    def d(data, config):
        return "d"

    assert manager.register_loader()(a) is a
    manager.register_loader()(b)
    manager.register_loader(before=b)(c)
    manager.register_loader(after=(a, c))(d)
    assert manager.loaders == [a, c, d, b]

    with pytest.raises(NotImplementedError):
        manager.register_loader(before=a, after=b)


def test_load_tree(test_file):
    document = load_tree(test_file)
    assert isinstance(document, Document)
    assert document.document_element.name == "TEI"
    assert document.get_element_by_id("p1").child_nodes[0].content == (
        "Ein Gespenst geht um in Europa."
    )

    class CustomDocument(Document):
        __slots__ = ()

    assert isinstance(
        load_tree(TEST_CONTENTS, document_factory=CustomDocument), CustomDocument
    )


def test_save(tmp_path, test_file):
    document = load_tree(test_file)
    target = tmp_path / "result.xml"

    save(document, target)
    assert target.read_text(encoding="utf-8") == TEST_CONTENTS
    assert load(target) == TEST_PARSED


def test_save_with_options(tmp_path):
    document = load_tree("<root><a>Hä</a><b/></root>")
    target = tmp_path / "result.xml"

    save(
        document,
        target,
        encoding="latin-1",
        format_options=FormatOptions(indentation="  "),
    )
    assert target.read_bytes() == (
        b'<?xml version="1.0" encoding="LATIN-1"?>\n'
        b"<root>\n  <a>H\xe4</a>\n  <b/>\n</root>"
    )
    assert load(target) == [
        {
            "root": [
                {"#text": "\n  "},
                {"a": [{"#text": "Hä"}]},
                {"#text": "\n  "},
                {"b": []},
                {"#text": "\n"},
            ]
        }
    ]

    save(document, target, xml_declaration=False)
    assert target.read_bytes() == "<root><a>Hä</a><b/></root>".encode()


def test_send(httpx_mock):
    httpx_mock.add_response(method="POST", status_code=201)
    document = load_tree("<root><a>Hä</a></root>")

    response = send(document, "https://example.org/documents")

    assert response.status_code == 201
    request = httpx_mock.get_request()
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/xml; charset=utf-8"
    assert request.content == (
        '<?xml version="1.0" encoding="UTF-8"?>\n<root><a>Hä</a></root>'.encode()
    )


def test_post_document_with_options(httpx_mock):
    httpx_mock.add_response(method="POST")
    document = load_tree("<root><a>Hä</a></root>")

    post_document(
        document,
        "http://example.org/documents",
        encoding="latin-1",
        format_options=FormatOptions(indentation="  "),
        xml_declaration=False,
    )

    request = httpx_mock.get_request()
    assert request.headers["Content-Type"] == "application/xml; charset=latin-1"
    assert request.content == b"<root>\n  <a>H\xe4</a>\n</root>"


def test_failed_post_request(httpx_mock):
    httpx_mock.add_response(method="POST", status_code=500)

    with pytest.raises(httpx.HTTPStatusError):
        send(load_tree("<root/>"), "https://example.org/documents")


@pytest.mark.parametrize("url", ("ftp://example.org/a.xml", "a.xml"))
def test_post_document_to_unsupported_url(url):
    with pytest.raises(ValueError, match="http or https"):
        post_document(load_tree("<root/>"), url)
