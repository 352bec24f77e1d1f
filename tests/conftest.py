import pytest

# keep this before imports from _xmlbridge to get the plugins registered
import xmlbridge  # noqa: F401

from _xmlbridge.nodes import Document
from _xmlbridge.parser import ParserOptions
from _xmlbridge.plugins import plugin_manager
from _xmlbridge.serializer import DefaultStringOptions


PARSER_NAMES = tuple(sorted(plugin_manager.parsers))


@pytest.fixture(autouse=True)
def _default_string_options():
    yield
    DefaultStringOptions.reset_defaults()


@pytest.fixture
def document():
    return Document()


@pytest.fixture(params=PARSER_NAMES)
def parser_options(request):
    return ParserOptions(preferred_parsers=request.param)
