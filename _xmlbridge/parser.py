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

import codecs
import logging
import re
import warnings
from enum import IntEnum, auto
from io import BytesIO
from typing import (
    TYPE_CHECKING,
    Any,
    Final,
    NamedTuple,
    Optional,
    TypeAlias,
    cast,
)

from _xmlbridge.exceptions import ParsingEmptyStream, ParsingProcessingError
from _xmlbridge.plugins import plugin_manager
from _xmlbridge.properties import (
    ATTRIBUTE_KEY_PREFIX,
    CDATA_KEY,
    COMMENT_KEY,
    PUBLIC_ID_KEY,
    SYSTEM_ID_KEY,
    TEXT_KEY,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from _xmlbridge.plugins import XMLEventParserInterface
    from _xmlbridge.typing import BinaryReader, InputStream


logger: Final = logging.getLogger(__name__)


BOM_TO_ENCODING_NAME: Final = (
    (4, codecs.BOM_UTF32_LE, "utf-32-le"),
    (4, codecs.BOM_UTF32_BE, "utf-32-be"),
    (3, codecs.BOM_UTF8, "utf-8"),
    (2, codecs.BOM_UTF16_LE, "utf-16-le"),
    (2, codecs.BOM_UTF16_BE, "utf-16-be"),
)


_match_encoding: Final = re.compile(
    rb"""<\?xml\s+version=["']1\.[01]["']\s+"""
    rb"""encoding=["']([A-Za-z][A-Za-z0-9._-]*)["']"""
).match


class _EncodingDetectingReader:
    __slots__ = ("buffer", "first_bytes", "reading")

    def __init__(self, buffer: BinaryReader):
        self.buffer = buffer
        self.first_bytes = b""
        self.reading = False

    def get_encoding(self) -> str | None:
        if self.reading:
            raise RuntimeError("Get the encoding before reading from the buffer!")

        self.first_bytes = self.buffer.read(64)
        return detect_encoding(self.first_bytes)

    def read(self, n: int = -1) -> bytes:
        if self.reading:
            return self.buffer.read(n)
        else:
            self.reading = True
            return self.first_bytes + self.buffer.read(n)


class EventType(IntEnum):
    CData = auto()
    Comment = auto()
    DocType = auto()
    ProcessingInstruction = auto()
    TagStart = auto()
    TagEnd = auto()
    Text = auto()


class ParserOptions(NamedTuple):
    """
    The configuration options that define an XML parser's behaviour.

    The used parser backend is determined by their availability and the
    ``preferred_parsers`` setting. Two adapters are contributed and further ones can be
    added to the plugin manager based on
    :class:`_xmlbridge.plugins.XMLEventParserInterface`.

    The ``expat`` parser adapter depends on the :mod:`xml.sax.expatreader` module from
    the standard library. It reports CDATA sections and document type declarations.

    The ``lxml`` based parser requires the *lxml* package to be present in the
    interpreter environment. It reports the contents of CDATA sections as ordinary
    text. It should not be used with other encodings than Unicode.

    Beside the :exc:`_xmlbridge.exceptions.ParsingError` exception and its derivations
    the employed parsers may evoke their specific exceptions when confronted with
    invalid syntax and not-so-well-formed documents.
    """

    encoding: Optional[str] = None
    """
    This should be used for streams where the encoding is not noted in an XML document
    declaration or indicated by a BOM for Unicode encodings. It doesn't affect parsing
    of data that is passed as :class:`str`. Default: :obj:`None`.
    """
    load_referenced_resources: bool = False
    """Allows the loading of referenced external DTDs. Default: :obj:`False`."""
    preferred_parsers: str | Sequence[str] = ("expat", "lxml")
    """
    A parser adapter name or a sequence of such that are preferably to be used.
    Default: ``("expat", "lxml")``.
    """
    remove_blank_text: bool = False
    """Drop text that consists only of whitespace. Default: :obj:`False`."""
    remove_comments: bool = False
    """Ignore comments. Default: :obj:`False`."""
    remove_processing_instructions: bool = False
    """
    Don't include processing instructions in the parsed document.
    Default: :obj:`False`.
    """
    unplugged: bool = False
    """Don't load referenced resources over network. Default: :obj:`False`."""


class TagEventData(NamedTuple):
    name: str
    """The element's name as it was written, possibly with a namespace prefix."""
    attributes: dict[str, str] | None
    """
    The attributes in document order, including namespace declarations. It is optional
    in case of a :py:enum:`EventType.TagEnd`.
    """


class DocTypeEventData(NamedTuple):
    name: str
    public_id: Optional[str]
    system_id: Optional[str]


Event: TypeAlias = tuple[
    EventType, str | tuple[str, str] | TagEventData | DocTypeEventData
]
"""
An XML stream event tuple consists of two values. The first is a member of
:class:`EventType` that signals the type of event, the second carries the relevant data.
All data must be stripped of XML markup characters and character data must be completely
parsed and normalized. Character entities must be resolved.

- :py:enum:member:`EventType.CData`: :class:`str`
- :py:enum:member:`EventType.Comment`: :class:`str`
- :py:enum:member:`EventType.DocType`: :class:`DocTypeEventData`
- :py:enum:member:`EventType.ProcessingInstruction`: ``(target, data)``
- :py:enum:member:`EventType.TagStart`: :class:`TagEventData`
- :py:enum:member:`EventType.TagEnd`: :class:`TagEventData`
- :py:enum:member:`EventType.Text`: :class:`str`
"""


def detect_encoding(stream: bytes) -> str | None:
    """
    Determines a stream's encoding from its XML declaration or a Byte Order Mark.

    >>> detect_encoding(b'<?xml version="1.0" encoding="latin-1"?><root/>')
    'latin-1'
    >>> detect_encoding(b"<root/>") is None
    True
    """
    if (match := _match_encoding(stream)) is not None:
        return match.group(1).decode("ascii")
    else:
        for bom_size, bom, name in BOM_TO_ENCODING_NAME:
            if stream[:bom_size] == bom:
                return name
        else:
            return None


def _make_parser(
    options: ParserOptions, *, base_url: str | None, encoding: str
) -> XMLEventParserInterface:
    parser_class = plugin_manager.get_parser(options.preferred_parsers)
    logger.debug("Parsing with the %s parser adapter.", parser_class.name)
    return parser_class(options, base_url=base_url, encoding=encoding)


def parse_events(
    input_: InputStream, options: ParserOptions, base_url: str | None
) -> Iterator[Event]:
    encoding = options.encoding
    if isinstance(input_, str):
        encoding = "utf-8"

    elif isinstance(input_, bytes):
        if encoding is None:
            encoding = detect_encoding(input_)
        input_ = BytesIO(input_)

    elif encoding is None:
        if input_.seekable():
            encoding = detect_encoding(input_.read(64))
            input_.seek(0)
        else:
            input_ = _EncodingDetectingReader(input_)
            encoding = input_.get_encoding()

    if encoding is None:
        warnings.warn(
            "No encoding known for parsing an XML stream. Defaulting to UTF-8.",
            category=UserWarning,
        )
        encoding = "utf-8"

    yield from _make_parser(options, base_url=base_url, encoding=encoding).parse(
        cast("BinaryReader", input_)
    )


# building parsed documents


class ParsedObjectBuilder:
    """
    Assembles the parsed document form from a stream of parser events. Elements are
    represented as a mapping of their name to a list of single-entry mappings, their
    attributes precede their content.
    """

    __slots__ = ("contents", "options", "started_tags")

    def __init__(self, options: ParserOptions):
        self.contents: Final[list[list[dict[str, Any]]]] = [[]]
        self.options: Final = options
        self.started_tags: Final[list[str]] = []

    def append(self, key: str, value: Any):
        self.contents[-1].append({key: value})

    def handle_event(self, event: Event):
        type_, data = event

        match type_:
            case EventType.CData:
                assert isinstance(data, str)
                self.append(CDATA_KEY, data)
            case EventType.Comment:
                assert isinstance(data, str)
                self.append(COMMENT_KEY, data)
            case EventType.DocType:
                assert isinstance(data, DocTypeEventData)
                self.handle_doctype(data)
            case EventType.ProcessingInstruction:
                assert isinstance(data, tuple)
                self.append(f"?{data[0]}", data[1])
            case EventType.TagStart:
                assert isinstance(data, TagEventData)
                self.handle_tag_start(data)
            case EventType.TagEnd:
                assert isinstance(data, TagEventData)
                self.handle_tag_end(data)
            case EventType.Text:
                assert isinstance(data, str)
                self.handle_text(data)

    def handle_doctype(self, data: DocTypeEventData):
        if self.started_tags:
            raise ParsingProcessingError(
                "A document type declaration must precede the root element."
            )
        identifiers = {}
        if data.public_id is not None:
            identifiers[PUBLIC_ID_KEY] = data.public_id
        if data.system_id is not None:
            identifiers[SYSTEM_ID_KEY] = data.system_id
        self.append(f"!{data.name}", identifiers or None)

    def handle_tag_end(self, data: TagEventData):
        name = self.started_tags.pop()
        if __debug__:
            assert name == data.name
        content = self.contents.pop()
        self.append(name, content)

    def handle_tag_start(self, data: TagEventData):
        self.started_tags.append(data.name)
        self.contents.append(
            [
                {f"{ATTRIBUTE_KEY_PREFIX}{name}": value}
                for name, value in (data.attributes or {}).items()
            ]
        )

    def handle_text(self, data: str):
        if not data:
            return
        if data.isspace() and (self.options.remove_blank_text or not self.started_tags):
            return
        self.append(TEXT_KEY, data)

    @property
    def result(self) -> list[dict[str, Any]]:
        if self.started_tags:
            raise ParsingProcessingError(
                f"Unclosed elements: {', '.join(self.started_tags)}"
            )
        result = self.contents[0]
        if not any(_is_element_entry(e) for e in result):
            raise ParsingEmptyStream("The input contains no root element.")
        return result


def _is_element_entry(entry: dict[str, Any]) -> bool:
    key = next(iter(entry))
    return key[0] not in "#?!@"


def parse(
    data: InputStream,
    options: Optional[ParserOptions] = None,
    *,
    base_url: str | None = None,
) -> list[dict[str, Any]]:
    """
    Parses XML data into the parsed document form.

    :param data: XML as string, byte sequence or binary stream.
    :param options: The options that configure the parser.
    :param base_url: The base URL for resolving references.
    :raises ParsingEmptyStream: When the data contains no root element.

    >>> parse('<root id="1">hi<!-- x --></root>')
    [{'root': [{'@_id': '1'}, {'#text': 'hi'}, {'#comment': ' x '}]}]
    """
    if options is None:
        options = ParserOptions()

    if isinstance(data, (bytes, str)) and not data.strip():
        raise ParsingEmptyStream()

    builder = ParsedObjectBuilder(options)
    try:
        for event in parse_events(data, options, base_url):
            builder.handle_event(event)
        return builder.result
    except Exception as e:
        logger.error("Failed to parse XML data from %s: %s", base_url or "input", e)
        raise


__all__ = (
    "Event",
    "EventType",
    DocTypeEventData.__name__,
    ParsedObjectBuilder.__name__,
    ParserOptions.__name__,
    TagEventData.__name__,
    detect_encoding.__name__,
    parse.__name__,
)
