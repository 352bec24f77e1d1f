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
import re
from typing import TYPE_CHECKING, Final

from lxml import etree

from _xmlbridge.names import XML_NAMESPACE, deconstruct_clark_notation
from _xmlbridge.parser import DocTypeEventData, EventType, TagEventData
from _xmlbridge.plugins import XMLEventParserInterface


if TYPE_CHECKING:
    from collections.abc import Iterator

    from _xmlbridge.parser import Event, ParserOptions
    from _xmlbridge.typing import BinaryReader


_iso_8859_codec_name: Final = re.compile(r"iso8859-(\d+)")
_match_prolog_item: Final = re.compile(
    r"(?P<space>\s+)|(?P<pi><\?.*?\?>)|(?P<comment><!--.*?-->)", re.DOTALL
).match
_match_xml_declaration: Final = re.compile(r"<\?xml\s").match


def libxml2_encoding_name(encoding: str) -> str:
    """
    Translates a Python codec name or alias into a name that libxml2 understands.

    >>> libxml2_encoding_name("latin-1")
    'ISO-8859-1'
    """
    name = codecs.lookup(encoding).name
    if name.endswith(("-be", "-le")):
        name = name[:-3]
    if (match := _iso_8859_codec_name.fullmatch(name)) is not None:
        return f"ISO-8859-{match.group(1)}"
    return name


class LxmlParser(XMLEventParserInterface):
    __slots__ = (
        "doctype_reported",
        "encoding",
        "parser",
        "prolog",
        "prolog_events",
        "reports_comments",
        "reports_pis",
    )

    name = "lxml"

    def __init__(self, options: ParserOptions, base_url: str | None, encoding: str):
        self.doctype_reported = False
        self.encoding = encoding
        self.prolog: bytearray | str = bytearray()
        self.prolog_events: list[Event] = []
        self.reports_comments = not options.remove_comments
        self.reports_pis = not options.remove_processing_instructions
        self.parser = etree.XMLPullParser(
            base_url=base_url,
            dtd_validation=False,
            encoding=libxml2_encoding_name(encoding),
            events=("comment", "end", "pi", "start"),
            load_dtd=options.load_referenced_resources,
            no_network=options.unplugged,
            remove_blank_text=False,
            remove_comments=options.remove_comments,
            remove_pis=options.remove_processing_instructions,
            resolve_entities=True,
            strip_cdata=False,
        )

    def count_prolog_items_before_doctype(self) -> int:
        # lxml doesn't tell where the declaration is located among the comments and
        # processing instructions that precede the root element
        prolog = self.prolog
        if not isinstance(prolog, str):
            prolog = prolog.decode(self.encoding, errors="replace")
        position = 1 if prolog.startswith("\ufeff") else 0
        if _match_xml_declaration(prolog, position):
            position = prolog.find("?>", position) + 2

        result = 0
        while (match := _match_prolog_item(prolog, position)) is not None:
            if (match.lastgroup == "comment" and self.reports_comments) or (
                match.lastgroup == "pi" and self.reports_pis
            ):
                result += 1
            position = match.end()
        return result

    def emit_events(self) -> Iterator[Event]:
        for event in self.parser.read_events():
            yield from self.handle_event(event)

    def handle_doctype(self, element: etree._Element) -> Iterator[Event]:
        docinfo = element.getroottree().docinfo
        if docinfo.doctype:
            yield EventType.DocType, DocTypeEventData(
                name=docinfo.root_name,
                public_id=docinfo.public_id,
                system_id=docinfo.system_url,
            )

    def handle_prolog(self, element: etree._Element) -> Iterator[Event]:
        self.doctype_reported = True
        doctype_events = list(self.handle_doctype(element))
        preceding_items = (
            self.count_prolog_items_before_doctype() if doctype_events else 0
        )

        for event in self.prolog_events:
            if preceding_items == 0:
                yield from doctype_events
                doctype_events.clear()
            if event[0] in (EventType.Comment, EventType.ProcessingInstruction):
                preceding_items -= 1
            yield event
        yield from doctype_events

        self.prolog_events.clear()
        self.prolog = ""

    def handle_element_preceding_text(self, element: etree._Element):
        if ((parent := element.getparent()) is not None) and (
            parent.index(element) == 0
        ):
            if parent.text:
                yield EventType.Text, parent.text
        elif (previous := element.getprevious()) is not None:
            if previous.tail:
                yield EventType.Text, previous.tail
            previous.clear()

    def handle_event(self, event: etree._ParseEvent) -> Iterator[Event]:
        action, element = event
        assert isinstance(element, etree._Element)
        if not self.doctype_reported:
            if action != "start":
                self.prolog_events.extend(self.handle_node_event(action, element))
                return
            yield from self.handle_prolog(element)
        yield from self.handle_node_event(action, element)

    def handle_node_event(
        self, action: str, element: etree._Element
    ) -> Iterator[Event]:
        if action in ("comment", "pi", "start"):
            yield from self.handle_element_preceding_text(element)

        if action == "comment":
            assert isinstance(element, etree._Comment)
            yield EventType.Comment, element.text or ""
        elif action == "end":
            if len(element):
                if element[-1].tail:
                    yield EventType.Text, element[-1].tail
                    element[-1].tail = None
            else:
                if element.text:
                    yield EventType.Text, element.text

            yield EventType.TagEnd, TagEventData(self.qualified_name(element), None)
        elif action == "pi":
            assert isinstance(element, etree._ProcessingInstruction)
            assert isinstance(element.target, str)
            yield EventType.ProcessingInstruction, (element.target, element.text or "")
        elif action == "start":
            yield EventType.TagStart, TagEventData(
                self.qualified_name(element), self.process_attributes(element)
            )

    def parse(self, data: BinaryReader | str) -> Iterator[Event]:
        if isinstance(data, str):
            self.prolog = data
            self.parser.feed(data)
        else:
            while chunk := data.read():
                if not self.doctype_reported:
                    self.prolog += chunk  # type: ignore
                self.parser.feed(chunk)
                yield from self.emit_events()

        self.parser.close()
        yield from self.emit_events()

    @staticmethod
    def process_attributes(element: etree._Element) -> dict[str, str]:
        result = {}

        parent = element.getparent()
        inherited = {} if parent is None else parent.nsmap
        for prefix, namespace in element.nsmap.items():
            if inherited.get(prefix) != namespace:
                result["xmlns" if prefix is None else f"xmlns:{prefix}"] = namespace

        prefixes = {v: k for k, v in element.nsmap.items() if k is not None}
        prefixes[XML_NAMESPACE] = "xml"
        for name, value in element.attrib.items():
            assert isinstance(name, str)
            assert isinstance(value, str)
            namespace, local_name = deconstruct_clark_notation(name)
            if namespace is None:
                result[local_name] = value
            else:
                result[f"{prefixes[namespace]}:{local_name}"] = value

        return result

    @staticmethod
    def qualified_name(element: etree._Element) -> str:
        local_name = etree.QName(element).localname
        if element.prefix is None:
            return local_name
        return f"{element.prefix}:{local_name}"


__all__ = (LxmlParser.__name__,)
