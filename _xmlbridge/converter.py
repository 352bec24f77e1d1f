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
Conversions between the parsed document form and trees of nodes.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Final

from _xmlbridge.exceptions import InvalidCodePath, StructuralError
from _xmlbridge.grammar import name_pattern
from _xmlbridge.nodes import Document
from _xmlbridge.properties import (
    ATTRIBUTE_KEY_PREFIX,
    CDATA_KEY,
    COMMENT_KEY,
    PUBLIC_ID_KEY,
    SYSTEM_ID_KEY,
    TEXT_KEY,
    PropertyType,
    classify_property,
    iterate_properties,
    unescape_attribute,
)
from _xmlbridge.typing import DocumentTypeNodeType, NodeType, TagNodeType

if TYPE_CHECKING:
    from collections.abc import Callable

    from _xmlbridge.typing import DocumentNodeType, ParsedDocument, XMLNodeType


_match_pseudo_attribute: Final = re.compile(
    rf'\s*(?P<name>{name_pattern})\s*=\s*"(?P<value>[^"<]*)"\s*'
).match


# parsed documents to trees


def to_target_tree(
    parsed_document: ParsedDocument,
    document_factory: Callable[[], DocumentNodeType] = Document,
) -> DocumentNodeType:
    """
    Converts a parsed document into a tree.

    :param parsed_document: A mapping or a sequence of mappings of structural property
                            keys to their values.
    :param document_factory: Creates the document that produces all nodes.
    :raises StructuralError: When the content can't be represented by a document.
    :raises UnknownPropertyType: For keys of no known property type.

    >>> str(to_target_tree({"root": {"@_id": "1", "#text": "hi"}}))
    '<root id="1">hi</root>'
    """
    if isinstance(parsed_document, str):
        raise StructuralError("A document can't consist of text only.")

    document = document_factory()

    for key, value in iterate_properties(parsed_document):
        property_type = classify_property(key)
        match property_type:
            case PropertyType.ATTRIBUTE:
                raise StructuralError("A document can't have attributes.")
            case PropertyType.DOC_TYPE:
                doctype = property_type.convert(document, key, value)
                assert isinstance(doctype, DocumentTypeNodeType)
                document.doctype = doctype
            case PropertyType.TEXT_NODE:
                if key == TEXT_KEY and (value is None or str(value).isspace()):
                    continue
                raise StructuralError("A document can't contain character data.")
            case PropertyType.ELEMENT:
                if document.document_element is not None:
                    raise StructuralError("A document can only have one root element.")
                document.append_child(property_type.convert(document, key, value))
            case PropertyType.COMMENT | PropertyType.PROCESSING_INSTRUCTION:
                document.append_child(property_type.convert(document, key, value))
            case _:  # pragma: no cover
                raise InvalidCodePath

    return document


# trees to parsed documents


def to_parsed_object(
    node: XMLNodeType, structured_pi_data: bool = False
) -> list[dict[str, Any]]:
    """
    Converts a node into the parsed document form, a list of mappings with one entry
    each. The value of an element is such a list as well where its attributes precede
    its child nodes. Documents and document fragments are represented by the list of
    their child nodes' entries.

    :param node: The node to convert.
    :param structured_pi_data: Returns the data of processing instructions that
                               consists only of pseudo-attributes as mapping.

    >>> document = to_target_tree({"root": {"@_id": "1", "#text": "hi"}})
    >>> to_parsed_object(document)
    [{'root': [{'@_id': '1'}, {'#text': 'hi'}]}]
    """
    if node.node_type in (NodeType.DOCUMENT, NodeType.DOCUMENT_FRAGMENT):
        return [_parsed_entry(n, structured_pi_data) for n in node.child_nodes]
    return [_parsed_entry(node, structured_pi_data)]


def _parsed_entry(node: XMLNodeType, structured_pi_data: bool) -> dict[str, Any]:
    content = node.content or ""
    match node.node_type:
        case NodeType.ATTRIBUTE:
            return {f"{ATTRIBUTE_KEY_PREFIX}{node.name}": content}
        case NodeType.CDATA_SECTION:
            return {CDATA_KEY: content}
        case NodeType.COMMENT:
            return {COMMENT_KEY: content}
        case NodeType.DOCUMENT_TYPE:
            assert isinstance(node, DocumentTypeNodeType)
            identifiers = {}
            if node.public_id is not None:
                identifiers[PUBLIC_ID_KEY] = node.public_id
            if node.system_id is not None:
                identifiers[SYSTEM_ID_KEY] = node.system_id
            return {f"!{node.name}": identifiers or None}
        case NodeType.ELEMENT:
            assert isinstance(node, TagNodeType)
            value: list[dict[str, Any]] = [
                {f"{ATTRIBUTE_KEY_PREFIX}{name}": attribute.value}
                for name, attribute in node.attributes.items()
            ]
            value.extend(
                _parsed_entry(n, structured_pi_data) for n in node.child_nodes
            )
            assert node.name is not None
            return {node.name: value}
        case NodeType.PROCESSING_INSTRUCTION:
            if structured_pi_data:
                return {f"?{node.name}": parse_pi_data(content)}
            return {f"?{node.name}": content}
        case NodeType.TEXT:
            return {TEXT_KEY: content}
        case _:
            raise StructuralError(
                f"A node of type {node.node_type.name} can't be nested."
            )


def parse_pi_data(data: str) -> str | dict[str, str]:
    """
    Parses the data of a processing instruction into a mapping of pseudo-attributes.
    Data that doesn't consist of pseudo-attributes only is returned as it is.

    >>> parse_pi_data('version="1.0" encoding="utf-8"')
    {'@_version': '1.0', '@_encoding': 'utf-8'}
    """
    result: dict[str, str] = {}
    position, end = 0, len(data)
    while position < end:
        match = _match_pseudo_attribute(data, position)
        if match is None:
            return data
        result[ATTRIBUTE_KEY_PREFIX + match.group("name")] = unescape_attribute(
            match.group("value")
        )
        position = match.end()
    return result or data


__all__ = (
    parse_pi_data.__name__,
    to_parsed_object.__name__,
    to_target_tree.__name__,
)
