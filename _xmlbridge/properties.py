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
The structural property keys of parsed documents and their conversion to nodes.

A parsed document is an ordered collection of properties. The syntax of a property's
key encodes the kind of node that its value describes:

- ``@_name``: an attribute and its value
- ``name``: an element and its content
- ``#text``: character data
- ``#cdata``: character data in a CDATA section
- ``#comment``: a comment
- ``?target``: a processing instruction, its data may be given as pseudo-attributes
- ``!name``: a document type declaration with optional ``@_public`` and ``@_system``
  identifiers
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional
from xml.sax.saxutils import unescape

from _xmlbridge.exceptions import (
    DeclarationNotAllowed,
    StructuralError,
    UnknownPropertyType,
)
from _xmlbridge.grammar import name_pattern
from _xmlbridge.typing import NodeType

if TYPE_CHECKING:
    from collections.abc import Iterator

    from _xmlbridge.typing import (
        DocumentNodeType,
        ParsedValue,
        PropertyConverter,
        TagNodeType,
        XMLNodeType,
    )


CDATA_KEY: Final = "#cdata"
CDATA_KEYS: Final = (CDATA_KEY, "#cdata-section")
TEXT_KEY: Final = "#text"
COMMENT_KEY: Final = "#comment"
ATTRIBUTE_KEY_PREFIX: Final = "@_"
PUBLIC_ID_KEY: Final = "@_public"
SYSTEM_ID_KEY: Final = "@_system"

_PI_TEXT_ENTITIES: Final = {"&quot;": '"', "&apos;": "'"}


# attribute values


def escape_attribute(value: str) -> str:
    """
    Replaces all double quotes with the entity reference ``&quot;``.

    >>> escape_attribute('a"b"c')
    'a&quot;b&quot;c'
    """
    return value.replace('"', "&quot;")


def unescape_attribute(value: str) -> str:
    """
    Replaces the first ``&quot;`` entity reference with a double quote. Further
    occurrences are left as they are.

    >>> unescape_attribute("a&quot;b&quot;c")
    'a"b&quot;c'
    """
    return value.replace("&quot;", '"', 1)


# property types


class PropertyType(Enum):
    """
    The kinds of structural properties. Each carries a label and a pattern that fully
    matches the keys of its kind and captures the name of the designated node as
    ``tag`` group.
    """

    DOC_TYPE = ("DocType", rf"!(?P<tag>{name_pattern})")
    PROCESSING_INSTRUCTION = ("ProcessInstruction", rf"\?(?P<tag>{name_pattern})")
    COMMENT = ("Comment", r"#(?P<tag>comment)")
    TEXT_NODE = ("TextNode", r"#(?P<tag>text|cdata|cdata-section)")
    ELEMENT = ("Element", rf"(?P<tag>{name_pattern})")
    ATTRIBUTE = ("Attribute", rf"@_(?P<tag>{name_pattern})")

    def __init__(self, label: str, pattern: str):
        self.label = label
        self.pattern = re.compile(pattern)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}.{self.name}>"

    def convert(
        self, document: DocumentNodeType, key: str, value: ParsedValue
    ) -> XMLNodeType:
        """
        Creates the node that a property describes with the factory methods of the
        given document.

        :param document: The document that the node shall belong to.
        :param key: The property's key, it must be of this type.
        :param value: The property's value.
        """
        match = self.pattern.fullmatch(key)
        if match is None:
            raise UnknownPropertyType(key)
        return _CONVERTERS[self](document, key, match.group("tag"), value)


_CLASSIFICATION_ORDER: Final = (
    PropertyType.COMMENT,
    PropertyType.PROCESSING_INSTRUCTION,
    PropertyType.ATTRIBUTE,
    PropertyType.ELEMENT,
    PropertyType.TEXT_NODE,
)


def classify_property(key: Any) -> PropertyType:
    """
    Determines the type of a property by its key.

    :raises UnknownPropertyType: When the key matches none of the types.

    >>> classify_property("@_id")
    <PropertyType.ATTRIBUTE>
    >>> classify_property("!DOCTYPE")
    <PropertyType.DOC_TYPE>
    """
    if isinstance(key, str):
        for property_type in _CLASSIFICATION_ORDER:
            if property_type.pattern.fullmatch(key) is not None:
                return property_type
        if PropertyType.DOC_TYPE.pattern.fullmatch(key) is not None:
            return PropertyType.DOC_TYPE
    raise UnknownPropertyType(key)


def iterate_properties(content: ParsedValue) -> Iterator[tuple[str, ParsedValue]]:
    """
    Yields the key-value pairs of parsed content in their order. Plain strings are
    text.
    """
    match content:
        case None:
            return
        case str():
            yield TEXT_KEY, content
        case Mapping():
            yield from content.items()
        case Sequence():
            for item in content:
                if not isinstance(item, Mapping):
                    raise StructuralError(
                        f"Expected a mapping of properties, got {item!r}."
                    )
                yield from item.items()
        case _:
            raise StructuralError(f"Unsupported parsed content: {content!r}")


def append_parsed_content(parent: TagNodeType, content: ParsedValue):
    """
    Converts parsed content and adds the resulting nodes to an element. Attributes are
    set on the element, document fragments are spliced in.

    :raises DeclarationNotAllowed: For document type declarations or documents.
    :raises UnknownPropertyType: For keys of no known property type.
    """
    document = parent.owner_document
    assert document is not None

    for key, value in iterate_properties(content):
        property_type = classify_property(key)
        if property_type is PropertyType.DOC_TYPE:
            raise DeclarationNotAllowed("a document type declaration")

        node = property_type.convert(document, key, value)
        match node.node_type:
            case NodeType.DOCUMENT:
                raise DeclarationNotAllowed("a document")
            case NodeType.DOCUMENT_TYPE:
                raise DeclarationNotAllowed("a document type declaration")
            case NodeType.ATTRIBUTE:
                parent.set_attribute_node(node)  # type: ignore
            case _:
                parent.append_child(node)


# processing instructions


def create_pi_data(
    value: ParsedValue, document: Optional[DocumentNodeType] = None
) -> str:
    """
    Composes the data of a processing instruction. Sequences are joined with spaces.
    Attributes in mappings are rendered as pseudo-attributes, nested elements, comments
    and CDATA sections as markup and character data is unescaped.

    :param value: The structured data.
    :param document: Creates the nodes that are rendered as markup, a new default
                     :class:`_xmlbridge.nodes.Document` if omitted.

    >>> create_pi_data({"@_version": "1.0", "@_encoding": "utf-8"})
    'version="1.0" encoding="utf-8"'
    >>> create_pi_data({"b": {"@_x": "1"}})
    '<b x="1"/>'
    """
    match value:
        case None:
            return ""
        case str():
            return value
        case Mapping():
            return " ".join(_pi_data_item(k, v, document) for k, v in value.items())
        case Sequence():
            return " ".join(create_pi_data(v, document) for v in value)
        case int() | float():
            return str(value)
        case _:
            raise StructuralError(
                f"Unsupported data of a processing instruction: {value!r}"
            )


def _pi_data_item(
    key: str, value: ParsedValue, document: Optional[DocumentNodeType]
) -> str:
    property_type = classify_property(key)
    match property_type:
        case PropertyType.ATTRIBUTE:
            tag = property_type.pattern.fullmatch(key).group("tag")  # type: ignore
            return f'{tag}="{escape_attribute(create_pi_data(value, document))}"'
        case PropertyType.TEXT_NODE if key == TEXT_KEY:
            return unescape(create_pi_data(value, document), _PI_TEXT_ENTITIES)
        case PropertyType.COMMENT | PropertyType.ELEMENT | PropertyType.TEXT_NODE:
            # both modules depend on this one
            from _xmlbridge.nodes import Document
            from _xmlbridge.serializer import render

            if document is None:
                document = Document()
            return render(property_type.convert(document, key, value))
    raise StructuralError(
        f"A {property_type.label} property can't be part of a processing instruction."
    )


# converters


def _character_data(key: str, value: ParsedValue) -> str:
    match value:
        case str():
            return value
        case None:
            return ""
        case int() | float() if not isinstance(value, bool):
            return str(value)
        case _:
            raise StructuralError(f"The value of {key!r} must be a string.")


def _convert_attribute(
    document: DocumentNodeType, key: str, tag: str, value: ParsedValue
) -> XMLNodeType:
    return document.create_attribute(tag, _character_data(key, value))


def _convert_comment(
    document: DocumentNodeType, key: str, tag: str, value: ParsedValue
) -> XMLNodeType:
    return document.create_comment(_character_data(key, value))


def _convert_doctype(
    document: DocumentNodeType, key: str, tag: str, value: ParsedValue
) -> XMLNodeType:
    public_id = system_id = None
    if isinstance(value, Mapping):
        if (public_id := value.get(PUBLIC_ID_KEY)) is not None:
            public_id = _character_data(PUBLIC_ID_KEY, public_id)
        if (system_id := value.get(SYSTEM_ID_KEY)) is not None:
            system_id = _character_data(SYSTEM_ID_KEY, system_id)
    return document.create_document_type(tag, public_id, system_id)


def _convert_element(
    document: DocumentNodeType, key: str, tag: str, value: ParsedValue
) -> XMLNodeType:
    element = document.create_element(tag)
    append_parsed_content(element, value)
    return element


def _convert_processing_instruction(
    document: DocumentNodeType, key: str, tag: str, value: ParsedValue
) -> XMLNodeType:
    return document.create_processing_instruction(tag, create_pi_data(value, document))


def _convert_text(
    document: DocumentNodeType, key: str, tag: str, value: ParsedValue
) -> XMLNodeType:
    data = _character_data(key, value)
    if key in CDATA_KEYS:
        return document.create_cdata_section(data)
    return document.create_text_node(data)


_CONVERTERS: Final[dict[PropertyType, PropertyConverter]] = {
    PropertyType.ATTRIBUTE: _convert_attribute,
    PropertyType.COMMENT: _convert_comment,
    PropertyType.DOC_TYPE: _convert_doctype,
    PropertyType.ELEMENT: _convert_element,
    PropertyType.PROCESSING_INSTRUCTION: _convert_processing_instruction,
    PropertyType.TEXT_NODE: _convert_text,
}


__all__ = (
    append_parsed_content.__name__,
    classify_property.__name__,
    create_pi_data.__name__,
    escape_attribute.__name__,
    iterate_properties.__name__,
    PropertyType.__name__,
    unescape_attribute.__name__,
)
