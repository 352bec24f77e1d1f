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

from abc import ABC
from io import StringIO, TextIOWrapper
from typing import (
    TYPE_CHECKING,
    ClassVar,
    Final,
    NamedTuple,
    Optional,
    TextIO,
)

from _xmlbridge.properties import escape_attribute
from _xmlbridge.typing import (
    DocumentTypeNodeType,
    NodeType,
    TagNodeType,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from _xmlbridge.typing import XMLNodeType


# constants


CTRL_CHAR_ENTITY_NAME_MAPPING: Final = (
    ("&", "amp"),
    (">", "gt"),
    ("<", "lt"),
)
CCE_TABLE_FOR_TEXT: Final = str.maketrans(
    {ord(k): f"&{v};" for k, v in CTRL_CHAR_ENTITY_NAME_MAPPING}
)

XML_DECLARATION_TARGET: Final = "xml"


# configuration


class FormatOptions(NamedTuple):
    """
    Instances of this class can be used to define a serialization formatting that is
    easier to read for humans.

    The child nodes of elements that contain no character data are each put on a line
    of their own, indented per depth level. Whitespace-only text nodes between them are
    dropped. Elements with character data are serialized as they are.
    """

    indentation: str = "\t"
    """ This string prefixes descending nodes' contents one time per depth level. """


class DefaultStringOptions:
    """
    This object's class variables are used to configure the serialization parameters
    that are applied when nodes are coerced to :class:`str` objects. Hence it also
    applies when node objects are fed to the :func:`print` function and in other cases
    where objects are implicitly cast to strings.

    .. attention::

        Use this once to define behaviour on *application level*. For thread-safe
        serializations of nodes with diverging parameters use :func:`render`!
    """

    newline: ClassVar[None | str] = None
    """
    See :class:`io.TextIOWrapper` for a detailed explanation of the parameter with the
    same name.
    """
    format_options: ClassVar[None | FormatOptions] = None
    """
    An instance of :class:`FormatOptions` can be provided to configure formatting.
    """

    @classmethod
    def reset_defaults(cls):
        """Restores the factory settings."""
        cls.format_options = None
        cls.newline = None


# api


def render(
    node: XMLNodeType,
    format_options: Optional[FormatOptions] = None,
    *,
    xml_declaration: bool = False,
    newline: Optional[str] = None,
) -> str:
    """
    Serializes a node and its descendants.

    :param node: The node to render, documents and fragments are rendered with all
                 their children.
    :param format_options: Enables pretty printing.
    :param xml_declaration: Prepends an XML declaration unless the node is a document
                            that has one as first child.
    :param newline: See :class:`io.StringIO`.
    """
    serializer = get_serializer(_StringWriter(newline=newline), format_options)
    if xml_declaration:
        serializer.write_xml_declaration(node)
    serializer.serialize_node(node)
    return serializer.writer.result


def write(
    node: XMLNodeType,
    buffer: TextIOWrapper,
    *,
    encoding: str = "utf-8",
    format_options: Optional[FormatOptions] = None,
    xml_declaration: bool = True,
    newline: Optional[str] = None,
):
    """Serializes a node into a text buffer with the given encoding."""
    serializer = get_serializer(
        _TextBufferWriter(buffer, encoding=encoding, newline=newline), format_options
    )
    if xml_declaration:
        serializer.write_xml_declaration(node, encoding=encoding)
    serializer.serialize_node(node)


# serializer


def get_serializer(
    writer: _SerializationWriter, format_options: Optional[FormatOptions]
) -> Serializer:
    if format_options is None:
        return Serializer(writer)

    if format_options.indentation and not format_options.indentation.isspace():
        raise ValueError("Invalid indentation characters.")

    return PrettySerializer(writer, format_options)


def _has_character_data(node: XMLNodeType) -> bool:
    return any(
        (c.node_type is NodeType.TEXT and c.content and not c.content.isspace())
        or c.node_type is NodeType.CDATA_SECTION
        for c in node.child_nodes
    )


class Serializer:
    __slots__ = ("writer",)

    def __init__(self, writer: _SerializationWriter):
        self.writer = writer

    def _serialize_attributes(self, node: TagNodeType):
        for name, attribute in node.attributes.items():
            self.writer(f' {name}="{self._attribute_value(attribute.value)}"')

    @staticmethod
    def _attribute_value(value: str) -> str:
        return escape_attribute(value.translate(CCE_TABLE_FOR_TEXT))

    def _serialize_child_nodes(self, child_nodes: Sequence[XMLNodeType]):
        for child_node in child_nodes:
            self.serialize_node(child_node)

    def _serialize_doctype(self, node: DocumentTypeNodeType):
        self.writer(f"<!DOCTYPE {node.name}")
        if node.public_id is not None:
            self.writer(f' PUBLIC "{node.public_id}" "{node.system_id or ""}"')
        elif node.system_id is not None:
            self.writer(f' SYSTEM "{node.system_id}"')
        if node.internal_subset:
            self.writer(f" [{''.join(node.internal_subset)}]")
        self.writer(">")

    def _serialize_document(self, child_nodes: Sequence[XMLNodeType]):
        for index, child_node in enumerate(child_nodes):
            if index:
                self.writer("\n")
            self.serialize_node(child_node)

    def _serialize_element(self, node: TagNodeType):
        self.writer(f"<{node.name}")
        self._serialize_attributes(node)
        if node.child_nodes:
            self.writer(">")
            self._serialize_child_nodes(node.child_nodes)
            self.writer(f"</{node.name}>")
        else:
            self.writer("/>")

    def serialize_node(self, node: XMLNodeType):
        content = node.content or ""
        match node.node_type:
            case NodeType.ATTRIBUTE:
                self.writer(f'{node.name}="{self._attribute_value(content)}"')
            case NodeType.CDATA_SECTION:
                self.writer(
                    f"<![CDATA[{content.replace(']]>', ']]]]><![CDATA[>')}]]>"
                )
            case NodeType.COMMENT:
                self.writer(f"<!--{content}-->")
            case NodeType.DOCUMENT:
                self._serialize_document(node.child_nodes)
            case NodeType.DOCUMENT_FRAGMENT:
                self._serialize_child_nodes(node.child_nodes)
            case NodeType.DOCUMENT_TYPE:
                assert isinstance(node, DocumentTypeNodeType)
                self._serialize_doctype(node)
            case NodeType.ELEMENT:
                assert isinstance(node, TagNodeType)
                self._serialize_element(node)
            case NodeType.PROCESSING_INSTRUCTION:
                if content:
                    self.writer(f"<?{node.name} {content}?>")
                else:
                    self.writer(f"<?{node.name}?>")
            case NodeType.TEXT:
                self.writer(content.translate(CCE_TABLE_FOR_TEXT))

    def write_xml_declaration(self, node: XMLNodeType, encoding: Optional[str] = None):
        if node.node_type is NodeType.DOCUMENT and node.child_nodes:
            first_child = node.child_nodes[0]
            if (
                first_child.node_type is NodeType.PROCESSING_INSTRUCTION
                and first_child.name == XML_DECLARATION_TARGET
            ):
                return

        if encoding is None:
            self.writer('<?xml version="1.0"?>\n')
        else:
            self.writer(f'<?xml version="1.0" encoding="{encoding.upper()}"?>\n')


class PrettySerializer(Serializer):
    __slots__ = ("_level", "indentation", "_verbatim_serializer")

    def __init__(self, writer: _SerializationWriter, format_options: FormatOptions):
        super().__init__(writer)
        self.indentation: Final = format_options.indentation
        self._level = 0
        self._verbatim_serializer: Final = Serializer(writer)

    def _serialize_element(self, node: TagNodeType):
        if _has_character_data(node):
            self._verbatim_serializer.serialize_node(node)
            return

        child_nodes = [
            n
            for n in node.child_nodes
            if not (n.node_type is NodeType.TEXT and (n.content or "").isspace())
        ]

        self.writer(f"<{node.name}")
        self._serialize_attributes(node)
        if not child_nodes:
            self.writer("/>")
            return

        self.writer(">")
        self._level += 1
        for child_node in child_nodes:
            self.writer(f"\n{self._level * self.indentation}")
            self.serialize_node(child_node)
        self._level -= 1
        self.writer(f"\n{self._level * self.indentation}</{node.name}>")


# writer


class _SerializationWriter(ABC):
    __slots__ = ("buffer",)

    def __init__(self, buffer: TextIO):
        self.buffer: Final = buffer

    def __call__(self, data: str):
        self.buffer.write(data)

    @property
    def result(self):
        if isinstance(self.buffer, StringIO):
            return self.buffer.getvalue()
        raise TypeError(  # pragma: no cover
            "Underlying buffer must be an instance of `io.StingIO`"
        )


class _StringWriter(_SerializationWriter):
    def __init__(self, newline: Optional[str] = None):
        super().__init__(StringIO(newline=newline))


class _TextBufferWriter(_SerializationWriter):
    def __init__(
        self,
        buffer: TextIOWrapper,
        encoding: str = "utf-8",
        newline: Optional[str] = None,
    ):
        buffer.reconfigure(encoding=encoding, newline=newline)
        super().__init__(buffer)


__all__ = (
    DefaultStringOptions.__name__,
    FormatOptions.__name__,
    render.__name__,
)
