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
The default implementation of the target tree. A :class:`Document` is the factory of
all nodes that belong to its tree.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Optional

from _xmlbridge.exceptions import FormatError, InvalidOperation
from _xmlbridge.grammar import _is_xml_char
from _xmlbridge.names import is_valid_xml_name
from _xmlbridge.serializer import DefaultStringOptions, render
from _xmlbridge.typing import (
    AttributeNodeType,
    CDataSectionNodeType,
    CommentNodeType,
    DocumentFragmentNodeType,
    DocumentNodeType,
    DocumentTypeNodeType,
    NodeType,
    ParentNodeType,
    ProcessingInstructionNodeType,
    TagNodeType,
    TextNodeType,
    XMLNodeType,
)
from _xmlbridge.utils import iterate_elements

if TYPE_CHECKING:
    from collections.abc import Sequence


ID_ATTRIBUTE_NAMES: Final = ("id", "xml:id")


def _validate_name(name: str, kind: str):
    if not is_valid_xml_name(name):
        raise FormatError(f"Invalid {kind} name: {name!r}", name)


def _validate_character_data(data: str):
    if not isinstance(data, str):
        raise TypeError("Character data must be a string.")
    if data and not _is_xml_char(data):
        raise FormatError("Invalid XML character data.", data)


# nodes


class _NodeCommons(XMLNodeType):

    __slots__ = ("_parent", "__owner_document")

    def __init__(self, owner_document: Optional[Document]):
        self._parent: Optional[_ParentNode] = None
        self.__owner_document: Final = owner_document

    def __str__(self) -> str:
        return render(
            self,
            format_options=DefaultStringOptions.format_options,
            newline=DefaultStringOptions.newline,
        )

    @property
    def owner_document(self) -> Optional[Document]:
        return self.__owner_document

    @property
    def parent(self) -> Optional[ParentNodeType]:
        return self._parent


class _LeafNode(_NodeCommons):

    __slots__ = ("_content",)

    def __init__(self, owner_document: Document, content: str):
        super().__init__(owner_document)
        _validate_character_data(content)
        self._content = content

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, XMLNodeType)
            and self.node_type is other.node_type
            and self.name == other.name
            and self._content == other.content
        )

    __hash__ = None  # type: ignore

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self._content!r}) [{hex(id(self))}]>"

    @property
    def content(self) -> str:
        return self._content


class _ParentNode(_NodeCommons, ParentNodeType):

    __slots__ = ("_child_nodes",)

    def __init__(self, owner_document: Optional[Document]):
        super().__init__(owner_document)
        self._child_nodes: list[XMLNodeType] = []

    @property
    def child_nodes(self) -> Sequence[XMLNodeType]:
        return tuple(self._child_nodes)

    def append_child(self, node: XMLNodeType) -> XMLNodeType:
        if isinstance(node, DocumentFragment):
            for child in node.take_children():
                self.append_child(child)
            return node

        self._validate_new_child(node)
        assert isinstance(node, _NodeCommons)
        node._parent = self
        self._child_nodes.append(node)
        return node

    def _validate_new_child(self, node: XMLNodeType):
        if not isinstance(node, _NodeCommons):
            raise TypeError("Only nodes of the default implementation can be added.")
        if node.parent is not None:
            raise InvalidOperation("Only a detached node can be added to a tree.")
        if isinstance(node, (Document, Attribute)):
            raise InvalidOperation(
                f"A node of type {node.node_type.name} can't be a child node."
            )
        if node.owner_document is not self._document:
            raise InvalidOperation("The node was created by another document.")
        if isinstance(node, DocumentType) and not isinstance(self, Document):
            raise InvalidOperation(
                "A document type declaration can only be a child of a document."
            )
        ancestor: Optional[ParentNodeType] = self
        while ancestor is not None:
            if ancestor is node:
                raise InvalidOperation("A node can't be added to its own descendants.")
            ancestor = ancestor.parent

    @property
    def _document(self) -> Optional[Document]:
        return self.owner_document


class Attribute(_NodeCommons, AttributeNodeType):
    """
    An element's attribute. The value is held as is and only escaped when it is
    serialized.
    """

    __slots__ = ("__name", "__value", "_owner_element")

    def __init__(self, owner_document: Document, name: str, value: str):
        super().__init__(owner_document)
        _validate_name(name, "attribute")
        _validate_character_data(value)
        self.__name: Final = name
        self.__value = value
        self._owner_element: Optional[Element] = None

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, AttributeNodeType)
            and self.__name == other.name
            and self.__value == other.value
        )

    __hash__ = None  # type: ignore

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.__name}="{self.__value}")>'

    @property
    def content(self) -> str:
        return self.__value

    @property
    def name(self) -> str:
        return self.__name

    @property
    def node_type(self) -> NodeType:
        return NodeType.ATTRIBUTE

    @property
    def owner_element(self) -> Optional[Element]:
        return self._owner_element

    @property
    def value(self) -> str:
        return self.__value

    @value.setter
    def value(self, value: str):
        _validate_character_data(value)
        self.__value = value


class CDataSection(_LeafNode, CDataSectionNodeType):
    """
    A CDATA section. Its content may contain the sequence ``]]>``, the section is then
    split into two when serialized.
    """

    __slots__ = ()

    @property
    def node_type(self) -> NodeType:
        return NodeType.CDATA_SECTION


class CommentNode(_LeafNode, CommentNodeType):
    __slots__ = ()

    def __init__(self, owner_document: Document, content: str):
        super().__init__(owner_document, content)
        if "--" in content or content.endswith("-"):
            raise FormatError("Invalid comment content.", content)

    @property
    def node_type(self) -> NodeType:
        return NodeType.COMMENT


class DocumentFragment(_ParentNode, DocumentFragmentNodeType):
    """
    A lightweight container whose children are moved to the node that the fragment is
    appended to.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}({len(self._child_nodes)}) "
            f"[{hex(id(self))}]>"
        )

    @property
    def node_type(self) -> NodeType:
        return NodeType.DOCUMENT_FRAGMENT

    def take_children(self) -> list[XMLNodeType]:
        """Removes all children from the fragment and returns them."""
        result, self._child_nodes = self._child_nodes, []
        for node in result:
            assert isinstance(node, _NodeCommons)
            node._parent = None
        return result


class DocumentType(_NodeCommons, DocumentTypeNodeType):
    """A document type declaration."""

    __slots__ = ("__internal_subset", "__name", "__public_id", "__system_id")

    def __init__(
        self,
        owner_document: Document,
        name: str,
        public_id: Optional[str] = None,
        system_id: Optional[str] = None,
        internal_subset: Iterable[str] = (),
    ):
        super().__init__(owner_document)
        _validate_name(name, "document type")
        if public_id is not None:
            _validate_character_data(public_id)
        if system_id is not None:
            _validate_character_data(system_id)
        self.__name: Final = name
        self.__public_id: Final = public_id
        self.__system_id: Final = system_id
        self.__internal_subset: Final = tuple(internal_subset)

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, DocumentTypeNodeType)
            and self.__name == other.name
            and self.__public_id == other.public_id
            and self.__system_id == other.system_id
        )

    __hash__ = None  # type: ignore

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}({self.__name!r}, "
            f"public_id={self.__public_id!r}, system_id={self.__system_id!r})>"
        )

    @property
    def internal_subset(self) -> tuple[str, ...]:
        return self.__internal_subset

    @property
    def name(self) -> str:
        return self.__name

    @property
    def node_type(self) -> NodeType:
        return NodeType.DOCUMENT_TYPE

    @property
    def public_id(self) -> Optional[str]:
        return self.__public_id

    @property
    def system_id(self) -> Optional[str]:
        return self.__system_id


class Element(_ParentNode, TagNodeType):
    """An element with its attributes and child nodes."""

    __slots__ = ("__attributes", "__name")

    def __init__(self, owner_document: Document, name: str):
        super().__init__(owner_document)
        _validate_name(name, "element")
        self.__name: Final = name
        self.__attributes: dict[str, Attribute] = {}

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}({self.__name!r}, "
            f"{self.attribute_values}) [{hex(id(self))}]>"
        )

    @property
    def attribute_values(self) -> dict[str, str]:
        """A copy of the attributes as mapping of names to values."""
        return {name: a.value for name, a in self.__attributes.items()}

    @property
    def attributes(self) -> Mapping[str, Attribute]:
        return MappingProxyType(self.__attributes)

    @property
    def name(self) -> str:
        return self.__name

    @property
    def node_type(self) -> NodeType:
        return NodeType.ELEMENT

    def get_attribute(self, name: str) -> Optional[str]:
        if (attribute := self.__attributes.get(name)) is None:
            return None
        return attribute.value

    def remove_attribute(self, name: str) -> Optional[Attribute]:
        if (attribute := self.__attributes.pop(name, None)) is not None:
            attribute._owner_element = None
        return attribute

    def set_attribute(self, name: str, value: str) -> Attribute:
        assert self.owner_document is not None
        return self.set_attribute_node(
            self.owner_document.create_attribute(name, value)
        )

    def set_attribute_node(self, attribute: AttributeNodeType) -> Attribute:
        if not isinstance(attribute, Attribute):
            raise TypeError("Only attributes of the default implementation can be set.")
        if attribute.owner_element is not None:
            raise InvalidOperation("The attribute belongs to another element.")
        if attribute.owner_document is not self.owner_document:
            raise InvalidOperation("The attribute was created by another document.")
        self.remove_attribute(attribute.name)
        attribute._owner_element = self
        self.__attributes[attribute.name] = attribute
        return attribute


class ProcessingInstructionNode(_LeafNode, ProcessingInstructionNodeType):
    __slots__ = ("__target",)

    def __init__(self, owner_document: Document, target: str, content: str):
        super().__init__(owner_document, content)
        _validate_name(target, "processing instruction target")
        if "?>" in content:
            raise FormatError("Content text must not contain '?>'.", content)
        self.__target: Final = target

    def __repr__(self) -> str:
        return (
            f'<{self.__class__.__name__}("{self.__target}", "{self._content}") '
            f"[{hex(id(self))}]>"
        )

    @property
    def name(self) -> str:
        return self.__target

    @property
    def node_type(self) -> NodeType:
        return NodeType.PROCESSING_INSTRUCTION


class TextNode(_LeafNode, TextNodeType):
    __slots__ = ()

    @property
    def node_type(self) -> NodeType:
        return NodeType.TEXT


class Document(_ParentNode, DocumentNodeType):
    """
    A document is the root of a tree and creates its nodes. It can have one document
    type declaration, which is always its first child, and one root element. Besides
    these only comments and processing instructions are allowed as children.

    >>> document = Document()
    >>> root = document.append_child(document.create_element("root"))
    >>> _ = root.set_attribute("id", "1")
    >>> _ = root.append_child(document.create_text_node("hi"))
    >>> str(document)
    '<root id="1">hi</root>'
    """

    __slots__ = ()

    def __init__(self):
        super().__init__(None)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}({self.document_element!r}) "
            f"[{hex(id(self))}]>"
        )

    # tree properties

    @property
    def doctype(self) -> Optional[DocumentType]:
        for node in self._child_nodes:
            if isinstance(node, DocumentType):
                return node
        return None

    @doctype.setter
    def doctype(self, node: Optional[DocumentTypeNodeType]):
        current = self.doctype
        if node is current:
            return
        if node is not None:
            self._validate_new_child(node)
        if current is not None:
            self._child_nodes.remove(current)
            current._parent = None
        if node is None:
            return
        assert isinstance(node, DocumentType)
        node._parent = self
        self._child_nodes.insert(0, node)

    @property
    def document_element(self) -> Optional[Element]:
        for node in self._child_nodes:
            if isinstance(node, Element):
                return node
        return None

    @property
    def node_type(self) -> NodeType:
        return NodeType.DOCUMENT

    def append_child(self, node: XMLNodeType) -> XMLNodeType:
        if isinstance(node, DocumentType):
            self.doctype = node
            return node
        if isinstance(node, (TextNode, CDataSection)):
            raise InvalidOperation("Character data can't be a child of a document.")
        if isinstance(node, Element) and self.document_element is not None:
            raise InvalidOperation("A document can only have one root element.")
        return super().append_child(node)

    @property
    def _document(self) -> Document:
        return self

    # factories

    def create_attribute(self, name: str, value: str = "") -> Attribute:
        return Attribute(self, name, value)

    def create_cdata_section(self, data: str) -> CDataSection:
        return CDataSection(self, data)

    def create_comment(self, data: str) -> CommentNode:
        return CommentNode(self, data)

    def create_document_fragment(self) -> DocumentFragment:
        return DocumentFragment(self)

    def create_document_type(
        self,
        name: str,
        public_id: Optional[str] = None,
        system_id: Optional[str] = None,
        internal_subset: Iterable[str] = (),
    ) -> DocumentType:
        return DocumentType(self, name, public_id, system_id, internal_subset)

    def create_element(self, name: str) -> Element:
        return Element(self, name)

    def create_processing_instruction(
        self, target: str, data: str
    ) -> ProcessingInstructionNode:
        return ProcessingInstructionNode(self, target, data)

    def create_text_node(self, data: str) -> TextNode:
        return TextNode(self, data)

    # queries

    def get_element_by_id(self, value: str) -> Optional[Element]:
        for element in iterate_elements(self):
            if any(element.get_attribute(n) == value for n in ID_ATTRIBUTE_NAMES):
                assert isinstance(element, Element)
                return element
        return None


__all__ = (
    Attribute.__name__,
    CDataSection.__name__,
    CommentNode.__name__,
    Document.__name__,
    DocumentFragment.__name__,
    DocumentType.__name__,
    Element.__name__,
    ProcessingInstructionNode.__name__,
    TextNode.__name__,
)
