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

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from enum import IntEnum
from typing import (
    TYPE_CHECKING,
    Any,
    AnyStr,
    BinaryIO,
    Optional,
    Protocol,
    TypeAlias,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from types import SimpleNamespace


class NodeType(IntEnum):
    """The kinds of nodes, numbered as in the DOM."""

    ELEMENT = 1
    ATTRIBUTE = 2
    TEXT = 3
    CDATA_SECTION = 4
    PROCESSING_INSTRUCTION = 7
    COMMENT = 8
    DOCUMENT = 9
    DOCUMENT_TYPE = 10
    DOCUMENT_FRAGMENT = 11


# node types


class XMLNodeType(ABC):
    """
    Defines the interfaces that all node representations of a target tree share. Trees
    that are built from parsed documents are only accessed through these interfaces.
    """

    @abstractmethod
    def __str__(self) -> str: ...

    @property
    def child_nodes(self) -> Sequence[XMLNodeType]:
        """The node's children, an empty sequence for leaf nodes."""
        return ()

    @property
    def content(self) -> Optional[str]:
        """The character data of leaf nodes."""
        return None

    @property
    def name(self) -> Optional[str]:
        """The name of elements, attributes and document types and a PI's target."""
        return None

    @property
    @abstractmethod
    def node_type(self) -> NodeType:
        """The discriminator of the node's kind."""

    @property
    @abstractmethod
    def owner_document(self) -> Optional[DocumentNodeType]:
        """The document that created the node."""

    @property
    @abstractmethod
    def parent(self) -> Optional[ParentNodeType]:
        """The node that contains this one, :obj:`None` for detached nodes."""


class ParentNodeType(XMLNodeType):
    @abstractmethod
    def append_child(self, node: XMLNodeType) -> XMLNodeType:
        """
        Appends a node as last child. A document fragment's children are appended
        instead of the fragment itself.

        :return: The appended node.
        """


class AttributeNodeType(XMLNodeType):
    @property
    @abstractmethod
    def value(self) -> str:
        """The attribute's value, not escaped."""


class CDataSectionNodeType(XMLNodeType):
    pass


class CommentNodeType(XMLNodeType):
    pass


class DocumentFragmentNodeType(ParentNodeType):
    pass


class DocumentTypeNodeType(XMLNodeType):
    @property
    @abstractmethod
    def public_id(self) -> Optional[str]: ...

    @property
    @abstractmethod
    def system_id(self) -> Optional[str]: ...

    @property
    @abstractmethod
    def internal_subset(self) -> Sequence[str]: ...


class ProcessingInstructionNodeType(XMLNodeType):
    @property
    def target(self) -> str:
        name = self.name
        assert name is not None
        return name


class TagNodeType(ParentNodeType):
    @property
    @abstractmethod
    def attributes(self) -> Mapping[str, AttributeNodeType]:
        """A mapping of the element's attribute names to attribute nodes."""

    @abstractmethod
    def get_attribute(self, name: str) -> Optional[str]:
        """Returns an attribute's value or :obj:`None`."""

    @abstractmethod
    def set_attribute(self, name: str, value: str) -> AttributeNodeType:
        """Sets an attribute's value, replacing an existing one with the same name."""

    @abstractmethod
    def set_attribute_node(self, attribute: AttributeNodeType) -> AttributeNodeType:
        """Attaches an attribute node to the element."""


class TextNodeType(XMLNodeType):
    pass


class DocumentNodeType(ParentNodeType):
    """
    Defines a document that serves as factory for all nodes of its tree and holds the
    document type declaration and the root element.
    """

    @property
    @abstractmethod
    def doctype(self) -> Optional[DocumentTypeNodeType]: ...

    @doctype.setter
    @abstractmethod
    def doctype(self, node: Optional[DocumentTypeNodeType]): ...

    @property
    @abstractmethod
    def document_element(self) -> Optional[TagNodeType]:
        """The root element."""

    @abstractmethod
    def create_attribute(self, name: str, value: str = "") -> AttributeNodeType: ...

    @abstractmethod
    def create_cdata_section(self, data: str) -> CDataSectionNodeType: ...

    @abstractmethod
    def create_comment(self, data: str) -> CommentNodeType: ...

    @abstractmethod
    def create_document_fragment(self) -> DocumentFragmentNodeType: ...

    @abstractmethod
    def create_document_type(
        self,
        name: str,
        public_id: Optional[str] = None,
        system_id: Optional[str] = None,
        internal_subset: Iterable[str] = (),
    ) -> DocumentTypeNodeType: ...

    @abstractmethod
    def create_element(self, name: str) -> TagNodeType: ...

    @abstractmethod
    def create_processing_instruction(
        self, target: str, data: str
    ) -> ProcessingInstructionNodeType: ...

    @abstractmethod
    def create_text_node(self, data: str) -> TextNodeType: ...

    @abstractmethod
    def get_element_by_id(self, value: str) -> Optional[TagNodeType]:
        """Finds the element whose ``id`` or ``xml:id`` attribute has the value."""


class BinaryReader(Protocol):
    def read(self, n: int = -1) -> bytes: ...

    def seek(self, offset: int, whence: int = 0) -> int: ...


# the parsed document form

ParsedValue: TypeAlias = (
    "str | None | Mapping[str, ParsedValue] | Sequence[Mapping[str, ParsedValue]]"
)
ParsedDocument: TypeAlias = (
    "Sequence[Mapping[str, ParsedValue]] | Mapping[str, ParsedValue]"
)
PropertyConverter: TypeAlias = (
    "Callable[[DocumentNodeType, str, str, ParsedValue], XMLNodeType]"
)

SegmentValidator: TypeAlias = Callable[[str], bool]
NamespaceDeclarations: TypeAlias = "Mapping[str | None, str]"

InputStream: TypeAlias = AnyStr | BinaryIO
LoaderResult: TypeAlias = "list[dict[str, Any]] | str"
Loader: TypeAlias = "Callable[[Any, SimpleNamespace], LoaderResult]"
LoaderConstraint: TypeAlias = "Loader | Iterable[Loader] | None"


__all__ = (
    "AttributeNodeType",
    "BinaryReader",
    "CDataSectionNodeType",
    "CommentNodeType",
    "DocumentFragmentNodeType",
    "DocumentNodeType",
    "DocumentTypeNodeType",
    "InputStream",
    "Loader",
    "LoaderConstraint",
    "LoaderResult",
    "NamespaceDeclarations",
    "NodeType",
    "ParentNodeType",
    "ParsedDocument",
    "ParsedValue",
    "ProcessingInstructionNodeType",
    "PropertyConverter",
    "SegmentValidator",
    "TagNodeType",
    "TextNodeType",
    "XMLNodeType",
)
