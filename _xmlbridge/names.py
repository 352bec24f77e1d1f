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

import re
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, Optional

from _xmlbridge.exceptions import FormatError
from _xmlbridge.grammar import (
    is_name_code_point,
    is_name_start_code_point,
    iterate_code_points,
)
from _xmlbridge.uri import parse_uri
from _xmlbridge.utils import iterate_elements

if TYPE_CHECKING:
    from _xmlbridge.typing import NamespaceDeclarations, XMLNodeType


XML_NAMESPACE: Final = "http://www.w3.org/XML/1998/namespace"
XMLNS_NAMESPACE: Final = "http://www.w3.org/2000/xmlns/"

GLOBAL_NAMESPACES: Final = MappingProxyType(
    {"xml": XML_NAMESPACE, "xmlns": XMLNS_NAMESPACE}
)
GLOBAL_PREFIXES: Final = tuple(GLOBAL_NAMESPACES)

_starts_with_xml_prefix: Final = re.compile("xml:", re.IGNORECASE).match


# name productions


def is_valid_xml_name(tested: Any) -> bool:
    """
    Tests whether the given object is a string that matches the ``Name`` production.

    >>> is_valid_xml_name("xs:element")
    True
    >>> is_valid_xml_name("1st")
    False
    """
    if not isinstance(tested, str) or not tested:
        return False
    code_points = iterate_code_points(tested)
    if not is_name_start_code_point(next(code_points)):
        return False
    # lone surrogates aren't name characters
    return all(is_name_code_point(c) for c in code_points)


def is_valid_name_token(tested: Any) -> bool:
    """
    Tests whether the given object is a string that matches the ``Nmtoken`` production.

    >>> is_valid_name_token("1st")
    True
    """
    if not isinstance(tested, str) or not tested:
        return False
    return all(is_name_code_point(c) for c in iterate_code_points(tested))


def is_valid_ncname(tested: Any) -> bool:
    """Tests whether the given object is a name without a colon."""
    return is_valid_xml_name(tested) and ":" not in tested


def is_valid_qname(tested: Any) -> bool:
    """
    Tests whether the given object is a qualified name, a local name optionally
    prefixed with a namespace prefix and a colon. Both parts must be names without
    colons.

    >>> is_valid_qname("tei:text")
    True
    >>> is_valid_qname("a:b:c")
    False
    >>> is_valid_qname(":a")
    False
    """
    if not is_valid_xml_name(tested):
        return False
    prefix, colon, local_name = tested.partition(":")
    if not colon:
        return True
    return is_valid_ncname(prefix) and is_valid_ncname(local_name)


def is_valid_custom_id(tested: Any) -> bool:
    """
    Tests whether the given object can be used as user defined identifier, that is a
    name that isn't prefixed with the reserved ``xml:`` prefix in any letter case.
    """
    return is_valid_xml_name(tested) and not _starts_with_xml_prefix(tested)


def is_valid_xml_identifier(
    identifier: Any, context: Optional[XMLNodeType] = None
) -> bool:
    """
    Tests whether the given object is a name that isn't already used as identifier of
    an element in the document that the ``context`` node belongs to.
    """
    if not is_valid_xml_name(identifier):
        return False
    if context is None:
        return True
    document = context.owner_document
    return document is None or document.get_element_by_id(identifier) is None


def is_valid_xml_key(attribute: str, value: Any, context: XMLNodeType) -> bool:
    """
    Tests whether the given value is a name and no element in the tree of the
    ``context`` node bears it as value of the named attribute.
    """
    if not is_valid_xml_name(value):
        return False
    root = context.owner_document or context
    return not any(
        element.get_attribute(attribute) == value
        for element in iterate_elements(root)
    )


# qualified names


class QName:
    """
    A qualified name, consisting of a local name, an optional namespace prefix and an
    optional namespace URI. Instances are immutable. Use :func:`create_qname` and
    :func:`parse_qname` to obtain validated instances.

    Two qualified names are equal when both are bound to namespace URIs and these and
    their local names are equal. Otherwise their prefixes and local names are
    compared. Use :meth:`is_equal` to compare with a string.
    """

    __slots__ = ("__local_name", "__prefix", "__uri")

    def __init__(
        self, local_name: str, prefix: Optional[str] = None, uri: Optional[str] = None
    ):
        self.__local_name: Final = local_name
        self.__prefix: Final = prefix or None
        self.__uri: Final = uri or None

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, QName):
            return NotImplemented
        return self.is_equal(other)

    def __hash__(self) -> int:
        return hash(self.__local_name)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__qualname__}(local_name={self.__local_name!r}, "
            f"prefix={self.__prefix!r}, uri={self.__uri!r})>"
        )

    def __str__(self) -> str:
        if self.__prefix is None:
            return self.__local_name
        return f"{self.__prefix}:{self.__local_name}"

    @property
    def local_name(self) -> str:
        return self.__local_name

    @property
    def prefix(self) -> Optional[str]:
        return self.__prefix

    @property
    def uri(self) -> Optional[str]:
        return self.__uri

    def is_equal(self, other: Any) -> bool:
        """
        Compares with another qualified name or with a string that is compared to this
        one's string representation.
        """
        if isinstance(other, str):
            return str(self) == other
        if not isinstance(other, QName):
            return False
        if self.__uri is not None and other.uri is not None:
            return self.__uri == other.uri and self.__local_name == other.local_name
        return self.__prefix == other.prefix and self.__local_name == other.local_name


def create_qname(
    local_name: str, *, prefix: Optional[str] = None, uri: Optional[str] = None
) -> QName:
    """
    Creates a qualified name from its parts.

    :param local_name: The local name, a name without colon.
    :param prefix: An optional namespace prefix, a name without colon.
    :param uri: An optional namespace URI that must be an absolute URI.
    :raises FormatError: If any of the parts is malformed.
    """
    if not is_valid_ncname(local_name):
        raise FormatError("Invalid local name.", local_name)
    if prefix and not is_valid_ncname(prefix):
        raise FormatError("Invalid prefix.", prefix)
    if uri:
        _validate_namespace_uri(uri)
    return QName(local_name, prefix, uri)


def parse_qname(
    source: str,
    *,
    uri: Optional[str] = None,
    namespaces: Optional[Mapping[str | None, str]] = None,
) -> QName:
    """
    Parses a string in the form ``prefix:local`` or ``local``.

    :param uri: A namespace URI to bind the name to.
    :param namespaces: A mapping of prefixes to namespaces that is used to resolve the
                       prefix if no ``uri`` is given.
    :raises FormatError: If the source isn't a qualified name.

    >>> str(parse_qname("xs:element"))
    'xs:element'
    """
    if not is_valid_qname(source):
        raise FormatError("Invalid qualified name.", source)

    prefix: Optional[str]
    if ":" in source:
        prefix, local_name = source.split(":")
    else:
        prefix, local_name = None, source

    if uri is None and namespaces is not None:
        uri = namespaces.get(prefix if prefix is not None else "")
        if uri is None and prefix is None:
            uri = namespaces.get(None)
    if uri:
        _validate_namespace_uri(uri)

    return QName(local_name, prefix, uri)


def _validate_namespace_uri(uri: str):
    try:
        parsed = parse_uri(uri)
    except ValueError as e:
        raise FormatError("Invalid uri.", uri) from e
    if str(parsed) != uri:
        raise FormatError("Invalid uri.", uri)


# Clark notation and namespace declarations


def deconstruct_clark_notation(name: str) -> tuple[Optional[str], str]:
    """
    Deconstructs a name in Clark notation, that may or may not include a namespace.

    :param name: An attribute's or element's name.
    :return: A tuple with the extracted namespace and local name.

    >>> deconstruct_clark_notation('{http://www.tei-c.org/ns/1.0}text')
    ('http://www.tei-c.org/ns/1.0', 'text')

    >>> deconstruct_clark_notation('div')
    (None, 'div')
    """
    if name.startswith("{"):
        a, b = name.split("}", maxsplit=1)
        return a[1:], b
    else:
        return None, name


class Namespaces(Mapping):
    """
    A :term:`mapping` of prefixes to namespaces that ensures globally defined prefixes
    are available and unchanged. Prefixes must be names without colons and namespaces
    must be absolute URIs. The default namespace can be declared with an empty string
    or :obj:`None` as prefix.
    """

    __slots__ = (
        "__data",
        "__inverse_data",
    )

    def __init__(self, namespaces: NamespaceDeclarations):
        self.__data: dict[str, str]
        self.__inverse_data: dict[str, str]

        if isinstance(namespaces, Namespaces):
            self.__data = namespaces.__data
            self.__inverse_data = namespaces.__inverse_data
        elif isinstance(namespaces, Mapping):
            self.__data = self.__normalize_declarations(namespaces)
            self.__inverse_data = {v: k for k, v in self.__data.items()}
        else:
            raise TypeError

    def __contains__(self, item: object):
        return ("" if item is None else item) in self.__data

    def __getitem__(self, item: str | None) -> str:
        return self.__data["" if item is None else item]

    def __iter__(self) -> Iterator[str]:
        yield from self.__data

    def __len__(self) -> int:
        return len(self.__data)

    def __repr__(self) -> str:
        return f"<{self.__class__.__qualname__}({self.__data}) [{hex(id(self))}]>"

    def __str__(self) -> str:
        return str(self.__data)

    def lookup_prefix(self, namespace: str | None) -> Optional[str]:
        """
        Resolves a namespace to a prefix.
        """
        return self.__inverse_data.get(namespace or "")

    @classmethod
    def __normalize_declarations(
        cls, declarations: NamespaceDeclarations
    ) -> dict[str, str]:
        if None in declarations and "" in declarations:
            raise ValueError(
                "A default namespace has been defined redundantly with '' and `None.`"
            )

        declared_namespaces: set[str] = set()
        result: dict[str, str] = dict(GLOBAL_NAMESPACES)

        for prefix, namespace in declarations.items():
            prefix = cls.__validate_declaration(prefix, namespace, declared_namespaces)
            declared_namespaces.add(namespace)
            result[prefix] = namespace

        return result

    @staticmethod
    def __validate_declaration(
        prefix: str | None, namespace: str, declared_namespaces: set[str]
    ) -> str:
        if prefix in GLOBAL_PREFIXES:
            # https://www.w3.org/TR/xml-names/#xmlReserved
            raise ValueError(f"One must not override the global prefix `{prefix}`.")

        if prefix is None:
            prefix = ""
        elif prefix and not is_valid_ncname(prefix):
            raise FormatError(f"Invalid namespace prefix `{prefix}`.", prefix)

        if namespace in {XML_NAMESPACE, XMLNS_NAMESPACE}:
            raise ValueError(f"The namespace `{namespace}` must not be overridden.")

        _validate_namespace_uri(namespace)

        if namespace in declared_namespaces:
            raise ValueError(f"Namespace `{namespace}` is declared redundantly.")

        return prefix


__all__ = (
    "GLOBAL_NAMESPACES",
    "GLOBAL_PREFIXES",
    "XML_NAMESPACE",
    "XMLNS_NAMESPACE",
    create_qname.__name__,
    deconstruct_clark_notation.__name__,
    is_valid_custom_id.__name__,
    is_valid_name_token.__name__,
    is_valid_ncname.__name__,
    is_valid_qname.__name__,
    is_valid_xml_identifier.__name__,
    is_valid_xml_key.__name__,
    is_valid_xml_name.__name__,
    Namespaces.__name__,
    parse_qname.__name__,
    QName.__name__,
)
