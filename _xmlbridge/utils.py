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

import enum
from collections import deque
from collections.abc import Iterator
from itertools import zip_longest
from typing import TYPE_CHECKING, Final

from _xmlbridge.exceptions import InvalidCodePath
from _xmlbridge.typing import (
    DocumentTypeNodeType,
    NodeType,
    TagNodeType,
    XMLNodeType,
)

if TYPE_CHECKING:
    from collections.abc import Callable


# tree traversers


def traverse_bf_ltr_ttb(root: XMLNodeType) -> Iterator[XMLNodeType]:
    queue = deque((root,))
    while queue:
        node = queue.popleft()
        queue.extend(node.child_nodes)
        yield node


def traverse_df_ltr_ttb(root: XMLNodeType) -> Iterator[XMLNodeType]:
    stack = [root]
    while stack:
        node = stack.pop()
        stack.extend(reversed(node.child_nodes))
        yield node


TRAVERSERS: Final = {
    True: traverse_df_ltr_ttb,
    False: traverse_bf_ltr_ttb,
}


def get_traverser(
    *, depth_first: bool = True
) -> Callable[[XMLNodeType], Iterator[XMLNodeType]]:
    """
    Returns a function that yields all nodes of a (sub)tree, beginning with the given
    root node and proceeding from left to right.

    :param depth_first: The children of a node are yielded before its following
                        siblings if :obj:`True`.
    """
    return TRAVERSERS[depth_first]


def iterate_elements(root: XMLNodeType) -> Iterator[TagNodeType]:
    """Yields all elements of a (sub)tree in document order."""
    for node in traverse_df_ltr_ttb(root):
        if isinstance(node, TagNodeType):
            yield node


# tree comparison


class TreeDifferenceKind(enum.Enum):
    None_ = enum.auto()
    DocumentTypeIdentifiers = enum.auto()
    NodeContent = enum.auto()
    NodeName = enum.auto()
    NodeType = enum.auto()
    TagAttributes = enum.auto()
    TagChildrenSize = enum.auto()


class TreesComparisonResult:
    """
    Instances of this class describe one or no difference between two trees.
    Casting an instance to :class:`bool` will yield :obj:`True` when it describes no
    difference, thus the compared trees were equal.
    Casted to strings they're intended to support debugging.
    """

    def __init__(
        self,
        difference_kind: TreeDifferenceKind,
        lhn: XMLNodeType | None,
        rhn: XMLNodeType | None,
    ):
        self.difference_kind = difference_kind
        self.lhn: XMLNodeType | None = lhn
        self.rhn: XMLNodeType | None = rhn

    def __bool__(self):
        return self.difference_kind is TreeDifferenceKind.None_

    def __str__(self):
        kind = self.difference_kind
        if kind is TreeDifferenceKind.None_:
            return "Trees are equal."

        assert self.lhn is not None and self.rhn is not None
        if kind is TreeDifferenceKind.NodeType:
            return (
                f"Nodes are of different type: {self.lhn.node_type.name} != "
                f"{self.rhn.node_type.name}"
            )
        elif kind is TreeDifferenceKind.NodeName:
            return f"Nodes' names differ: {self.lhn.name} != {self.rhn.name}"
        elif kind is TreeDifferenceKind.NodeContent:
            return f"Nodes' content differ:\n{self.lhn!r}\n{self.rhn!r}"
        elif kind is TreeDifferenceKind.DocumentTypeIdentifiers:
            return f"Document type identifiers differ:\n{self.lhn!r}\n{self.rhn!r}"
        elif kind is TreeDifferenceKind.TagAttributes:
            assert isinstance(self.lhn, TagNodeType)
            assert isinstance(self.rhn, TagNodeType)
            return (
                f"Attributes of elements named {self.lhn.name} differ:\n"
                f"{_attribute_values(self.lhn)}\n{_attribute_values(self.rhn)}"
            )
        elif kind is TreeDifferenceKind.TagChildrenSize:
            result = f"Child nodes of nodes named {self.lhn.name} differ:"
            for a, b in zip_longest(
                self.lhn.child_nodes, self.rhn.child_nodes, fillvalue=None
            ):
                result += f"\n\n{a!r}\n{b!r}"
            return result

        raise InvalidCodePath()


def _attribute_values(node: TagNodeType) -> dict[str, str]:
    return {name: attribute.value for name, attribute in node.attributes.items()}


def compare_trees(lhr: XMLNodeType, rhr: XMLNodeType) -> TreesComparisonResult:
    """
    Compares two node trees for equality. Upon the first detection of a difference of
    nodes that are located at the same position within the compared (sub-)trees a
    mismatch is reported. Nodes are compared by their kind, name, attributes, content
    and children.

    :param lhr: The node that is considered as root of the left hand operand.
    :param rhr: The node that is considered as root of the right hand operand.
    :return: An object that contains information about the first or no difference.
    """
    if lhr.node_type is not rhr.node_type:
        return TreesComparisonResult(TreeDifferenceKind.NodeType, lhr, rhr)

    if lhr.name != rhr.name:
        return TreesComparisonResult(TreeDifferenceKind.NodeName, lhr, rhr)

    if lhr.content != rhr.content:
        return TreesComparisonResult(TreeDifferenceKind.NodeContent, lhr, rhr)

    if lhr.node_type is NodeType.DOCUMENT_TYPE:
        assert isinstance(lhr, DocumentTypeNodeType)
        assert isinstance(rhr, DocumentTypeNodeType)
        if (lhr.public_id, lhr.system_id) != (rhr.public_id, rhr.system_id):
            return TreesComparisonResult(
                TreeDifferenceKind.DocumentTypeIdentifiers, lhr, rhr
            )

    if isinstance(lhr, TagNodeType):
        assert isinstance(rhr, TagNodeType)
        if _attribute_values(lhr) != _attribute_values(rhr):
            return TreesComparisonResult(TreeDifferenceKind.TagAttributes, lhr, rhr)

    if len(lhr.child_nodes) != len(rhr.child_nodes):
        return TreesComparisonResult(TreeDifferenceKind.TagChildrenSize, lhr, rhr)

    for lhn, rhn in zip(lhr.child_nodes, rhr.child_nodes):
        result = compare_trees(lhn, rhn)
        if not result:
            return result

    return TreesComparisonResult(TreeDifferenceKind.None_, None, None)


__all__ = (
    compare_trees.__name__,
    get_traverser.__name__,
    iterate_elements.__name__,
    TreeDifferenceKind.__name__,
    TreesComparisonResult.__name__,
)
