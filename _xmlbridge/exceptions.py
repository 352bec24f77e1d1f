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

"""These are the specific xmlbridge exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from collections.abc import Sequence

    from _xmlbridge.typing import Loader


class XMLBridgeBaseException(Exception):
    pass


# format errors


class FormatError(XMLBridgeBaseException, ValueError):
    """
    Raised when a name, a qualified name or a URI is malformed. The offending input is
    available as :attr:`value`.
    """

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


# range errors


class OutOfRangeError(XMLBridgeBaseException, ValueError):
    """
    Raised when a value is syntactically fine, but violates a policy, e.g. an invalid
    path segment or a field that a URN must not have.
    """

    pass


class InvalidURIFields(OutOfRangeError):
    """Lists all fields of a URI value that its type doesn't allow."""

    def __init__(self, uri_type: str, fields: Sequence[str]):
        self.uri_type = uri_type
        self.fields = tuple(fields)
        super().__init__(str(self))

    def __str__(self):
        fields = self.fields
        if len(fields) > 1:
            listing = f"{', '.join(fields[:-1])}, and {fields[-1]}"
        else:
            listing = fields[0]
        return f"{self.uri_type} does not allow fields {listing}"


# structural errors


class StructuralError(XMLBridgeBaseException):
    """Raised when a parsed document can't be converted into a tree."""

    pass


class UnknownPropertyType(StructuralError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown property type: {key!r}")


class DeclarationNotAllowed(StructuralError):
    def __init__(self, description: str):
        super().__init__(
            f"Invalid content: {description} is not allowed inside an element."
        )


# parsing and loading


class FailedDocumentLoading(XMLBridgeBaseException):
    def __init__(self, source: Any, excuses: dict[Loader, str | Exception]):
        self.source = source
        self.excuses = excuses

    def __str__(self):
        return f"Couldn't load {self.source!r} with these loaders: {self.excuses}"


class InvalidOperation(XMLBridgeBaseException):
    """Raised when an invalid operation is attempted on a tree."""

    pass


class InvalidCodePath(XMLBridgeBaseException, RuntimeError):
    """Raised when a code path that is not expected to be executed is reached."""

    def __init__(self):  # pragma: no cover
        super().__init__(
            "An unintended path was taken through the code. Please report this bug."
        )


class ParsingError(XMLBridgeBaseException):
    pass


class ParsingProcessingError(ParsingError):
    pass


class ParsingEmptyStream(ParsingProcessingError):
    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "The input stream is empty.")


__all__ = (
    DeclarationNotAllowed.__name__,
    FailedDocumentLoading.__name__,
    FormatError.__name__,
    InvalidCodePath.__name__,
    InvalidOperation.__name__,
    InvalidURIFields.__name__,
    OutOfRangeError.__name__,
    ParsingEmptyStream.__name__,
    ParsingError.__name__,
    ParsingProcessingError.__name__,
    StructuralError.__name__,
    UnknownPropertyType.__name__,
    XMLBridgeBaseException.__name__,
)
