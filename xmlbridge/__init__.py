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

import logging
from io import TextIOWrapper
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, Final, Optional

from _xmlbridge.converter import parse_pi_data, to_parsed_object, to_target_tree
from _xmlbridge.exceptions import FailedDocumentLoading
from _xmlbridge.grammar import is_name_code_point, is_name_start_code_point
from _xmlbridge.names import (
    Namespaces,
    QName,
    create_qname,
    is_valid_custom_id,
    is_valid_name_token,
    is_valid_ncname,
    is_valid_qname,
    is_valid_xml_identifier,
    is_valid_xml_key,
    is_valid_xml_name,
    parse_qname,
)
from _xmlbridge.nodes import Document
from _xmlbridge.parser import ParserOptions, parse
from _xmlbridge.paths import Path
from _xmlbridge.plugins import core_loaders, plugin_manager as _plugin_manager
from _xmlbridge.plugins.https_loader import DEFAULT_CLIENT, post_document
from _xmlbridge.properties import (
    PropertyType,
    append_parsed_content,
    classify_property,
    create_pi_data,
    escape_attribute,
    unescape_attribute,
)
from _xmlbridge.rfc3986 import segment_pattern
from _xmlbridge.serializer import DefaultStringOptions, FormatOptions, render, write
from _xmlbridge.uri import URI, URIType, parse_uri, valid_uri
from _xmlbridge.utils import compare_trees

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Callable

    import httpx

    from _xmlbridge.typing import DocumentNodeType, Loader, XMLNodeType


# plugin loading


_plugin_manager.load_plugins()


logger: Final = logging.getLogger(__name__)


# api


def load(
    source: Any,
    parser_options: Optional[ParserOptions] = None,
    **config_options,
) -> list[dict[str, Any]]:
    """
    Loads a document from any source that one of the registered loaders can make sense
    of and returns it in the parsed document form. See
    :mod:`_xmlbridge.plugins.core_loaders` for the loaders that come with this package.

    :param source: A :class:`pathlib.Path`, a binary :term:`file-like object`, a string
                   or byte sequence with XML or an URL with the ``http(s)`` scheme.
    :param parser_options: A :class:`ParserOptions` instance to configure the used
                           parser.
    :param config_options: Additional keyword arguments that are available to loaders
                           on their ``config`` argument.
    :raises FailedDocumentLoading: When no loader was able to load the source, it
                                   carries each loader's excuse.
    """
    config = SimpleNamespace(**config_options)
    config.parser_options = parser_options or ParserOptions()

    loader_excuses: dict[Loader, str | Exception] = {}
    for loader in _plugin_manager.loaders:
        try:
            loader_result = loader(source, config)
        except Exception as e:
            logger.debug("The loader %s failed: %s", loader.__name__, e)
            loader_excuses[loader] = e
        else:
            if isinstance(loader_result, str):
                logger.debug(
                    "The loader %s declined: %s", loader.__name__, loader_result
                )
                loader_excuses[loader] = loader_result
            else:
                logger.info(
                    "Loaded a document from %s with %s.",
                    getattr(config, "source_url", None) or type(source).__name__,
                    loader.__name__,
                )
                return loader_result

    raise FailedDocumentLoading(source, loader_excuses)


def load_tree(
    source: Any,
    parser_options: Optional[ParserOptions] = None,
    *,
    document_factory: Callable[[], DocumentNodeType] = Document,
    **config_options,
) -> DocumentNodeType:
    """
    Loads a document like :func:`load` and converts it to a tree.

    :param document_factory: Creates the document that produces all nodes.
    """
    return to_target_tree(
        load(source, parser_options, **config_options),
        document_factory=document_factory,
    )


def save(
    node: XMLNodeType,
    path: pathlib.Path,
    *,
    encoding: str = "utf-8",
    format_options: Optional[FormatOptions] = None,
    xml_declaration: bool = True,
    newline: Optional[str] = None,
):
    """
    Saves a serialized node and its descendants to a file.

    :param node: The node to serialize, usually a document.
    :param path: The filesystem path to the target file.
    :param encoding: The desired text encoding.
    :param format_options: An instance of :class:`FormatOptions` can be provided to
                           configure formatting.
    :param xml_declaration: Prepends an XML declaration.
    :param newline: See :class:`io.TextIOWrapper` for a detailed explanation of the
                    parameter with the same name.
    """
    logger.info("Saving to %s.", path)
    with path.open("bw") as file:
        buffer = TextIOWrapper(file)
        write(
            node,
            buffer,
            encoding=encoding,
            format_options=format_options,
            xml_declaration=xml_declaration,
            newline=newline,
        )
        buffer.flush()
        # the file is closed by its context manager
        buffer.detach()


def send(
    node: XMLNodeType,
    url: str,
    *,
    client: httpx.Client = DEFAULT_CLIENT,
    encoding: str = "utf-8",
    format_options: Optional[FormatOptions] = None,
    xml_declaration: bool = True,
) -> httpx.Response:
    """
    Sends a serialized node and its descendants with a ``POST`` request to an
    ``http(s)`` URL and returns the server's response. See
    :func:`_xmlbridge.plugins.https_loader.post_document` for the parameters.
    """
    logger.info("Sending to %s.", url)
    return post_document(
        node,
        url,
        client=client,
        encoding=encoding,
        format_options=format_options,
        xml_declaration=xml_declaration,
    )


__all__ = (
    "core_loaders",
    DefaultStringOptions.__name__,
    Document.__name__,
    FormatOptions.__name__,
    Namespaces.__name__,
    ParserOptions.__name__,
    Path.__name__,
    PropertyType.__name__,
    QName.__name__,
    URI.__name__,
    URIType.__name__,
    append_parsed_content.__name__,
    classify_property.__name__,
    compare_trees.__name__,
    create_pi_data.__name__,
    create_qname.__name__,
    escape_attribute.__name__,
    is_name_code_point.__name__,
    is_name_start_code_point.__name__,
    is_valid_custom_id.__name__,
    is_valid_name_token.__name__,
    is_valid_ncname.__name__,
    is_valid_qname.__name__,
    is_valid_xml_identifier.__name__,
    is_valid_xml_key.__name__,
    is_valid_xml_name.__name__,
    load.__name__,
    load_tree.__name__,
    parse.__name__,
    parse_pi_data.__name__,
    parse_qname.__name__,
    parse_uri.__name__,
    render.__name__,
    save.__name__,
    segment_pattern.__name__,
    send.__name__,
    to_parsed_object.__name__,
    to_target_tree.__name__,
    unescape_attribute.__name__,
    valid_uri.__name__,
)
