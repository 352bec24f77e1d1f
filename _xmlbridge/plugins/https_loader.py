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
Loads documents from HTTP(S) URLs and sends serialized documents to such with
httpx_. HTTP/2 is used when the *h2* package is installed, which is the case when
``xmlbridge`` is installed with the ``https-loader`` extra.

.. _httpx: https://www.python-httpx.org/
"""

from __future__ import annotations

import logging
from io import BytesIO, IOBase, TextIOWrapper
from typing import TYPE_CHECKING, Any, Final, Optional

import httpx

from _xmlbridge.plugins import plugin_manager
from _xmlbridge.plugins.core_loaders import buffer_loader, text_loader
from _xmlbridge.serializer import write

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import SimpleNamespace

    from _xmlbridge.serializer import FormatOptions
    from _xmlbridge.typing import LoaderResult, XMLNodeType


try:
    import h2  # type: ignore
except ImportError:
    http2 = False
else:
    http2 = True
    del h2


DEFAULT_CLIENT: Final = httpx.Client(follow_redirects=True, http2=http2)

logger: Final = logging.getLogger(__name__)


class HttpsStreamWrapper(IOBase):
    __slots__ = ("_generator", "_response")

    def __init__(self, response: httpx.Response):
        self._generator: Optional[Iterator[bytes]] = None
        self._response = response

    def read(self, size: int = 4096) -> bytes:
        if self._generator is None:
            self._generator = self._response.iter_bytes(chunk_size=size)

        try:
            return next(self._generator)
        except StopIteration:
            return b""


def _is_http_url(value: Any) -> bool:
    return isinstance(value, str) and value.lower().startswith(("http://", "https://"))


@plugin_manager.register_loader(before=text_loader)
def https_loader(
    data: Any, config: SimpleNamespace, client: httpx.Client = DEFAULT_CLIENT
) -> LoaderResult:
    """
    This loader loads a document from a URL with the ``http`` and ``https`` scheme.
    The default httpx-client follows redirects and can partially be configured with
    `environment variables`_. The URL will be bound to the name ``source_url`` on
    the ``config`` namespace.

    Loaders with specifically configured httpx-clients can build on this loader
    like so:

    .. code-block::

        import httpx
        from _xmlbridge.plugins import plugin_manager
        from _xmlbridge.plugins.https_loader import https_loader


        client = httpx.Client(follow_redirects=False, trust_env=False)

        @plugin_manager.register_loader(before=https_loader)
        def custom_https_loader(data, config):
            return https_loader(data, config, client=client)

    .. _environment variables: https://www.python-httpx.org/environment_variables/
    """

    if _is_http_url(data):
        logger.debug("Requesting %s.", data)
        with client.stream("get", url=data) as response:
            response.raise_for_status()
            config.source_url = data
            return buffer_loader(HttpsStreamWrapper(response), config)
    return "The input value is not an URL with the http or https scheme."


def post_document(
    node: XMLNodeType,
    url: str,
    *,
    client: httpx.Client = DEFAULT_CLIENT,
    encoding: str = "utf-8",
    format_options: Optional[FormatOptions] = None,
    xml_declaration: bool = True,
) -> httpx.Response:
    """
    Sends a serialized node and its descendants with a ``POST`` request to a URL with
    the ``http`` or ``https`` scheme. The request body is declared as
    ``application/xml``.

    :param node: The node to serialize, usually a document.
    :param url: The target URL.
    :param client: The httpx-client that sends the request.
    :param encoding: The encoding of the request body.
    :param format_options: An instance of :class:`FormatOptions` can be provided to
                           configure formatting.
    :param xml_declaration: Prepends an XML declaration.
    :raises ValueError: If the URL has another scheme.
    :raises httpx.HTTPStatusError: If the server responds with an error status.
    """
    if not _is_http_url(url):
        raise ValueError(f"Not an URL with the http or https scheme: {url!r}")

    body = BytesIO()
    buffer = TextIOWrapper(body)
    write(
        node,
        buffer,
        encoding=encoding,
        format_options=format_options,
        xml_declaration=xml_declaration,
    )
    buffer.flush()
    content = body.getvalue()

    logger.debug("Posting %i bytes to %s.", len(content), url)
    response = client.post(
        url,
        content=content,
        headers={"Content-Type": f"application/xml; charset={encoding}"},
    )
    response.raise_for_status()
    return response


__all__ = (
    https_loader.__name__,
    post_document.__name__,
)
