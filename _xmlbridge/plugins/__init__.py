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
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from importlib.metadata import entry_points
from importlib.util import find_spec
from typing import TYPE_CHECKING, Final


if TYPE_CHECKING:
    from collections.abc import Iterator

    from _xmlbridge.parser import Event, ParserOptions
    from _xmlbridge.typing import BinaryReader, Loader, LoaderConstraint


ENTRY_POINT_GROUP: Final = "xmlbridge"

logger: Final = logging.getLogger(__name__)


class PluginManager:
    __slots__ = ("loaders", "parsers")

    def __init__(self):
        self.loaders: list[Loader] = []
        self.parsers: dict[str, type[XMLEventParserInterface]] = {}

    def get_parser(
        self, preferences: str | Sequence[str]
    ) -> type[XMLEventParserInterface]:
        """
        Returns the first available parser adapter of the given names or any available
        one if none of these is.
        """
        if isinstance(preferences, str):
            preferences = (preferences,)

        for name in preferences:
            if (parser := self.parsers.get(name)) is not None:
                return parser

        for parser in self.parsers.values():
            return parser

        raise RuntimeError("No available parsers.")

    @staticmethod
    def load_plugins():
        """
        Loads all modules that are registered as entrypoint in the ``xmlbridge`` group
        and imports contributed plugins whose dependencies are available.
        """
        if find_spec("xml.sax"):
            import _xmlbridge.plugins.expat_parser
        if find_spec("lxml.etree"):
            import _xmlbridge.plugins.lxml_parser
        if find_spec("httpx"):
            import _xmlbridge.plugins.https_loader  # noqa: F401

        for entrypoint in entry_points().select(group=ENTRY_POINT_GROUP):
            logger.debug("Loading plugin module %s.", entrypoint.value)
            entrypoint.load()

    def register_loader(
        self, before: LoaderConstraint = None, after: LoaderConstraint = None
    ) -> Callable[[Loader], Loader]:
        """
        Registers a document loader. A loader is called with the source that is to be
        loaded and a :class:`types.SimpleNamespace` with configuration data, that
        carries the ``parser_options`` at least. It returns a parsed document or a
        string that explains why it didn't attempt to load the source.

        An example module that is specified as ``xmlbridge`` plugin for an IPFS loader
        might look like this:

        .. code-block::

            from os import getenv

            from _xmlbridge.plugins import plugin_manager
            from _xmlbridge.plugins.https_loader import https_loader


            IPFS_GATEWAY = getenv("IPFS_GATEWAY_PREFIX", "https://ipfs.io/ipfs/")


            @plugin_manager.register_loader(before=https_loader)
            def ipfs_loader(source, config):
                if isinstance(source, str) and source.startswith("ipfs://"):
                    config.source_url = source
                    return https_loader(IPFS_GATEWAY + source[7:], config)
                return "The input value is not an URL with the ipfs scheme."

        Loaders that retrieve a document from an URL should add the origin as string to
        the ``config`` object as ``source_url``.

        :param before: A loader or loaders that the new one shall precede.
        :param after: A loader or loaders that the new one shall succeed.
        """

        if before is not None and after is not None:
            raise NotImplementedError(
                "Loaders may only define one constraint atm. Please open an issue with "
                "a use-case description if you need to define both."
            )

        registered_loaders = self.loaders

        if before is not None:
            if not isinstance(before, Iterable):
                before = (before,)
            index = min(registered_loaders.index(x) for x in before)

        elif after is not None:
            if not isinstance(after, Iterable):
                after = (after,)
            index = max(registered_loaders.index(x) for x in after) + 1

        else:
            index = len(registered_loaders)

        def registrar(loader: Loader) -> Loader:
            assert callable(loader)
            registered_loaders.insert(index, loader)
            return loader

        return registrar


class XMLEventParserInterface(ABC):
    """
    This is the base class for parser adapters. After initialization their
    :meth:`parse` method will be called to iterate over parser events. Instances
    don't have to care about their state beyond the parsing of one input stream as
    they're only employed once.

    :param options: The parsing options the user passed with the input stream.
    :param base_url: The base URL for resolving references.
    :param encoding: This is the encoding that was either provided by the user,
                     noted in an XML document declaration or indicated by a Byte Order
                     Mark. But it could also be the fallback value ``utf-8`` if none of
                     the prior was available.
    """

    name: str
    """
    The parser can be selected by this class attribute's value as (member of) a
    :attr:`ParserOptions.preferred_parsers` setting.
    """

    def __init_subclass__(cls):
        plugin_manager.parsers[cls.name] = cls

    @abstractmethod
    def __init__(self, options: ParserOptions, base_url: str | None, encoding: str):
        pass

    @abstractmethod
    def parse(self, data: BinaryReader | str) -> Iterator[Event]:
        """
        This method must be implemented and yield the parsed contents in document order
        as :obj:`Event` tuples.
        """
        pass


plugin_manager = PluginManager()


__all__ = (XMLEventParserInterface.__name__, "plugin_manager")
