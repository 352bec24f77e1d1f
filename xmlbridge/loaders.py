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
The contributed document loaders and the means to register further ones.
"""

from _xmlbridge.plugins import plugin_manager
from _xmlbridge.plugins.core_loaders import *  # noqa: F403
from _xmlbridge.plugins.core_loaders import __all__


register_loader = plugin_manager.register_loader

__all__ = __all__ + ("register_loader",)
