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
Uniform Resource Identifiers as value objects and their syntax per RFC 3986.
"""

from _xmlbridge.paths import Path
from _xmlbridge.rfc3986 import (
    ipv6_shorthand_pattern,
    is_uri_compliant,
    is_uri_reference_compliant,
    segment_pattern,
)
from _xmlbridge.uri import *  # noqa: F403
from _xmlbridge.uri import __all__


__all__ = __all__ + (
    Path.__name__,
    ipv6_shorthand_pattern.__name__,
    is_uri_compliant.__name__,
    is_uri_reference_compliant.__name__,
    segment_pattern.__name__,
)
