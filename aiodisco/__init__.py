########################################################################
# File name: __init__.py
# This file is part of: aiodisco
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
########################################################################
"""
Version information
###################

.. autodata:: __version__

.. autodata:: version_info

Overview of Services
####################

.. autosummary::
    :nosignatures:

    aiodisco.DiscoClient
    aiodisco.EntityCapsService

Services are obtained from a :class:`aiodisco.DiscoverySession`, which is
created per connection with an :class:`~aiodisco.transport.AbstractTransport`.
"""
from ._version import version_info, __version__, version  # NOQA: F401

#: The imported :mod:`aiodisco` version as a tuple.
version_info = version_info

#: The imported :mod:`aiodisco` version as a string.
__version__ = __version__

from .errors import (  # NOQA
    ErrorCondition,
    ErrorType,
    XMPPAuthError,
    XMPPCancelError,
    XMPPContinueError,
    XMPPError,
    XMPPModifyError,
    XMPPWaitError,
)
from .disco import DiscoClient  # NOQA: F401
from .entitycaps import EntityCapsService  # NOQA: F401
from .session import DiscoverySession  # NOQA: F401
from .transport import (  # NOQA: F401
    AbstractTransport,
    IQTransport,
    QueryType,
    Response,
)
