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
:mod:`~aiodisco.entitycaps` --- Entity Capabilities support (:xep:`0115`)
#########################################################################

This module provides support for :xep:`XEP-0115 (Entity Capabilities)
<0115>`. To use it, :meth:`.DiscoverySession.summon` the
:class:`aiodisco.EntityCapsService` and pass inbound presence broadcasts to
:meth:`~.EntityCapsService.handle_presence`.

Legacy advertisements (without ``hash`` attribute) are recognised, but not
processed.

Service
=======

.. currentmodule:: aiodisco

.. autoclass:: EntityCapsService

.. currentmodule:: aiodisco.entitycaps

Verification
============

.. autoclass:: Key

.. autoclass:: Advertisement

.. autoclass:: LegacyAdvertisement

.. autofunction:: aiodisco.entitycaps.caps115.build_verification_string

.. autofunction:: aiodisco.entitycaps.caps115.hash_query

.. autofunction:: aiodisco.entitycaps.caps115.calculate_key

Cache
=====

.. autoclass:: CapsCache

.. autoclass:: Pending

.. autoclass:: Resolved

.. autoclass:: ProbeState

.. autoclass:: BindingRegistry
"""

from .service import EntityCapsService  # NOQA: F401
from .caps115 import (  # NOQA: F401
    Advertisement,
    Key,
    LegacyAdvertisement,
)
from .cache import (  # NOQA: F401
    BindingRegistry,
    CapsCache,
    Pending,
    ProbeState,
    Resolved,
)
