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
:mod:`~aiodisco.disco` --- Service discovery support (:xep:`0030`)
##################################################################

This module provides cached querying of the disco#info and disco#items of
other entities. To use it, :meth:`.DiscoverySession.summon` the
:class:`aiodisco.DiscoClient`.

.. currentmodule:: aiodisco

.. autoclass:: DiscoClient

.. currentmodule:: aiodisco.disco.structs

Data model
==========

.. autoclass:: QueryType

.. autoclass:: Identity

.. autoclass:: Form

.. autoclass:: InfoQuery

.. autoclass:: Item

.. autoclass:: ItemsQuery
"""
from . import structs  # NOQA: F401
from .service import DiscoClient  # NOQA: F401
