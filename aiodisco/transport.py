########################################################################
# File name: transport.py
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
:mod:`~aiodisco.transport` --- Sending discovery queries
########################################################

:mod:`aiodisco` does not manage connections. Instead, a
:class:`~.DiscoverySession` is given an object implementing
:class:`AbstractTransport` which sends the queries on its behalf.

.. autoclass:: QueryType

.. autoclass:: Response

.. autoclass:: AbstractTransport

.. autoclass:: IQTransport
"""
import abc
import collections
import logging
import random

import aiodisco.errors as errors
import aiodisco.xml

from aiodisco.disco.structs import QueryType
from aiodisco.utils import etree, namespaces


logger = logging.getLogger(__name__)

RANDOM_ID_BYTES = 120 // 8


Response = collections.namedtuple("Response", ["from_", "payload"])
Response.__doc__ = """
A decoded response to a discovery query.

.. attribute:: from_

   The address of the responding entity.

.. attribute:: payload

   The :class:`~.disco.structs.InfoQuery` or
   :class:`~.disco.structs.ItemsQuery`.
"""


class AbstractTransport(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    async def send_query(self, entity, query_type, node):
        """
        Send a discovery query and wait for the response.

        :param entity: The entity to query.
        :type entity: :class:`str`
        :param query_type: The kind of query.
        :type query_type: :class:`QueryType`
        :param node: The node to query or :data:`None`.
        :type node: :class:`str`
        :raises aiodisco.errors.XMPPError: if the peer replied with an error.
        :raises aiodisco.errors.ErroneousStanza: if the reply could not be
            decoded.
        :rtype: :class:`Response`

        Implementations may raise :class:`TimeoutError` or
        :class:`ConnectionError` as well. Concurrent calls must be
        supported; each call is correlated to its reply by the
        implementation.
        """


def _make_id():
    return "{:x}".format(random.getrandbits(8*RANDOM_ID_BYTES))


class IQTransport(AbstractTransport):
    """
    Transport on top of a coroutine function exchanging raw IQ stanzas.

    :param send_iq: Coroutine function which sends an ``<iq/>``
        :mod:`lxml.etree` element and returns the reply element with the
        same ``id``.

    The request is built with :mod:`aiodisco.xml`; the reply is checked for
    its ``type`` and ``id`` and decoded.
    """

    def __init__(self, send_iq):
        super().__init__()
        self._send_iq = send_iq

    async def send_query(self, entity, query_type, node):
        query_type = QueryType(query_type)
        if query_type == QueryType.INFO:
            payload = aiodisco.xml.make_info_request(node)
            decode = aiodisco.xml.info_from_xml
            tag = (namespaces.xep0030_info, "query")
        else:
            payload = aiodisco.xml.make_items_request(node)
            decode = aiodisco.xml.items_from_xml
            tag = (namespaces.xep0030_items, "query")

        id_ = _make_id()
        request = aiodisco.xml.make_iq("get", entity, id_, payload)
        logger.debug("sending %s query to %s (node=%r, id=%s)",
                     query_type.value, entity, node, id_)
        reply = await self._send_iq(request)

        if reply.get("id") != id_:
            raise errors.ErroneousStanza(reply)

        type_ = reply.get("type")
        if type_ == "error":
            raise aiodisco.xml.error_from_xml(reply)
        if type_ != "result":
            raise errors.ErroneousStanza(reply)

        query = reply.find(etree.QName(*tag).text)
        if query is None:
            raise errors.ErroneousStanza(reply)

        try:
            result = decode(query)
        except ValueError as exc:
            raise errors.ErroneousStanza(reply) from exc

        return Response(reply.get("from", entity), result)
