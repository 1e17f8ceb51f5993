########################################################################
# File name: session.py
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
:mod:`~aiodisco.session` --- Owner of all discovery state
#########################################################

.. autoclass:: DiscoverySession
"""
import asyncio
import logging


class DiscoverySession:
    """
    Hold the services (and thus the caches) for one connection.

    :param transport: Used to send discovery queries.
    :type transport: :class:`~.transport.AbstractTransport`
    :param logger: Base logger for the services, defaults to the
        ``aiodisco`` logger.
    :param loop: Event loop to spawn probe tasks in, defaults to the running
        event loop.
    :raises RuntimeError: if `loop` is not given and no event loop is
        running.

    Create the session when the connection is set up and :meth:`close` it
    when the connection goes away. All state lives in the services summoned
    for the session, there is no module-global state.

    Usage example::

        session = aiodisco.DiscoverySession(transport)
        disco = session.summon(aiodisco.DiscoClient)
        caps = session.summon(aiodisco.EntityCapsService)

        # for each inbound presence:
        caps.handle_presence(bare, resource, advertisement)

        info = await disco.query_info("juliet@capulet.example/balcony")

    .. autoattribute:: transport

    .. autoattribute:: loop

    .. automethod:: summon

    .. automethod:: close
    """

    def __init__(self, transport, *, logger=None, loop=None):
        super().__init__()
        self.logger = logger or logging.getLogger("aiodisco")
        self._transport = transport
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._services = {}

    @property
    def transport(self):
        return self._transport

    @property
    def loop(self):
        return self._loop

    @property
    def running(self):
        return self._transport is not None

    def _summon(self, class_, visited):
        # this is essentially a topological sort
        try:
            return self._services[class_]
        except KeyError:
            if class_ in visited:
                raise ValueError("dependency loop")
            visited.add(class_)

            dependencies = {
                depclass: self._summon(depclass, visited)
                for depclass in class_.ORDER_AFTER
            }

            instance = class_(
                self,
                logger_base=self.logger,
                dependencies=dependencies,
            )
            self._services[class_] = instance
            return instance

    def summon(self, class_):
        """
        Summon a :class:`~.service.Service` for the session.

        If `class_` has been summoned already, the existing instance is
        returned. Otherwise its dependencies are summoned first.

        :raises ConnectionError: if the session has been closed.
        """
        if not self.running:
            raise ConnectionError("session is closed")
        return self._summon(class_, set())

    async def close(self):
        """
        Shut down all services in reverse summon order and drop the
        transport. Outstanding probes are cancelled.
        """
        if not self.running:
            return
        self.logger.debug("closing discovery session")
        for instance in reversed(list(self._services.values())):
            await instance.shutdown()
        self._services.clear()
        self._transport = None
