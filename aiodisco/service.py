########################################################################
# File name: service.py
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
:mod:`~aiodisco.service` --- Base class for services
####################################################

A :class:`Service` is bound to a :class:`~.DiscoverySession` and holds the
state of one protocol part for the lifetime of that session. Services are
not instantiated directly, but obtained via
:meth:`~.DiscoverySession.summon`, which also summons the services listed in
:attr:`Service.ORDER_AFTER` first and passes them in as
:attr:`Service.dependencies`.

.. autoclass:: Service
"""
import logging


class Service:
    """
    Base class for services.

    :param session: The session the service is bound to.
    :type session: :class:`~.DiscoverySession`
    :param logger_base: Logger from which the service logger is derived.
    :param dependencies: Mapping of the classes in :attr:`ORDER_AFTER` to
        their instances.

    .. attribute:: ORDER_AFTER

       Set of service classes this service depends on.

    .. attribute:: logger

       The :class:`logging.Logger` of the service.

    .. autoattribute:: session

    .. autoattribute:: dependencies

    .. automethod:: shutdown

    .. automethod:: _shutdown
    """

    ORDER_AFTER = frozenset()

    def __init__(self, session, *, logger_base=None, dependencies={}):
        if logger_base is None:
            self.logger = logging.getLogger(".".join([
                type(self).__module__, type(self).__qualname__
            ]))
        else:
            self.logger = self.derive_logger(logger_base)

        super().__init__()
        self.__session = session
        self.__dependencies = dependencies

    def derive_logger(self, logger):
        """
        Return a child of `logger` specific for this instance.
        """
        parts = type(self).__module__.split(".")[1:]
        if parts and parts[-1] == "service" and len(parts) > 1:
            del parts[-1]

        return logger.getChild(".".join(
            parts+[type(self).__qualname__]
        ))

    @property
    def session(self):
        """
        The session to which the service is bound. :data:`None` after
        :meth:`shutdown`.
        """
        return self.__session

    @property
    def dependencies(self):
        return self.__dependencies

    async def _shutdown(self):
        """
        Actual implementation of the shut down process.

        Inheriting classes override this and call it using :func:`super`
        after their own shutdown procedure.
        """

    async def shutdown(self):
        """
        Release all resources held by the service.

        Subclasses override :meth:`_shutdown` instead.
        """
        await self._shutdown()
        self.__session = None
