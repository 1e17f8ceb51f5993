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
import asyncio
import functools

import aiodisco.callbacks
import aiodisco.errors as errors
import aiodisco.service as service

from . import structs as disco_structs


class DiscoClient(service.Service):
    """
    Provide cache-backed Service Discovery (:xep:`30`) queries.

    Results are cached per ``(entity, node)`` until they are explicitly
    invalidated; there is no expiry.

    .. seealso::

       :class:`.EntityCapsService`
          which lets :meth:`query_info` answer from verified capability
          hashes without asking the network.

    Querying other entities' service discovery information:

    .. automethod:: query_info

    .. automethod:: query_items

    Cache management:

    .. automethod:: set_info_cache

    .. automethod:: invalidate_info

    .. automethod:: invalidate_items

    .. automethod:: flush_cache

    .. attribute:: caps_lookup

       Callable which takes an entity and returns an
       :class:`~.structs.InfoQuery` derived from entity capabilities or
       :data:`None`. Consulted by :meth:`query_info` for queries without node
       before going to the network. Installed by
       :class:`.EntityCapsService`.

    .. signal:: on_info_result(entity, node, info)

       Emits whenever a disco#info response was received from the network.
       `entity` and `node` are those reported in the response.
    """

    on_info_result = aiodisco.callbacks.Signal()

    def __init__(self, session, **kwargs):
        super().__init__(session, **kwargs)

        self._info_cache = {}
        self._info_pending = {}
        self._items_cache = {}
        self._items_pending = {}
        self.caps_lookup = None

    async def _shutdown(self):
        for pending in (self._info_pending, self._items_pending):
            for fut in pending.values():
                if not fut.done():
                    fut.cancel()
            pending.clear()
        self.flush_cache()
        self.caps_lookup = None
        await super()._shutdown()

    @staticmethod
    def _erase_pending(pending, key, fut):
        if pending.get(key) is fut:
            del pending[key]

    async def send_and_decode_info_query(self, jid, node):
        from_, payload = await self.session.transport.send_query(
            jid,
            disco_structs.QueryType.INFO,
            node,
        )
        if not isinstance(payload, disco_structs.InfoQuery):
            raise errors.ErroneousStanza(payload)
        return from_, payload

    async def send_and_decode_items_query(self, jid, node):
        from_, payload = await self.session.transport.send_query(
            jid,
            disco_structs.QueryType.ITEMS,
            node,
        )
        if not isinstance(payload, disco_structs.ItemsQuery):
            raise errors.ErroneousStanza(payload)
        return from_, payload

    async def _fetch_info(self, jid, node, no_cache):
        from_, info = await self.send_and_decode_info_query(jid, node)
        if info.node is not None:
            node = info.node
        if not no_cache:
            self._info_cache[from_, node] = info
        self.on_info_result(from_, node, info)
        return info

    async def _fetch_items(self, jid, node):
        from_, items = await self.send_and_decode_items_query(jid, node)
        if items.node is not None:
            node = items.node
        self._items_cache[from_, node] = items
        return items

    async def _await_request(self, request, timeout):
        if timeout is None:
            return await asyncio.shield(request)
        try:
            return await asyncio.wait_for(
                asyncio.shield(request),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise TimeoutError() from None

    async def query_info(self, jid, *,
                         node=None, require_fresh=False, timeout=None,
                         no_cache=False):
        """
        Query the features and identities of the specified entity.

        :param jid: The entity to query.
        :type jid: :class:`str`
        :param node: The node to query.
        :type node: :class:`str` or :data:`None`
        :param require_fresh: Boolean flag to bypass the cache.
        :type require_fresh: :class:`bool`
        :param timeout: Optional timeout for the response.
        :type timeout: :class:`float`
        :param no_cache: Boolean flag to keep the result out of the cache.
        :type no_cache: :class:`bool`
        :raises aiodisco.errors.XMPPError: if the entity replied with an
            error.
        :raises TimeoutError: if `timeout` expired.
        :rtype: :class:`~.structs.InfoQuery`
        :return: Service discovery information of the `node` at `jid`.

        Lookup order, unless `require_fresh` is true:

        1. the result cache, filled by previous responses;
        2. for `node` :data:`None`, the information of the capability hash
           the entity currently advertises, if it has been verified;
        3. a request to the same target which is already in flight;
        4. a new request.

        With `require_fresh`, a new request is always sent. Successful
        responses replace the cache entry for the entity and node *reported
        in the response*, falling back to `node` if the response carries no
        node. Errors are re-raised and leave the cache alone.

        If the `timeout` triggers, :class:`TimeoutError` is raised; the
        request itself stays alive and its result is still cached.

        `no_cache` keeps the result out of the cache and out of the set of
        in-flight requests which other queries may attach to.
        """
        key = jid, node

        if not require_fresh:
            try:
                result = self._info_cache[key]
            except KeyError:
                pass
            else:
                self.logger.debug("info cache hit for %r", key)
                return result

            if node is None and self.caps_lookup is not None:
                result = self.caps_lookup(jid)
                if result is not None:
                    self.logger.debug("using entity caps for %r", jid)
                    return result

            try:
                request = self._info_pending[key]
            except KeyError:
                pass
            else:
                self.logger.debug("attaching to in-flight info query for %r",
                                  key)
                return await self._await_request(request, timeout)

        self.logger.debug("sending info query for %r", key)
        request = self.session.loop.create_task(
            self._fetch_info(jid, node, no_cache)
        )
        if not no_cache:
            self._info_pending[key] = request
            request.add_done_callback(
                functools.partial(self._erase_pending,
                                  self._info_pending, key)
            )

        return await self._await_request(request, timeout)

    async def query_items(self, jid, *,
                          node=None, require_fresh=False, timeout=None):
        """
        Query the items of the specified entity.

        :param jid: The entity to query.
        :type jid: :class:`str`
        :param node: The node to query.
        :type node: :class:`str` or :data:`None`
        :param require_fresh: Boolean flag to bypass the cache.
        :type require_fresh: :class:`bool`
        :param timeout: Optional timeout for the response.
        :type timeout: :class:`float`
        :rtype: :class:`~.structs.ItemsQuery`
        :return: Service discovery items of the `node` at `jid`.

        The arguments have the same semantics as with :meth:`query_info`, as
        does the caching and error handling. Entity capabilities are not
        consulted for items.
        """
        key = jid, node

        if not require_fresh:
            try:
                result = self._items_cache[key]
            except KeyError:
                pass
            else:
                self.logger.debug("items cache hit for %r", key)
                return result

            try:
                request = self._items_pending[key]
            except KeyError:
                pass
            else:
                return await self._await_request(request, timeout)

        self.logger.debug("sending items query for %r", key)
        request = self.session.loop.create_task(
            self._fetch_items(jid, node)
        )
        self._items_pending[key] = request
        request.add_done_callback(
            functools.partial(self._erase_pending,
                              self._items_pending, key)
        )

        return await self._await_request(request, timeout)

    def set_info_cache(self, jid, node, info):
        """
        Override the cache entry for :meth:`query_info` of the `jid` and
        `node` combination with `info`.
        """
        self._info_cache[jid, node] = info

    def invalidate_info(self, jid, node=None):
        """
        Remove the cached info for `jid` and `node`, if any.

        In-flight requests are not cancelled.
        """
        self._info_cache.pop((jid, node), None)

    def invalidate_items(self, jid, node=None):
        """
        Remove the cached items for `jid` and `node`, if any.

        In-flight requests are not cancelled.
        """
        self._items_cache.pop((jid, node), None)

    def flush_cache(self):
        """
        Clear both caches.

        Queries which are in flight continue and will populate the caches
        when they complete.
        """
        self._info_cache.clear()
        self._items_cache.clear()
