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
import functools
import itertools
import time

from datetime import timedelta

import aiodisco.callbacks
import aiodisco.disco as disco
import aiodisco.hashes
import aiodisco.service
import aiodisco.utils

from . import caps115
from .cache import BindingRegistry, CapsCache, ProbeState, Resolved


class EntityCapsService(aiodisco.service.Service):
    """
    Resolve :xep:`115` capability hashes advertised in presence broadcasts.

    Feed each inbound presence into :meth:`handle_presence`. When an entity
    advertises a hash which is not known yet, its disco#info for the
    capability node is requested and the hash is recomputed from the
    response. Only if the hash matches is the information trusted; from then
    on, :meth:`.DiscoClient.query_info` answers for every entity advertising
    that hash without network traffic.

    Only one request per hash is in flight at any time. Other entities
    advertising the same hash while the request is outstanding are queued
    and asked in turn if the request fails or the response does not match
    the hash. If the outstanding request is older than :attr:`probe_timeout`,
    the next entity advertising the hash is asked right away instead of
    being queued. When the queue runs dry, the hash is forgotten and the next
    advertisement starts over.

    Advertisements using an unknown or unsupported hash algorithm and legacy
    advertisements without hash are ignored.

    .. signal:: on_caps_resolved(key, info)

       Emits when the information for a :class:`~.caps115.Key` has been
       verified.

    .. autoattribute:: cache

    .. autoattribute:: bindings

    .. autoattribute:: probe_timeout

    .. automethod:: handle_presence

    .. automethod:: observe

    .. automethod:: lookup

    .. automethod:: lookup_info

    .. automethod:: on_response

    .. automethod:: on_failure
    """

    ORDER_AFTER = {
        disco.DiscoClient,
    }

    PROBE_TIMEOUT = timedelta(seconds=10)

    on_caps_resolved = aiodisco.callbacks.Signal()

    def __init__(self, session, **kwargs):
        super().__init__(session, **kwargs)

        self._cache = CapsCache()
        self._bindings = BindingRegistry()
        self._probe_timeout = self.PROBE_TIMEOUT
        self._attempts = itertools.count()
        self._probe_tasks = set()

        self.disco_client = self.dependencies[disco.DiscoClient]
        self.disco_client.caps_lookup = self.lookup_info

    @property
    def cache(self):
        """
        The :class:`~.cache.CapsCache` used by this service.

        Assign a process-wide instance to share verified hashes among
        sessions. Deleting the attribute installs a fresh, empty cache.
        """
        return self._cache

    @cache.setter
    def cache(self, value):
        self._cache = value

    @cache.deleter
    def cache(self):
        self._cache = CapsCache()

    @property
    def bindings(self):
        """
        The :class:`~.cache.BindingRegistry` recording the key each resource
        advertises.
        """
        return self._bindings

    @property
    def probe_timeout(self):
        """
        :class:`datetime.timedelta` after which an unanswered probe no
        longer keeps other entities from being asked directly.

        Defaults to :attr:`PROBE_TIMEOUT` (10 seconds).
        """
        return self._probe_timeout

    @probe_timeout.setter
    def probe_timeout(self, value):
        self._probe_timeout = value

    async def _shutdown(self):
        for task in list(self._probe_tasks):
            task.cancel()
        self._probe_tasks.clear()
        self._cache.drop_pending()
        self._bindings.clear()
        if self.disco_client.caps_lookup == self.lookup_info:
            self.disco_client.caps_lookup = None
        await super()._shutdown()

    def lookup(self, key):
        """
        Return the :class:`~.cache.Resolved` or :class:`~.cache.Pending`
        entry for `key`, or :data:`None` if the key is unknown.
        """
        try:
            return self._cache.lookup(key)
        except KeyError:
            return None

    def lookup_info(self, entity):
        """
        Return the verified :class:`~.disco.structs.InfoQuery` for the key
        `entity` currently advertises, or :data:`None`.

        :param entity: The address, including the resource if any.
        """
        bare, resource = aiodisco.utils.split_entity(entity)
        try:
            key = self._bindings.get(bare, resource)
        except KeyError:
            return None

        entry = self.lookup(key)
        if isinstance(entry, Resolved):
            return entry.info
        return None

    def handle_presence(self, entity, resource, advertisement, *,
                        available=True):
        """
        Process the capability advertisement of a presence broadcast.

        :param entity: The bare address of the sender.
        :param resource: The resource of the sender or :data:`None`.
        :param advertisement: The advertisement carried by the presence.
        :type advertisement: :class:`~.caps115.Advertisement`,
            :class:`~.caps115.LegacyAdvertisement` or :data:`None`
        :param available: False for unavailable presence; the binding of the
            resource is dropped.
        :return: The probe task, if a probe was started.

        The latest hashed advertisement of each resource is recorded and
        passed to :meth:`observe`.
        """
        if not available:
            self._bindings.unbind(entity, resource)
            return None

        if advertisement is None:
            return None

        if isinstance(advertisement, caps115.LegacyAdvertisement):
            self.logger.debug("ignoring legacy caps advertisement of %s/%s",
                              entity, resource)
            return None

        key = advertisement.key
        if not aiodisco.hashes.is_algo_supported(key.algo):
            self.logger.debug("ignoring %r: unsupported hash algorithm", key)
            return None

        self._bindings.bind(entity, resource, key)
        return self.observe(
            aiodisco.utils.join_entity(entity, resource),
            key,
        )

    def observe(self, entity, key):
        """
        Record that `entity` advertises `key`.

        :param entity: The full address of the advertising entity.
        :param key: The advertised key.
        :type key: :class:`~.caps115.Key`
        :return: The probe task, if a request was sent.

        Depending on the state of `key`, a probe is sent to `entity`,
        `entity` is queued as fallback, or nothing happens.
        """
        if not aiodisco.hashes.is_algo_supported(key.algo):
            self.logger.debug("ignoring %r: unsupported hash algorithm", key)
            return None

        now = time.monotonic()

        try:
            entry = self._cache.lookup(key)
        except KeyError:
            state = ProbeState(now)
            self._cache.create_pending(key, state)
            self.logger.debug("new key %r, asking %s", key, entity)
            return self._start_probe(key, state, entity, key.node, now)

        if isinstance(entry, Resolved):
            return None

        state = entry.state
        if now - state.started_at < self._probe_timeout.total_seconds():
            if state.enqueue(entity, key.node):
                self.logger.debug("queued %s as candidate for %r",
                                  entity, key)
            return None

        self.logger.debug("probe of %s for %r timed out, asking %s",
                          state.requestee, key, entity)
        return self._start_probe(key, state, entity, key.node, now)

    def _start_probe(self, key, state, entity, node, now):
        attempt = next(self._attempts)
        state.start(entity, attempt, now)

        task = self.session.loop.create_task(
            self._probe(key, entity, node, attempt)
        )
        self._probe_tasks.add(task)
        task.add_done_callback(self._probe_tasks.discard)
        task.add_done_callback(
            functools.partial(aiodisco.utils.log_task_result, self.logger)
        )
        return task

    async def _probe(self, key, entity, node, attempt):
        probe_key = caps115.Key(key.algo, key.ver, node=node)
        try:
            info = await self.disco_client.query_info(
                entity,
                node=probe_key.probe_node,
                require_fresh=True,
                no_cache=True,
            )
        except Exception as exc:
            self.logger.debug("probe of %s for %r failed: %s",
                              entity, key, exc)
            self.on_failure(key, attempt=attempt)
        else:
            self.on_response(key, info, attempt=attempt)

    def on_response(self, key, info, *, attempt=None):
        """
        Process a disco#info response for `key`.

        :param attempt: The attempt serial the request was issued under, or
            :data:`None` to skip the staleness check.

        If the hash of `info` matches, the key is resolved and
        :meth:`on_caps_resolved` emits; a matching response is accepted even
        if it belongs to a superseded attempt. Otherwise, the response is
        handled like a failure (see :meth:`on_failure`).
        """
        entry = self.lookup(key)
        if entry is None or isinstance(entry, Resolved):
            self.logger.debug("dropping response for %r: not pending", key)
            return

        if not key.verify(info):
            self.logger.debug("hash mismatch for %r", key)
            self.on_failure(key, attempt=attempt)
            return

        self._cache.resolve(key, info)
        self.on_caps_resolved(key, info)

    def on_failure(self, key, *, attempt=None):
        """
        Handle a failed probe for `key`.

        :param attempt: The attempt serial the failed request was issued
            under, or :data:`None` to skip the staleness check.

        The next queued candidate is asked. If there is none, the key is
        forgotten. Failures of superseded attempts are ignored.
        """
        entry = self.lookup(key)
        if entry is None or isinstance(entry, Resolved):
            return

        state = entry.state
        if attempt is not None and attempt != state.attempt:
            self.logger.debug("ignoring failure of superseded attempt for %r",
                              key)
            return

        try:
            entity, node = state.pop_candidate()
        except KeyError:
            self.logger.debug("no candidates left for %r, forgetting it",
                              key)
            self._cache.discard(key)
            return

        self.logger.debug("asking next candidate %s for %r", entity, key)
        self._start_probe(key, state, entity, node, time.monotonic())
