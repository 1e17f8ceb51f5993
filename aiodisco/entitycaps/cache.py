########################################################################
# File name: cache.py
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
import collections
import logging


logger = logging.getLogger(__name__)


class ProbeState:
    """
    Bookkeeping for a capability key which is being resolved.

    .. attribute:: started_at

       :func:`time.monotonic` timestamp of the currently outstanding request.

    .. attribute:: requestee

       The entity the currently outstanding request was sent to.

    .. attribute:: attempt

       Serial number of the currently outstanding request. Results carrying
       a different serial belong to a superseded request.

    .. autoattribute:: candidates

    .. automethod:: enqueue

    .. automethod:: pop_candidate
    """

    def __init__(self, started_at):
        super().__init__()
        self.started_at = started_at
        self.requestee = None
        self.attempt = None
        self._candidates = collections.OrderedDict()

    @property
    def candidates(self):
        """
        List of the queued fallback entities, in the order they will be
        tried.
        """
        return list(self._candidates)

    def enqueue(self, entity, node):
        """
        Queue `entity` as fallback, to be asked at `node`.

        Return :data:`False` without changing anything if the entity is
        already queued or is the current requestee.
        """
        if entity == self.requestee or entity in self._candidates:
            return False
        self._candidates[entity] = node
        return True

    def pop_candidate(self):
        """
        Remove and return the next ``(entity, node)`` pair.

        :raises KeyError: if no candidates are queued.
        """
        return self._candidates.popitem(last=False)

    def start(self, entity, attempt, started_at):
        self._candidates.pop(entity, None)
        self.requestee = entity
        self.attempt = attempt
        self.started_at = started_at

    def __repr__(self):
        return "<ProbeState requestee={!r} attempt={!r} candidates={!r}>".format(
            self.requestee,
            self.attempt,
            self.candidates,
        )


class Pending:
    """
    Cache entry for a key which is being probed.

    .. attribute:: state

       The :class:`ProbeState`.
    """

    __slots__ = ("state",)

    def __init__(self, state):
        self.state = state

    def __repr__(self):
        return "Pending({!r})".format(self.state)


class Resolved:
    """
    Cache entry for a key whose information has been verified.

    .. attribute:: info

       The :class:`~.disco.structs.InfoQuery` matching the key.
    """

    __slots__ = ("info",)

    def __init__(self, info):
        self.info = info

    def __eq__(self, other):
        if not isinstance(other, Resolved):
            return NotImplemented
        return self.info == other.info

    def __hash__(self):
        return hash(self.info)

    def __repr__(self):
        return "Resolved({!r})".format(self.info)


class CapsCache:
    """
    Map capability keys to :class:`Pending` or :class:`Resolved` entries.

    A :class:`CapsCache` can be shared among several
    :class:`~.EntityCapsService` instances; verified information then only
    needs to be obtained once per process.

    Resolved entries are final: they can neither be replaced nor discarded
    individually; only :meth:`clear` removes them.

    .. automethod:: lookup

    .. automethod:: create_pending

    .. automethod:: resolve

    .. automethod:: discard

    .. automethod:: drop_pending

    .. automethod:: clear
    """

    def __init__(self):
        super().__init__()
        self._entries = {}

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)

    def lookup(self, key):
        """
        Return the entry for `key`.

        :raises KeyError: if there is no entry for `key`.
        """
        return self._entries[key]

    def create_pending(self, key, state):
        """
        Create a :class:`Pending` entry for `key` and return it.

        :raises ValueError: if an entry already exists.
        """
        if key in self._entries:
            raise ValueError("entry for {!r} exists already".format(key))
        entry = Pending(state)
        self._entries[key] = entry
        return entry

    def resolve(self, key, info):
        """
        Replace the entry for `key` with a :class:`Resolved` entry for `info`.

        The caller is responsible for verifying `info` against `key`.

        :raises ValueError: if `key` is resolved already.
        """
        if isinstance(self._entries.get(key), Resolved):
            raise ValueError("{!r} is resolved already".format(key))
        logger.debug("resolved %r", key)
        self._entries[key] = Resolved(info)

    def discard(self, key):
        """
        Remove the :class:`Pending` entry for `key`, if any.

        :raises ValueError: if `key` is resolved.
        """
        entry = self._entries.get(key)
        if isinstance(entry, Resolved):
            raise ValueError("cannot discard resolved {!r}".format(key))
        self._entries.pop(key, None)

    def drop_pending(self):
        """
        Remove all :class:`Pending` entries.
        """
        for key in [key for key, entry in self._entries.items()
                    if isinstance(entry, Pending)]:
            del self._entries[key]

    def clear(self):
        """
        Remove all entries, including resolved ones.
        """
        self._entries.clear()


class BindingRegistry:
    """
    Track which capability key each resource of an entity advertises.

    Only the latest key per resource is kept.

    .. automethod:: bind

    .. automethod:: get

    .. automethod:: unbind

    .. automethod:: resources
    """

    def __init__(self):
        super().__init__()
        self._bindings = {}

    def bind(self, entity, resource, key):
        self._bindings.setdefault(entity, {})[resource] = key

    def get(self, entity, resource):
        """
        :raises KeyError: if no key is bound for the resource.
        """
        return self._bindings[entity][resource]

    def unbind(self, entity, resource):
        """
        Forget the binding of `resource`. No-op if there is none.
        """
        try:
            resources = self._bindings[entity]
        except KeyError:
            return
        resources.pop(resource, None)
        if not resources:
            del self._bindings[entity]

    def resources(self, entity):
        """
        Return a :class:`dict` mapping the bound resources of `entity` to
        their keys.
        """
        return dict(self._bindings.get(entity, {}))

    def clear(self):
        self._bindings.clear()
