########################################################################
# File name: structs.py
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
import enum
import types

from aiodisco.utils import namespaces


class QueryType(enum.Enum):
    """
    The kind of discovery query.

    .. attribute:: INFO

       disco#info, answered with an :class:`InfoQuery`.

    .. attribute:: ITEMS

       disco#items, answered with an :class:`ItemsQuery`.
    """

    INFO = "info"
    ITEMS = "items"


_Identity = collections.namedtuple(
    "Identity",
    ["category", "type_", "name", "lang"],
    defaults=(None, None),
)


class Identity(_Identity):
    """
    An identity declaration.

    .. attribute:: category

       The category of the identity. The value is not validated against the
       values in the `registry
       <https://xmpp.org/registrar/disco-categories.html>`_.

    .. attribute:: type_

       The type of the identity, likewise not validated.

    .. attribute:: name

       The optional human-readable name of the identity, or :data:`None`.

    .. attribute:: lang

       The language code of the :attr:`name`, or :data:`None`.
    """

    __slots__ = ()


class Form:
    """
    An extended data form (:xep:`4`) attached to a disco#info response.

    :param form_type: The value of the ``FORM_TYPE`` field, or :data:`None`.
    :param fields: Mapping of field names to iterables of values. A
        ``FORM_TYPE`` entry in this mapping is ignored.
    :param namespace: The namespace the form was declared in.

    Only the parts relevant to capability hashing are kept. The object is
    immutable and :attr:`fields` is a read-only mapping from field name to a
    tuple of values, in document order.
    """

    __slots__ = ("_namespace", "_form_type", "_fields")

    def __init__(self, form_type, fields={}, *,
                 namespace=namespaces.xep0004_data):
        super().__init__()
        self._namespace = namespace
        self._form_type = form_type
        self._fields = types.MappingProxyType({
            var: tuple(values)
            for var, values in dict(fields).items()
            if var != "FORM_TYPE"
        })

    @property
    def namespace(self):
        return self._namespace

    @property
    def form_type(self):
        return self._form_type

    @property
    def fields(self):
        return self._fields

    def __eq__(self, other):
        try:
            return (self._namespace == other.namespace and
                    self._form_type == other.form_type and
                    dict(self._fields) == dict(other.fields))
        except AttributeError:
            return NotImplemented

    def __hash__(self):
        return hash((self._namespace, self._form_type,
                     frozenset(self._fields.items())))

    def __repr__(self):
        return "<{}.{} form_type={!r} fields={!r}>".format(
            type(self).__module__,
            type(self).__qualname__,
            self._form_type,
            dict(self._fields),
        )


class InfoQuery:
    """
    The disclosed identities and features of an entity (or a node of it).

    :param identities: Iterable of :class:`Identity` objects.
    :param features: Iterable of feature namespace strings.
    :param exts: Iterable of :class:`Form` objects.
    :param node: The node the information belongs to, as reported by the
        responding entity.

    Instances are immutable; the sequences keep the order in which they were
    passed (usually document order).

    .. autoattribute:: identities

    .. autoattribute:: features

    .. autoattribute:: exts

    .. autoattribute:: node

    .. automethod:: has_feature
    """

    __slots__ = ("_identities", "_features", "_exts", "_node")

    def __init__(self, identities=(), features=(), *, exts=(), node=None):
        super().__init__()
        self._identities = tuple(Identity(*identity)
                                 for identity in identities)
        self._features = tuple(features)
        self._exts = tuple(exts)
        self._node = node

    @property
    def identities(self):
        """
        Tuple of :class:`Identity` objects.
        """
        return self._identities

    @property
    def features(self):
        """
        Tuple of feature strings.
        """
        return self._features

    @property
    def exts(self):
        """
        Tuple of :class:`Form` objects.
        """
        return self._exts

    @property
    def node(self):
        """
        The node string, or :data:`None` for the entity itself.
        """
        return self._node

    def has_feature(self, var):
        return var in self._features

    def __eq__(self, other):
        try:
            return (self._identities == other.identities and
                    self._features == other.features and
                    self._exts == other.exts and
                    self._node == other.node)
        except AttributeError:
            return NotImplemented

    def __hash__(self):
        return hash((self._identities, self._features, self._exts,
                     self._node))

    def __repr__(self):
        return "<{}.{} node={!r} identities={!r} features={!r}>".format(
            type(self).__module__,
            type(self).__qualname__,
            self._node,
            self._identities,
            self._features,
        )


_Item = collections.namedtuple(
    "Item",
    ["jid", "node", "name"],
    defaults=(None, None, None),
)


class Item(_Item):
    """
    An item of a disco#items response.

    .. attribute:: jid

       The address of the item, or :data:`None`.

    .. attribute:: node

       The node of the item at :attr:`jid`, or :data:`None`.

    .. attribute:: name

       The human-readable name of the item, or :data:`None`.
    """

    __slots__ = ()


class ItemsQuery:
    """
    The items of an entity (or a node of it).

    :param items: Iterable of :class:`Item` objects.
    :param node: The node the items belong to, as reported by the responding
        entity.
    """

    __slots__ = ("_items", "_node")

    def __init__(self, items=(), *, node=None):
        super().__init__()
        self._items = tuple(Item(*item) for item in items)
        self._node = node

    @property
    def items(self):
        return self._items

    @property
    def node(self):
        return self._node

    def __eq__(self, other):
        try:
            return (self._items == other.items and
                    self._node == other.node)
        except AttributeError:
            return NotImplemented

    def __hash__(self):
        return hash((self._items, self._node))

    def __repr__(self):
        return "<{}.{} node={!r} items={!r}>".format(
            type(self).__module__,
            type(self).__qualname__,
            self._node,
            self._items,
        )
