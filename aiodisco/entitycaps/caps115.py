########################################################################
# File name: caps115.py
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
Verification string and capability keys for :xep:`115`.

All orderings are by code point, which is what :class:`str` comparison does.
No XML escaping is applied to any component.
"""
import base64
import collections

import aiodisco.hashes

from aiodisco.utils import namespaces


def _identity_sort_key(identity):
    return (
        identity.category,
        identity.type_,
        identity.lang or "",
        identity.name or "",
    )


def build_identities_string(identities):
    return "".join(
        "{}/{}/{}/{}<".format(
            identity.category,
            identity.type_,
            identity.lang or "",
            identity.name or "",
        )
        for identity in sorted(identities, key=_identity_sort_key)
    )


def build_features_string(features):
    return "".join(
        "{}<".format(feature)
        for feature in sorted(features)
    )


def _build_form_string(form):
    parts = [form.form_type]
    for var, values in sorted(form.fields.items(), key=lambda x: x[0]):
        parts.append(var)
        parts.extend(sorted(values))
    parts.append("")
    return "<".join(parts)


def build_forms_string(forms):
    forms_list = sorted(
        (form.form_type, _build_form_string(form))
        for form in forms
        if form.namespace == namespaces.xep0004_data and form.form_type
    )
    return "".join(form_string for _, form_string in forms_list)


def build_verification_string(query):
    """
    Return the verification string for a disco#info response as
    :class:`bytes`.

    :param query: The disco#info response.
    :type query: :class:`~.disco.structs.InfoQuery`

    The result depends only on the contents of `query`, not on the order of
    identities, features, forms, fields or values in it.
    """
    return "".join([
        build_identities_string(query.identities),
        build_features_string(query.features),
        build_forms_string(query.exts),
    ]).encode("utf-8")


def hash_query(query, algo):
    """
    Hash the verification string of `query` with the hash function named by
    `algo` and return the Base64 encoded digest.

    :raises NotImplementedError: if `algo` is not supported
    :raises ValueError: if `algo` must not be used

    See :func:`aiodisco.hashes.hash_from_algo` for the exceptions.
    """
    hashimpl = aiodisco.hashes.hash_from_algo(algo)
    hashimpl.update(build_verification_string(query))
    return base64.b64encode(hashimpl.digest()).decode("ascii")


_Key = collections.namedtuple("Key", ["algo", "ver"])


class Key(_Key):
    """
    A claimed capability signature.

    .. attribute:: algo

       The hash algorithm name, e.g. ``"sha-1"``.

    .. attribute:: ver

       The Base64 encoded verification value.

    .. attribute:: node

       The node URI of the advertising software, or :data:`None`. This is
       used only to address the probe request and does not take part in
       comparisons: two keys are equal if :attr:`algo` and :attr:`ver` are.
       It is kept by :meth:`_replace`, :meth:`_make`, copying and pickling.
    """

    def __new__(cls, algo, ver, node=None):
        self = super().__new__(cls, algo, ver)
        self.node = node
        return self

    def __getnewargs__(self):
        return (self.algo, self.ver, self.node)

    @classmethod
    def _make(cls, iterable):
        return cls(*iterable)

    def _replace(self, **kwargs):
        fields = {"algo": self.algo, "ver": self.ver, "node": self.node}
        unknown = set(kwargs) - set(fields)
        if unknown:
            raise ValueError(
                "got unexpected field names: {!r}".format(sorted(unknown))
            )
        fields.update(kwargs)
        return type(self)(**fields)

    def __repr__(self):
        return "Key(algo={!r}, ver={!r}, node={!r})".format(
            self.algo, self.ver, self.node,
        )

    @property
    def probe_node(self):
        """
        The node to query to obtain the information for this key.
        """
        return "{}#{}".format(self.node or "", self.ver)

    def verify(self, query_response):
        """
        Return whether `query_response` hashes to :attr:`ver`.

        Unsupported algorithms never verify.
        """
        if not aiodisco.hashes.is_algo_supported(self.algo):
            return False
        return hash_query(query_response, self.algo) == self.ver


def calculate_key(node, query, algo="sha-1"):
    """
    Compute the :class:`Key` under which `query` would be advertised at
    `node`.
    """
    return Key(algo, hash_query(query, algo), node=node)


_Advertisement = collections.namedtuple(
    "Advertisement",
    ["algo", "node", "ver"],
)


class Advertisement(_Advertisement):
    """
    A hashed capability advertisement as found in a presence broadcast.
    """

    __slots__ = ()

    @property
    def key(self):
        return Key(self.algo, self.ver, node=self.node)

    @classmethod
    def from_key(cls, key):
        return cls(key.algo, key.node, key.ver)

    @classmethod
    def from_info(cls, node, info, algo="sha-1"):
        """
        Create the advertisement for one's own disco#info `info` served at
        `node`.
        """
        return cls.from_key(calculate_key(node, info, algo=algo))


LegacyAdvertisement = collections.namedtuple(
    "LegacyAdvertisement",
    ["node", "ver", "ext"],
)
LegacyAdvertisement.__doc__ = """
A pre-1.4 capability advertisement without ``hash`` attribute. These are not
processed.
"""
