########################################################################
# File name: hashes.py
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
:mod:`~aiodisco.hashes` --- Hash algorithm registry
###################################################

Capability advertisements name their hash function using the identifiers
from the IANA Hash Function Textual Names registry (``sha-1``, ``sha-256``,
...). This module maps these names to :mod:`hashlib` implementations.

.. autofunction:: is_algo_supported

.. autofunction:: hash_from_algo

.. data:: SUPPORTED_ALGOS

    The set of `algo` values for which :func:`hash_from_algo` returns a hash
    on this build of Python.
"""
import hashlib


_HASH_ALGO_MAPPING = [
    ("md2", (False, ("md2", (), {}))),
    ("md4", (False, ("md4", (), {}))),
    ("md5", (False, ("md5", (), {}))),
    ("sha-1", (True, ("sha1", (), {}))),
    ("sha-224", (True, ("sha224", (), {}))),
    ("sha-256", (True, ("sha256", (), {}))),
    ("sha-384", (True, ("sha384", (), {}))),
    ("sha-512", (True, ("sha512", (), {}))),
    ("sha3-256", (True, ("sha3_256", (), {}))),
    ("sha3-512", (True, ("sha3_512", (), {}))),
    ("blake2b-256", (True, ("blake2b", (), {"digest_size": 32}))),
    ("blake2b-512", (True, ("blake2b", (), {"digest_size": 64}))),
]


_HASH_ALGO_MAP = dict(_HASH_ALGO_MAPPING)


def is_algo_supported(algo):
    """
    Return whether `algo` names a hash function which is allowed and
    available.

    Unknown names, forbidden functions (``md5`` and friends) and functions
    missing from :mod:`hashlib` all yield :data:`False`. This never raises.
    """
    try:
        enabled, (fun_name, _, _) = _HASH_ALGO_MAP[algo]
    except (KeyError, TypeError):
        return False

    return enabled and hasattr(hashlib, fun_name)


SUPPORTED_ALGOS = frozenset(
    algo for algo in _HASH_ALGO_MAP
    if is_algo_supported(algo)
)


def hash_from_algo(algo):
    """
    Return a :mod:`hashlib` hash given the textual `algo` name.

    :param algo: The algorithm identifier, e.g. ``"sha-1"``.
    :type algo: :class:`str`
    :raises NotImplementedError: if the hash algorithm is not known or not
        supported by :mod:`hashlib`.
    :raises ValueError: if the hash algorithm MUST NOT be used.
    :return: A hash object from :mod:`hashlib` or compatible.
    """

    try:
        enabled, (fun_name, fun_args, fun_kwargs) = _HASH_ALGO_MAP[algo]
    except KeyError:
        raise NotImplementedError(
            "hash algorithm {!r} unknown".format(algo)
        ) from None

    if not enabled:
        raise ValueError(
            "support of {} in XMPP is forbidden".format(algo)
        )

    try:
        fun = getattr(hashlib, fun_name)
    except AttributeError as exc:
        raise NotImplementedError(
            "{} not supported by hashlib".format(algo)
        ) from exc

    return fun(*fun_args, **fun_kwargs)
