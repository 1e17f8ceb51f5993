########################################################################
# File name: utils.py
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
:mod:`~aiodisco.utils` --- Internal utilities
#############################################

.. autodata:: namespaces

.. autofunction:: split_entity

.. autofunction:: join_entity

.. autofunction:: log_task_result
"""
import asyncio

import lxml.etree as etree

__all__ = [
    "etree",
    "namespaces",
]


class Namespaces:
    """
    Manage short-hands for XML namespaces.

    Instances of this class may be used to assign mnemonic short-hands
    to XML namespaces, for example:

    .. code-block:: python

        namespaces = Namespaces()
        namespaces.foo = "urn:example:foo"

    Each namespace can only be bound to one short-hand, a short-hand cannot
    be rebound to a different namespace and short-hands cannot be deleted.
    Violations raise :class:`ValueError` (or :class:`AttributeError` for
    deletion).

    The defined short-hands MUST NOT start with an underscore.
    """

    def __init__(self):
        self._all_namespaces = {}

    def __setattr__(self, attr, value):
        if not attr.startswith("_"):
            try:
                existing_attr = self._all_namespaces[value]
                if attr != existing_attr:
                    raise ValueError(
                        "namespace {} already defined as {}".format(
                            value,
                            existing_attr,
                        )
                    )
            except KeyError:
                try:
                    if getattr(self, attr) != value:
                        raise ValueError("inconsistent namespace redefinition")
                except AttributeError:
                    pass
            self._all_namespaces[value] = attr
        super().__setattr__(attr, value)

    def __delattr__(self, attr):
        if not attr.startswith("_"):
            raise AttributeError("deleting short-hands is prohibited")
        super().__delattr__(attr)


namespaces = Namespaces()
namespaces.client = "jabber:client"
namespaces.stanzas = "urn:ietf:params:xml:ns:xmpp-stanzas"
namespaces.xml = "http://www.w3.org/XML/1998/namespace"
namespaces.xep0004_data = "jabber:x:data"
namespaces.xep0030_info = "http://jabber.org/protocol/disco#info"
namespaces.xep0030_items = "http://jabber.org/protocol/disco#items"
namespaces.xep0115_caps = "http://jabber.org/protocol/caps"


def split_entity(entity):
    """
    Split an entity address into its bare part and its resource.

    :param entity: The address, optionally with a ``/resource`` suffix.
    :type entity: :class:`str`
    :return: The bare address and the resource (or :data:`None`).
    :rtype: pair of :class:`str` and :class:`str` or :data:`None`

    Only the first slash separates the resource, so resources may contain
    slashes themselves.
    """
    bare, sep, resource = entity.partition("/")
    if not sep:
        return bare, None
    return bare, resource


def join_entity(bare, resource):
    """
    Inverse of :func:`split_entity`.
    """
    if resource is None:
        return bare
    return "{}/{}".format(bare, resource)


def log_task_result(logger, task):
    """
    Done-callback for fire-and-forget tasks.

    Cancellation is logged at debug level, any other exception as warning
    with traceback. Non-:data:`None` results are logged at info level since
    nobody will ever look at them.
    """
    try:
        result = task.result()
    except asyncio.CancelledError:
        logger.debug("task was cancelled: %r", task)
    except Exception:
        logger.warning("task failed: %r", task, exc_info=True)
    else:
        if result is not None:
            logger.info("value returned by task was ignored: %r", result)
