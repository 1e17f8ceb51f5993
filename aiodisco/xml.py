########################################################################
# File name: xml.py
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
:mod:`~aiodisco.xml` --- Conversion from and to XML
###################################################

The core of :mod:`aiodisco` works on the plain structures from
:mod:`aiodisco.disco.structs`. This module converts them from and to
:mod:`lxml.etree` elements, for use by transports which deal in raw stanzas.

Requests
========

.. autofunction:: make_info_request

.. autofunction:: make_items_request

.. autofunction:: make_iq

Responses
=========

.. autofunction:: info_from_xml

.. autofunction:: info_to_xml

.. autofunction:: items_from_xml

.. autofunction:: items_to_xml

.. autofunction:: error_from_xml

Capability advertisements
=========================

.. autofunction:: caps_from_presence

.. autofunction:: caps_to_xml
"""
import aiodisco.errors as errors

from aiodisco.disco import structs as disco_structs
from aiodisco.entitycaps import caps115
from aiodisco.utils import etree, namespaces


def _tag(namespace, localname):
    if namespace is None:
        return localname
    return "{{{}}}{}".format(namespace, localname)


_XML_LANG = _tag(namespaces.xml, "lang")

_INFO_QUERY = _tag(namespaces.xep0030_info, "query")
_INFO_IDENTITY = _tag(namespaces.xep0030_info, "identity")
_INFO_FEATURE = _tag(namespaces.xep0030_info, "feature")
_ITEMS_QUERY = _tag(namespaces.xep0030_items, "query")
_ITEMS_ITEM = _tag(namespaces.xep0030_items, "item")
_DATA_FIELD = _tag(namespaces.xep0004_data, "field")
_DATA_VALUE = _tag(namespaces.xep0004_data, "value")
_CAPS = _tag(namespaces.xep0115_caps, "c")
_IQ = _tag(namespaces.client, "iq")
_ERROR = _tag(namespaces.client, "error")
_ERROR_TEXT = _tag(namespaces.stanzas, "text")


def _set_optional(el, attr, value):
    if value is not None:
        el.set(attr, value)


def make_iq(type_, to, id_, payload=None):
    """
    Create an ``<iq/>`` element.
    """
    iq = etree.Element(_IQ, nsmap={None: namespaces.client})
    iq.set("type", type_)
    iq.set("to", to)
    iq.set("id", id_)
    if payload is not None:
        iq.append(payload)
    return iq


def make_info_request(node=None):
    """
    Create an empty disco#info ``<query/>`` for `node`.
    """
    el = etree.Element(_INFO_QUERY, nsmap={None: namespaces.xep0030_info})
    _set_optional(el, "node", node)
    return el


def make_items_request(node=None):
    """
    Create an empty disco#items ``<query/>`` for `node`.
    """
    el = etree.Element(_ITEMS_QUERY, nsmap={None: namespaces.xep0030_items})
    _set_optional(el, "node", node)
    return el


def _form_from_xml(el):
    namespace = etree.QName(el).namespace
    form_type = None
    fields = {}
    for field in el.iterchildren(_tag(namespace, "field")):
        var = field.get("var")
        values = [
            value.text or ""
            for value in field.iterchildren(_tag(namespace, "value"))
        ]
        if var == "FORM_TYPE":
            if values:
                form_type = values[0]
            continue
        if var is None:
            continue
        fields[var] = values
    return disco_structs.Form(form_type, fields, namespace=namespace)


def info_from_xml(el):
    """
    Convert a disco#info ``<query/>`` element into an
    :class:`~.disco.structs.InfoQuery`.

    Every child element with local name ``x`` is parsed as a form, whatever
    its namespace; forms in foreign namespaces are skipped when hashing.

    :raises ValueError: if an identity lacks its category or type.
    """
    if el.tag != _INFO_QUERY:
        raise ValueError("not a disco#info query: {!r}".format(el.tag))

    identities = []
    for child in el.iterchildren(_INFO_IDENTITY):
        category = child.get("category")
        type_ = child.get("type")
        if category is None or type_ is None:
            raise ValueError("identity without category or type")
        identities.append(disco_structs.Identity(
            category,
            type_,
            child.get("name"),
            child.get(_XML_LANG),
        ))

    features = [
        child.get("var")
        for child in el.iterchildren(_INFO_FEATURE)
        if child.get("var") is not None
    ]

    exts = [
        _form_from_xml(child)
        for child in el.iterchildren(etree.Element)
        if etree.QName(child).localname == "x"
    ]

    return disco_structs.InfoQuery(
        identities,
        features,
        exts=exts,
        node=el.get("node"),
    )


def info_to_xml(info):
    """
    Convert an :class:`~.disco.structs.InfoQuery` into a disco#info
    ``<query/>`` element.
    """
    el = make_info_request(info.node)
    for identity in info.identities:
        child = etree.SubElement(el, _INFO_IDENTITY)
        child.set("category", identity.category)
        child.set("type", identity.type_)
        _set_optional(child, "name", identity.name)
        _set_optional(child, _XML_LANG, identity.lang)

    for feature in info.features:
        etree.SubElement(el, _INFO_FEATURE).set("var", feature)

    for form in info.exts:
        x = etree.SubElement(
            el,
            _tag(form.namespace, "x"),
            nsmap={None: form.namespace} if form.namespace else None,
        )
        x.set("type", "result")
        if form.form_type is not None:
            field = etree.SubElement(x, _tag(form.namespace, "field"))
            field.set("var", "FORM_TYPE")
            field.set("type", "hidden")
            etree.SubElement(
                field, _tag(form.namespace, "value")
            ).text = form.form_type
        for var, values in form.fields.items():
            field = etree.SubElement(x, _tag(form.namespace, "field"))
            field.set("var", var)
            for value in values:
                etree.SubElement(
                    field, _tag(form.namespace, "value")
                ).text = value

    return el


def items_from_xml(el):
    """
    Convert a disco#items ``<query/>`` element into an
    :class:`~.disco.structs.ItemsQuery`.
    """
    if el.tag != _ITEMS_QUERY:
        raise ValueError("not a disco#items query: {!r}".format(el.tag))

    return disco_structs.ItemsQuery(
        [
            disco_structs.Item(
                child.get("jid"),
                child.get("node"),
                child.get("name"),
            )
            for child in el.iterchildren(_ITEMS_ITEM)
        ],
        node=el.get("node"),
    )


def items_to_xml(items):
    el = make_items_request(items.node)
    for item in items.items:
        child = etree.SubElement(el, _ITEMS_ITEM)
        _set_optional(child, "jid", item.jid)
        _set_optional(child, "node", item.node)
        _set_optional(child, "name", item.name)
    return el


def error_from_xml(iq):
    """
    Return the :class:`~.errors.XMPPError` for an ``<iq type="error"/>``.

    Missing or unknown types and conditions are mapped to ``cancel`` and
    ``undefined-condition`` respectively.
    """
    error = iq.find(_ERROR)
    if error is None:
        return errors.make_error(
            errors.ErrorType.CANCEL,
            errors.ErrorCondition.UNDEFINED_CONDITION,
        )

    try:
        type_ = errors.ErrorType(error.get("type"))
    except ValueError:
        type_ = errors.ErrorType.CANCEL

    condition = errors.ErrorCondition.UNDEFINED_CONDITION
    text = None
    for child in error.iterchildren(etree.Element):
        qname = etree.QName(child)
        if qname.namespace != namespaces.stanzas:
            continue
        if child.tag == _ERROR_TEXT:
            text = child.text
            continue
        try:
            condition = errors.ErrorCondition(qname.localname)
        except ValueError:
            pass

    return errors.make_error(type_, condition, text=text)


def caps_from_presence(presence):
    """
    Extract the capability advertisement from a ``<presence/>`` element.

    :return: :data:`None` if the presence carries no ``<c/>`` element, a
        :class:`~.caps115.LegacyAdvertisement` if the ``hash`` attribute is
        missing and a :class:`~.caps115.Advertisement` otherwise.
    """
    c = presence.find(_CAPS)
    if c is None:
        return None

    node = c.get("node")
    ver = c.get("ver")
    algo = c.get("hash")
    if algo is None:
        return caps115.LegacyAdvertisement(node, ver, c.get("ext"))
    return caps115.Advertisement(algo, node, ver)


def caps_to_xml(advertisement):
    """
    Create the ``<c/>`` element for a :class:`~.caps115.Advertisement`.
    """
    el = etree.Element(_CAPS, nsmap={None: namespaces.xep0115_caps})
    el.set("hash", advertisement.algo)
    el.set("node", advertisement.node)
    el.set("ver", advertisement.ver)
    return el
