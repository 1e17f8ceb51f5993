########################################################################
# File name: errors.py
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
:mod:`~aiodisco.errors` --- Exception classes
#############################################

Exception classes mapping to XMPP stanza errors
===============================================

Protocol errors returned by a peer in response to a discovery query are
raised to the caller of the query as one of the following exceptions. The
capability resolver treats them as a failed probe instead.

.. autoclass:: ErrorType

.. autoclass:: ErrorCondition

.. autoclass:: StanzaError

.. autoclass:: XMPPError

.. autoclass:: XMPPAuthError

.. autoclass:: XMPPModifyError

.. autoclass:: XMPPCancelError

.. autoclass:: XMPPWaitError

.. autoclass:: XMPPContinueError

.. autofunction:: make_error

.. autoclass:: ErroneousStanza
"""
import enum


class ErrorType(enum.Enum):
    """
    Enumeration for the :rfc:`6120` specified stanza error types.

    The value of each member is the string used on the wire. Use
    :func:`make_error` to obtain the matching exception.
    """

    AUTH = "auth"
    CANCEL = "cancel"
    CONTINUE = "continue"
    MODIFY = "modify"
    WAIT = "wait"


class ErrorCondition(enum.Enum):
    """
    Enumeration to represent a :rfc:`6120` stanza error condition. Please
    see :rfc:`6120`, section 8.3.3, for the semantics of the individual
    conditions.

    The value of each member is the local name of the condition element in
    the ``urn:ietf:params:xml:ns:xmpp-stanzas`` namespace.
    """

    BAD_REQUEST = "bad-request"
    CONFLICT = "conflict"
    FEATURE_NOT_IMPLEMENTED = "feature-not-implemented"
    FORBIDDEN = "forbidden"
    GONE = "gone"
    INTERNAL_SERVER_ERROR = "internal-server-error"
    ITEM_NOT_FOUND = "item-not-found"
    JID_MALFORMED = "jid-malformed"
    NOT_ACCEPTABLE = "not-acceptable"
    NOT_ALLOWED = "not-allowed"
    NOT_AUTHORIZED = "not-authorized"
    POLICY_VIOLATION = "policy-violation"
    RECIPIENT_UNAVAILABLE = "recipient-unavailable"
    REDIRECT = "redirect"
    REGISTRATION_REQUIRED = "registration-required"
    REMOTE_SERVER_NOT_FOUND = "remote-server-not-found"
    REMOTE_SERVER_TIMEOUT = "remote-server-timeout"
    RESOURCE_CONSTRAINT = "resource-constraint"
    SERVICE_UNAVAILABLE = "service-unavailable"
    SUBSCRIPTION_REQUIRED = "subscription-required"
    UNDEFINED_CONDITION = "undefined-condition"
    UNEXPECTED_REQUEST = "unexpected-request"


def format_error_text(condition, text=None):
    error_tag = condition.value
    if text:
        error_tag += " ({!r})".format(text)
    return error_tag


class StanzaError(Exception):
    pass


class XMPPError(StanzaError):
    """
    Exception representing an error defined in the XMPP protocol.

    :param condition: The :rfc:`6120` defined error condition
    :type condition: :class:`ErrorCondition`
    :param text: Optional human-readable text explaining the error
    :type text: :class:`str`

    .. attribute:: condition

       The :class:`ErrorCondition` of the error.

    .. attribute:: text

       Optional human-readable text describing the error further, or
       :data:`None`.
    """

    TYPE = ErrorType.CANCEL

    def __init__(self, condition, text=None):
        condition = ErrorCondition(condition)
        super().__init__(format_error_text(condition, text=text))
        self.condition = condition
        self.text = text


class XMPPWarning(XMPPError, UserWarning):
    TYPE = ErrorType.CONTINUE


class XMPPAuthError(XMPPError, PermissionError):
    TYPE = ErrorType.AUTH


class XMPPModifyError(XMPPError, ValueError):
    TYPE = ErrorType.MODIFY


class XMPPCancelError(XMPPError):
    TYPE = ErrorType.CANCEL


class XMPPWaitError(XMPPError):
    TYPE = ErrorType.WAIT


class XMPPContinueError(XMPPWarning):
    TYPE = ErrorType.CONTINUE


_ERROR_CLASSES = {
    cls.TYPE: cls
    for cls in [
        XMPPAuthError,
        XMPPModifyError,
        XMPPCancelError,
        XMPPWaitError,
        XMPPContinueError,
    ]
}


def make_error(type_, condition, text=None):
    """
    Create the exception for an error of the given type.

    :param type_: The error type.
    :type type_: :class:`ErrorType` or its wire value
    :param condition: The error condition.
    :type condition: :class:`ErrorCondition` or its wire value
    :raises ValueError: if `type_` or `condition` are not valid.
    :rtype: :class:`XMPPError`
    """
    return _ERROR_CLASSES[ErrorType(type_)](condition, text=text)


class ErroneousStanza(StanzaError):
    """
    Raised when a response for a query was received, but could not be
    decoded (due to malformed or unsupported payload).

    .. attribute:: partial_obj

       The raw element which failed to decode.
    """

    def __init__(self, partial_obj):
        super().__init__("erroneous stanza received: {!r}".format(
            partial_obj))
        self.partial_obj = partial_obj
