########################################################################
# File name: callbacks.py
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
:mod:`~aiodisco.callbacks` -- Signals
#####################################

Services in :mod:`aiodisco` announce events (such as a capability hash which
was just verified) through signals. A :class:`Signal` is declared on the
class and yields a distinct :class:`AdHocSignal` per instance:

.. code-block:: python

   class Emitter:
       on_event = callbacks.Signal()

   emitter = Emitter()
   emitter.on_event.connect(print)
   emitter.on_event("fnord")  # prints "fnord"

.. autoclass:: Signal

.. autoclass:: AdHocSignal
"""
import collections
import functools
import logging
import weakref


logger = logging.getLogger(__name__)


class AdHocSignal:
    """
    A single emitter to which callables are connected with :meth:`connect`.

    .. automethod:: fire

    .. automethod:: connect

    .. automethod:: disconnect

    .. attribute:: logger

       The :class:`logging.Logger` to which exceptions raised by listeners
       are reported. Defaults to the module logger.

    .. attribute:: STRONG

       The connection mode: a strong reference to the callable is kept and
       it is called in-line. If the callable returns a true value it is
       disconnected.
    """

    def __init__(self):
        super().__init__()
        self._connections = collections.OrderedDict()
        self.logger = logger

    @classmethod
    def STRONG(cls, f):
        if not hasattr(f, "__call__"):
            raise TypeError("must be callable, got {!r}".format(f))
        return functools.partial(cls._strong_wrapper, f)

    @staticmethod
    def _strong_wrapper(f, args, kwargs):
        return not f(*args, **kwargs)

    def connect(self, f, mode=None):
        """
        Connect `f` to the signal using `mode` (default :attr:`STRONG`) and
        return an opaque token for :meth:`disconnect`.
        """
        mode = mode or self.STRONG
        self.logger.debug("connecting %r with mode %r", f, mode)
        token = object()
        self._connections[token] = mode(f)
        return token

    def disconnect(self, token):
        """
        Disconnect the connection identified by `token`. This never raises,
        even if an invalid `token` is passed.
        """
        try:
            del self._connections[token]
        except KeyError:
            pass

    def fire(self, *args, **kwargs):
        """
        Emit the signal, calling all connected objects in the order they were
        connected.

        A listener which raises is disconnected and the exception is logged;
        the other listeners and the emitter are not affected.

        Calling the signal object itself is equivalent.
        """
        for token, wrapper in list(self._connections.items()):
            try:
                keep = wrapper(args, kwargs)
            except Exception:
                self.logger.exception("listener attached to signal raised")
                keep = False
            if not keep:
                self._connections.pop(token, None)

    __call__ = fire


class Signal:
    """
    A descriptor which returns per-instance :class:`AdHocSignal` objects on
    attribute access.

    .. code-block:: python

       class Foo:
           on_event = Signal()

       f = Foo()
       assert isinstance(f.on_event, AdHocSignal)
       assert f.on_event is f.on_event
       assert Foo().on_event is not f.on_event
    """

    def __init__(self, *, doc=None):
        super().__init__()
        self.__doc__ = doc
        self._instances = weakref.WeakKeyDictionary()

    def __get__(self, instance, owner):
        if instance is None:
            return self
        try:
            return self._instances[instance]
        except KeyError:
            new = AdHocSignal()
            self._instances[instance] = new
            return new

    def __set__(self, instance, value):
        raise AttributeError("cannot override Signal attribute")

    def __delete__(self, instance):
        raise AttributeError("cannot override Signal attribute")
