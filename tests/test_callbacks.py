########################################################################
# File name: test_callbacks.py
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
import unittest
import unittest.mock

from aiodisco.callbacks import AdHocSignal, Signal


class TestAdHocSignal(unittest.TestCase):
    def setUp(self):
        self.signal = AdHocSignal()

    def test_STRONG_rejects_non_callable(self):
        with self.assertRaises(TypeError):
            self.signal.connect(object())

    def test_connect_and_fire(self):
        fun = unittest.mock.Mock()
        fun.return_value = None

        self.signal.connect(fun)
        self.signal.fire(1, foo="bar")
        self.signal(2)

        self.assertSequenceEqual(
            fun.mock_calls,
            [
                unittest.mock.call(1, foo="bar"),
                unittest.mock.call(2),
            ]
        )

    def test_true_return_value_disconnects(self):
        fun = unittest.mock.Mock()
        fun.return_value = True

        self.signal.connect(fun)
        self.signal()
        self.signal()

        fun.assert_called_once_with()

    def test_disconnect(self):
        fun = unittest.mock.Mock()
        fun.return_value = None

        token = self.signal.connect(fun)
        self.signal.disconnect(token)
        self.signal.disconnect(token)
        self.signal()

        fun.assert_not_called()

    def test_raising_listener_is_disconnected_and_others_run(self):
        bad = unittest.mock.Mock()
        bad.side_effect = RuntimeError()
        good = unittest.mock.Mock()
        good.return_value = None

        self.signal.connect(bad)
        self.signal.connect(good)

        with unittest.mock.patch.object(self.signal, "logger") as logger:
            self.signal("x")
            self.signal("y")

        bad.assert_called_once_with("x")
        self.assertEqual(good.call_count, 2)
        logger.exception.assert_called_once_with(
            "listener attached to signal raised"
        )

    def test_explicit_STRONG_mode(self):
        fun = unittest.mock.Mock()
        fun.return_value = None

        self.signal.connect(fun, AdHocSignal.STRONG)
        self.signal("x")
        self.signal("y")

        self.assertEqual(fun.call_count, 2)


class TestSignal(unittest.TestCase):
    def setUp(self):
        class Foo:
            on_event = Signal()

        self.Foo = Foo

    def test_class_access_returns_descriptor(self):
        self.assertIsInstance(self.Foo.on_event, Signal)

    def test_per_instance_signals(self):
        a = self.Foo()
        b = self.Foo()

        self.assertIsInstance(a.on_event, AdHocSignal)
        self.assertIs(a.on_event, a.on_event)
        self.assertIsNot(a.on_event, b.on_event)

    def test_cannot_overwrite(self):
        a = self.Foo()

        with self.assertRaises(AttributeError):
            a.on_event = None

        with self.assertRaises(AttributeError):
            del a.on_event
