########################################################################
# File name: test_session.py
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
import logging
import unittest
import unittest.mock

import aiodisco
import aiodisco.service as service
import aiodisco.session as session_mod

from aiodisco.testutils import (
    TransportMock,
    run_coroutine,
    setup_event_loop,
    teardown_event_loop,
)


class TestDiscoverySession(unittest.TestCase):
    def setUp(self):
        self.loop = setup_event_loop()
        self.transport = TransportMock()
        self.session = session_mod.DiscoverySession(
            self.transport,
            loop=self.loop,
        )

    def tearDown(self):
        run_coroutine(self.session.close())
        teardown_event_loop(self.loop)

    def test_init(self):
        self.assertIs(self.session.transport, self.transport)
        self.assertIs(self.session.loop, self.loop)
        self.assertTrue(self.session.running)
        self.assertEqual(self.session.logger, logging.getLogger("aiodisco"))

    def test_explicit_loop_and_logger(self):
        logger = logging.getLogger("test")
        s = session_mod.DiscoverySession(
            self.transport,
            logger=logger,
            loop=unittest.mock.sentinel.loop,
        )

        self.assertIs(s.loop, unittest.mock.sentinel.loop)
        self.assertIs(s.logger, logger)

    def test_defaults_to_running_loop(self):
        async def create():
            return session_mod.DiscoverySession(self.transport)

        s = run_coroutine(create())

        self.assertIs(s.loop, self.loop)

    def test_requires_loop_outside_running_loop(self):
        with self.assertRaises(RuntimeError):
            session_mod.DiscoverySession(self.transport)

    def test_summon_is_idempotent(self):
        disco1 = self.session.summon(aiodisco.DiscoClient)
        disco2 = self.session.summon(aiodisco.DiscoClient)

        self.assertIs(disco1, disco2)
        self.assertIsInstance(disco1, aiodisco.DiscoClient)
        self.assertIs(disco1.session, self.session)

    def test_summon_pulls_in_dependencies(self):
        caps = self.session.summon(aiodisco.EntityCapsService)

        disco = self.session.summon(aiodisco.DiscoClient)
        self.assertIs(caps.dependencies[aiodisco.DiscoClient], disco)
        self.assertIs(caps.disco_client, disco)

    def test_services_get_derived_loggers(self):
        caps = self.session.summon(aiodisco.EntityCapsService)
        disco = self.session.summon(aiodisco.DiscoClient)

        self.assertEqual(caps.logger.name,
                         "aiodisco.entitycaps.EntityCapsService")
        self.assertEqual(disco.logger.name, "aiodisco.disco.DiscoClient")

    def test_dependency_loop(self):
        class Foo(service.Service):
            pass

        class Bar(service.Service):
            ORDER_AFTER = {Foo}

        Foo.ORDER_AFTER = {Bar}

        with self.assertRaisesRegex(ValueError, "dependency loop"):
            self.session.summon(Foo)

    def test_close_shuts_down_in_reverse_order(self):
        order = []

        class Foo(service.Service):
            async def _shutdown(self):
                order.append("foo")
                await super()._shutdown()

        class Bar(service.Service):
            ORDER_AFTER = {Foo}

            async def _shutdown(self):
                order.append("bar")
                await super()._shutdown()

        bar = self.session.summon(Bar)
        foo = self.session.summon(Foo)

        run_coroutine(self.session.close())

        self.assertSequenceEqual(order, ["bar", "foo"])
        self.assertIsNone(bar.session)
        self.assertIsNone(foo.session)
        self.assertFalse(self.session.running)
        self.assertIsNone(self.session.transport)

    def test_close_is_idempotent(self):
        self.session.summon(aiodisco.DiscoClient)

        run_coroutine(self.session.close())
        run_coroutine(self.session.close())

        self.assertFalse(self.session.running)

    def test_summon_after_close_raises(self):
        run_coroutine(self.session.close())

        with self.assertRaises(ConnectionError):
            self.session.summon(aiodisco.DiscoClient)

    def test_sessions_are_isolated(self):
        other = session_mod.DiscoverySession(TransportMock(), loop=self.loop)

        disco1 = self.session.summon(aiodisco.DiscoClient)
        disco2 = other.summon(aiodisco.DiscoClient)
        disco1.set_info_cache("a@example.com", None,
                              unittest.mock.sentinel.info)

        self.assertIsNot(disco1, disco2)
        self.assertEqual(disco2._info_cache, {})

        run_coroutine(other.close())
