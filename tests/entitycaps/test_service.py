########################################################################
# File name: test_service.py
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

from datetime import timedelta

import aiodisco.disco as disco
import aiodisco.entitycaps.service as caps_service
import aiodisco.errors as errors
import aiodisco.service as service

from aiodisco.disco.structs import Identity, InfoQuery, QueryType
from aiodisco.entitycaps import caps115
from aiodisco.entitycaps.cache import CapsCache, Pending, Resolved
from aiodisco.session import DiscoverySession
from aiodisco.testutils import (
    TransportMock,
    make_listener,
    run_coroutine,
    settle,
    setup_event_loop,
    teardown_event_loop,
)


TEST_NODE = "http://code.google.com/p/exodus"
TEST_VER = "QgayPKawpkPSDYmwT/WM94uAlu0="
TEST_PROBE_NODE = TEST_NODE + "#" + TEST_VER

TEST_INFO = InfoQuery(
    [Identity("client", "pc", "Exodus 0.9.1")],
    [
        "http://jabber.org/protocol/caps",
        "http://jabber.org/protocol/disco#info",
        "http://jabber.org/protocol/disco#items",
        "http://jabber.org/protocol/muc",
    ],
)
BOGUS_INFO = InfoQuery(
    [Identity("client", "pc", "Exodus 0.9.1")],
    ["http://jabber.org/protocol/caps"],
)

TEST_KEY = caps115.Key("sha-1", TEST_VER, node=TEST_NODE)
TEST_ADV = caps115.Advertisement("sha-1", TEST_NODE, TEST_VER)

ROMEO = "romeo@montague.example"
JULIET = "juliet@capulet.example"
NURSE = "nurse@capulet.example"


class TestEntityCapsService(unittest.TestCase):
    def setUp(self):
        self.loop = setup_event_loop()
        self.transport = TransportMock()
        self.session = DiscoverySession(self.transport, loop=self.loop)
        self.disco_client = self.session.summon(disco.DiscoClient)
        self.s = self.session.summon(caps_service.EntityCapsService)
        self.listener = make_listener(self.s)

    def tearDown(self):
        run_coroutine(self.session.close())
        teardown_event_loop(self.loop)

    def _settle(self):
        run_coroutine(settle())

    def _entry(self):
        return self.s.lookup(TEST_KEY)

    def test_is_Service_subclass(self):
        self.assertTrue(issubclass(
            caps_service.EntityCapsService,
            service.Service,
        ))

    def test_orders_after_disco_client(self):
        self.assertIn(
            disco.DiscoClient,
            caps_service.EntityCapsService.ORDER_AFTER,
        )

    def test_probe_timeout_defaults_to_ten_seconds(self):
        self.assertEqual(
            caps_service.EntityCapsService.PROBE_TIMEOUT,
            timedelta(seconds=10),
        )
        self.assertEqual(self.s.probe_timeout, timedelta(seconds=10))

    def test_installs_caps_lookup(self):
        self.assertEqual(self.disco_client.caps_lookup, self.s.lookup_info)

    def test_cache_can_be_replaced_and_reset(self):
        shared = CapsCache()
        self.s.cache = shared
        self.assertIs(self.s.cache, shared)

        del self.s.cache
        self.assertIsNot(self.s.cache, shared)
        self.assertIsInstance(self.s.cache, CapsCache)

    def test_first_advertisement_sends_probe(self):
        task = self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self.assertIsNotNone(task)

        self._settle()

        self.assertEqual(len(self.transport.requests), 1)
        entity, query_type, node, _ = self.transport.requests[0]
        self.assertEqual(entity, ROMEO + "/orchard")
        self.assertEqual(query_type, QueryType.INFO)
        self.assertEqual(node, TEST_PROBE_NODE)

        entry = self._entry()
        self.assertIsInstance(entry, Pending)
        self.assertEqual(entry.state.requestee, ROMEO + "/orchard")

    def test_bare_entity_is_probed_without_resource(self):
        self.s.handle_presence(ROMEO, None, TEST_ADV)
        self._settle()

        self.assertEqual(self.transport.requests[0][0], ROMEO)

    def test_at_most_one_probe_per_key(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self.assertIsNone(self.s.handle_presence(JULIET, "balcony",
                                                 TEST_ADV))
        self.assertIsNone(self.s.handle_presence(NURSE, "kitchen",
                                                 TEST_ADV))
        self._settle()

        self.assertEqual(len(self.transport.requests), 1)
        self.assertSequenceEqual(
            self._entry().state.candidates,
            [JULIET + "/balcony", NURSE + "/kitchen"],
        )

    def test_repeated_advertisement_is_not_queued_twice(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)

        self.assertSequenceEqual(
            self._entry().state.candidates,
            [JULIET + "/balcony"],
        )

    def test_matching_response_resolves(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        self.transport.respond(0, ROMEO + "/orchard", TEST_INFO)
        self._settle()

        self.assertEqual(self._entry(), Resolved(TEST_INFO))
        self.listener.on_caps_resolved.assert_called_once_with(
            TEST_KEY, TEST_INFO,
        )
        self.assertEqual(self.s.lookup_info(ROMEO + "/orchard"), TEST_INFO)

    def test_probe_results_are_not_cached_by_disco(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        self.transport.respond(0, ROMEO + "/orchard", TEST_INFO)
        self._settle()

        task = self.loop.create_task(self.disco_client.query_info(
            ROMEO + "/orchard",
            node=TEST_PROBE_NODE,
        ))
        self._settle()

        self.assertEqual(len(self.transport.requests), 2)
        task.cancel()

    def test_resolved_key_answers_query_info_without_traffic(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()
        self.transport.respond(0, ROMEO + "/orchard", TEST_INFO)
        self._settle()

        self.assertIsNone(self.s.handle_presence(JULIET, "balcony",
                                                 TEST_ADV))

        result = run_coroutine(
            self.disco_client.query_info(JULIET + "/balcony")
        )

        self.assertEqual(result, TEST_INFO)
        self.assertEqual(len(self.transport.requests), 1)

    def test_mismatching_response_falls_back_to_candidate(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self._settle()

        self.transport.respond(0, ROMEO + "/orchard", BOGUS_INFO)
        self._settle()

        self.assertEqual(len(self.transport.requests), 2)
        entity, _, node, _ = self.transport.requests[1]
        self.assertEqual(entity, JULIET + "/balcony")
        self.assertEqual(node, TEST_PROBE_NODE)
        self.assertIsInstance(self._entry(), Pending)
        self.assertSequenceEqual(self._entry().state.candidates, [])

        self.transport.respond(1, JULIET + "/balcony", TEST_INFO)
        self._settle()

        self.assertEqual(self._entry(), Resolved(TEST_INFO))
        self.listener.on_caps_resolved.assert_called_once_with(
            TEST_KEY, TEST_INFO,
        )

    def test_error_response_falls_back_to_candidate(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self._settle()

        self.transport.fail(0, errors.XMPPCancelError(
            errors.ErrorCondition.ITEM_NOT_FOUND,
        ))
        self._settle()

        self.assertEqual(len(self.transport.requests), 2)
        self.assertEqual(self.transport.requests[1][0], JULIET + "/balcony")

    def test_transport_exception_falls_back_to_candidate(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self._settle()

        self.transport.fail(0, ConnectionError())
        self._settle()

        self.assertEqual(len(self.transport.requests), 2)

    def test_exhausted_candidates_forget_key(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        self.transport.respond(0, ROMEO + "/orchard", BOGUS_INFO)
        self._settle()

        self.assertIsNone(self._entry())
        self.assertEqual(len(self.transport.requests), 1)
        self.listener.on_caps_resolved.assert_not_called()

    def test_advertisement_after_exhaustion_starts_over(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()
        self.transport.fail(0, TimeoutError())
        self._settle()

        task = self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self._settle()

        self.assertIsNotNone(task)
        self.assertEqual(len(self.transport.requests), 2)
        self.assertEqual(self.transport.requests[1][0], JULIET + "/balcony")
        self.assertIsInstance(self._entry(), Pending)

    def test_stalled_probe_is_superseded(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        self._entry().state.started_at -= 11

        task = self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self._settle()

        self.assertIsNotNone(task)
        self.assertEqual(len(self.transport.requests), 2)
        self.assertEqual(self.transport.requests[1][0], JULIET + "/balcony")
        self.assertEqual(self._entry().state.requestee, JULIET + "/balcony")

    def test_probe_younger_than_timeout_is_not_superseded(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        self._entry().state.started_at -= 9

        self.assertIsNone(self.s.handle_presence(JULIET, "balcony",
                                                 TEST_ADV))
        self._settle()

        self.assertEqual(len(self.transport.requests), 1)

    def test_probe_timeout_is_configurable(self):
        self.s.probe_timeout = timedelta(seconds=1)
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        self._entry().state.started_at -= 2

        self.assertIsNotNone(self.s.handle_presence(JULIET, "balcony",
                                                    TEST_ADV))

    def test_failure_of_superseded_probe_is_ignored(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()
        self._entry().state.started_at -= 11
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self.s.handle_presence(NURSE, "kitchen", TEST_ADV)
        self._settle()

        self.assertSequenceEqual(
            self._entry().state.candidates,
            [NURSE + "/kitchen"],
        )

        self.transport.fail(0, TimeoutError())
        self._settle()

        self.assertEqual(len(self.transport.requests), 2)
        self.assertSequenceEqual(
            self._entry().state.candidates,
            [NURSE + "/kitchen"],
        )
        self.assertEqual(self._entry().state.requestee, JULIET + "/balcony")

    def test_late_matching_response_is_accepted(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()
        self._entry().state.started_at -= 11
        self.s.handle_presence(JULIET, "balcony", TEST_ADV)
        self._settle()

        self.transport.respond(0, ROMEO + "/orchard", TEST_INFO)
        self._settle()

        self.assertEqual(self._entry(), Resolved(TEST_INFO))

        self.transport.respond(1, JULIET + "/balcony", TEST_INFO)
        self._settle()

        self.assertEqual(self._entry(), Resolved(TEST_INFO))
        self.listener.on_caps_resolved.assert_called_once_with(
            TEST_KEY, TEST_INFO,
        )

    def test_unsupported_algorithm_is_ignored(self):
        for algo in ["md5", "fnord"]:
            adv = caps115.Advertisement(algo, TEST_NODE, TEST_VER)
            self.assertIsNone(self.s.handle_presence(ROMEO, "orchard", adv))

        self._settle()

        self.assertSequenceEqual(self.transport.requests, [])
        self.assertEqual(len(self.s.cache), 0)
        self.assertDictEqual(self.s.bindings.resources(ROMEO), {})

    def test_observe_ignores_unsupported_algorithm(self):
        self.assertIsNone(self.s.observe(
            ROMEO + "/orchard",
            caps115.Key("md5", TEST_VER, node=TEST_NODE),
        ))
        self.assertEqual(len(self.s.cache), 0)

    def test_legacy_advertisement_is_ignored(self):
        adv = caps115.LegacyAdvertisement(TEST_NODE, "0.9.1", "ext1")

        self.assertIsNone(self.s.handle_presence(ROMEO, "orchard", adv))
        self._settle()

        self.assertSequenceEqual(self.transport.requests, [])
        self.assertDictEqual(self.s.bindings.resources(ROMEO), {})

    def test_presence_without_advertisement_is_ignored(self):
        self.assertIsNone(self.s.handle_presence(ROMEO, "orchard", None))
        self.assertSequenceEqual(self.transport.requests, [])

    def test_handle_presence_binds_resource(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)

        self.assertEqual(self.s.bindings.get(ROMEO, "orchard"), TEST_KEY)

    def test_unavailable_presence_unbinds_resource(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()
        self.transport.respond(0, ROMEO + "/orchard", TEST_INFO)
        self._settle()

        self.s.handle_presence(ROMEO, "orchard", None, available=False)

        self.assertIsNone(self.s.lookup_info(ROMEO + "/orchard"))
        self.assertEqual(self._entry(), Resolved(TEST_INFO))

    def test_lookup_info_for_pending_key(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)

        self.assertIsNone(self.s.lookup_info(ROMEO + "/orchard"))

    def test_lookup_info_for_unknown_entity(self):
        self.assertIsNone(self.s.lookup_info(ROMEO + "/orchard"))

    def test_lookup_unknown_key(self):
        self.assertIsNone(self.s.lookup(TEST_KEY))

    def test_on_response_for_unknown_key_is_dropped(self):
        self.s.on_response(TEST_KEY, TEST_INFO)

        self.assertIsNone(self._entry())
        self.listener.on_caps_resolved.assert_not_called()

    def test_on_failure_for_unknown_key_is_noop(self):
        self.s.on_failure(TEST_KEY)
        self.assertIsNone(self._entry())

    def test_shared_cache_skips_probe(self):
        self.s.cache.resolve(TEST_KEY, TEST_INFO)

        self.assertIsNone(self.s.handle_presence(ROMEO, "orchard",
                                                 TEST_ADV))
        self._settle()

        self.assertSequenceEqual(self.transport.requests, [])
        self.assertEqual(self.s.lookup_info(ROMEO + "/orchard"), TEST_INFO)

    def test_shutdown_drops_pending_state(self):
        self.s.handle_presence(ROMEO, "orchard", TEST_ADV)
        self._settle()

        run_coroutine(self.session.close())

        self.assertIsNone(self.s.lookup(TEST_KEY))
        self.assertDictEqual(self.s.bindings.resources(ROMEO), {})
        self.assertIsNone(self.disco_client.caps_lookup)
        self.assertIsNone(self.s.session)
