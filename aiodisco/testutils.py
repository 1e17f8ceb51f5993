########################################################################
# File name: testutils.py
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
This module contains utilities used for testing aiodisco code.
"""
import asyncio
import logging
import os
import time
import unittest
import unittest.mock

import aiodisco.callbacks as callbacks
import aiodisco.transport


logger = logging.getLogger(__name__)


GLOBAL_TIMEOUT_FACTOR = 1.0

_monotonic_info = time.get_clock_info("monotonic")
# windows has a rather coarse monotonic clock
GLOBAL_TIMEOUT_FACTOR *= max(_monotonic_info.resolution, 0.0015) / 0.0015

if os.environ.get("CI") == "true":
    GLOBAL_TIMEOUT_FACTOR *= 4
    logger.debug("increasing GLOBAL_TIMEOUT_FACTOR for CI")


def get_timeout(base):
    return base * GLOBAL_TIMEOUT_FACTOR


DEFAULT_TIMEOUT = get_timeout(1.0)


def setup_event_loop():
    """
    Create a fresh event loop, make it the current one and return it.

    Use in :meth:`unittest.TestCase.setUp` together with
    :func:`teardown_event_loop`.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return loop


def teardown_event_loop(loop):
    """
    Cancel the tasks left on `loop`, close it and unset the current loop.
    """
    pending = asyncio.all_tasks(loop)
    for task in pending:
        task.cancel()
    if pending:
        loop.run_until_complete(
            asyncio.gather(*pending, return_exceptions=True)
        )
    loop.close()
    asyncio.set_event_loop(None)


def run_coroutine(coroutine, timeout=DEFAULT_TIMEOUT, loop=None):
    if not loop:
        loop = asyncio.get_event_loop()
    return loop.run_until_complete(
        asyncio.wait_for(
            coroutine,
            timeout=timeout))


def make_listener(instance):
    """
    Return a :class:`unittest.mock.Mock` which has children connected to each
    :class:`aiodisco.callbacks.Signal` of `instance`.

    The children are named after the signals.
    """
    result = unittest.mock.Mock([])
    names = {
        name
        for type_ in type(instance).__mro__
        for name, value in type_.__dict__.items()
        if isinstance(value, callbacks.Signal)
    }
    for name in names:
        cb = unittest.mock.Mock()
        cb.return_value = None
        setattr(result, name, cb)
        getattr(instance, name).connect(cb)
    return result


class CoroutineMock(unittest.mock.Mock):
    delay = 0

    async def __call__(self, *args, **kwargs):
        result = super().__call__(*args, **kwargs)
        await asyncio.sleep(self.delay)
        return result


class TransportMock(aiodisco.transport.AbstractTransport):
    """
    :class:`~aiodisco.transport.AbstractTransport` which records the queries
    and answers them from futures the test controls.

    .. attribute:: requests

       List of ``(entity, query_type, node, future)`` tuples, one per query,
       in the order they were sent. Resolve the future with a
       :class:`~aiodisco.transport.Response` (or set an exception) to answer
       the query.
    """

    def __init__(self):
        super().__init__()
        self.requests = []

    async def send_query(self, entity, query_type, node):
        fut = asyncio.get_running_loop().create_future()
        self.requests.append((entity, query_type, node, fut))
        return await fut

    def respond(self, index, from_, payload):
        self.requests[index][3].set_result(
            aiodisco.transport.Response(from_, payload)
        )

    def fail(self, index, exc):
        self.requests[index][3].set_exception(exc)


async def settle(iterations=10):
    """
    Let the event loop run a few iterations so that spawned tasks make
    progress.
    """
    for _ in range(iterations):
        await asyncio.sleep(0)
