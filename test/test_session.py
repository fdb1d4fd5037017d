#! /usr/bin/env python3

import threading
import unittest

from hwwcore import messages
from hwwcore.errors import (
    DeviceConnectionError,
    DeviceTimeoutError,
)
from hwwcore.events import MessageEventType
from hwwcore.hwwclient import HardwareWalletClient
from hwwcore.messages import FailureType
from hwwcore.session import ConnectionState

class TestDeviceSession(unittest.TestCase):
    def setUp(self):
        self.client = HardwareWalletClient('emulator:initialised', timeout=5)
        self.device = self.client.session.transport.device
        self.events = self.client.subscribe()

    def tearDown(self):
        self.client.close()

    def test_connect_event_first(self):
        self.assertTrue(self.client.connect())
        self.assertTrue(self.client.connect())
        self.assertTrue(self.client.initialise())

        types = [e.type for e in self.events]
        self.assertEqual(types[0], MessageEventType.DEVICE_CONNECTED)
        self.assertEqual(types.count(MessageEventType.DEVICE_CONNECTED), 1)
        self.assertEqual(types[1:], [MessageEventType.FEATURES])
        self.assertEqual(self.client.state, ConnectionState.CONNECTED)

    def test_attach(self):
        self.assertTrue(self.client.attach())
        self.assertEqual(self.events.get_nowait().type, MessageEventType.DEVICE_ATTACHED)
        self.assertEqual(self.device.received, [])

        self.device.unplug()
        self.assertFalse(self.client.attach())
        self.assertFalse(self.client.connect())
        self.assertEqual(self.client.state, ConnectionState.FAILED)

    def test_call_requires_connection(self):
        with self.assertRaises(DeviceConnectionError):
            self.client.initialise()
        self.assertEqual(self.device.received, [])

    def test_disconnect(self):
        self.client.connect()
        self.client.disconnect()
        self.client.disconnect()
        types = [e.type for e in self.events]
        self.assertEqual(types, [MessageEventType.DEVICE_CONNECTED, MessageEventType.DEVICE_DISCONNECTED])
        with self.assertRaises(DeviceConnectionError):
            self.client.ping()

    def test_one_reply_per_request(self):
        self.client.connect()
        self.events.drain()
        self.client.ping("hello")
        self.client.cancel()
        self.client.button_ack()
        events = self.events.drain()
        self.assertEqual([e.type for e in events], [MessageEventType.SUCCESS, MessageEventType.FAILURE, MessageEventType.SUCCESS])
        self.assertEqual(events[0].message.message, "hello")
        self.assertEqual(events[1].message.code, FailureType.ActionCancelled)

    def test_concurrent_calls(self):
        client = HardwareWalletClient('emulator:initialised', timeout=5)
        events = client.subscribe(maxsize=1000)
        client.connect()
        events.drain()
        errors = []

        def worker():
            try:
                for _ in range(50):
                    client.get_deterministic_hierarchy([])
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        replies = events.drain()
        self.assertFalse(events.overflowed)
        self.assertEqual(len(replies), 400)
        self.assertTrue(all(e.type == MessageEventType.PUBLIC_KEY for e in replies))
        # One reply per request, none lost or doubled
        self.assertEqual(len({e.message.xpub for e in replies}), 1)
        self.assertEqual(len(client.session.transport.device.received), 400)
        client.close()

    def test_timeout(self):
        client = HardwareWalletClient('emulator:initialised', timeout=0.05)
        events = client.subscribe()
        client.connect()
        client.session.transport.device.stalled = True
        with self.assertRaises(DeviceTimeoutError):
            client.initialise()

        last = events.drain()[-1]
        self.assertEqual(last.type, MessageEventType.DEVICE_FAILED)
        self.assertEqual(last.message.code, FailureType.Timeout)
        self.assertEqual(client.state, ConnectionState.FAILED)

        # Never retried behind the caller's back
        self.assertEqual(len(client.session.transport.device.received), 1)
        with self.assertRaises(DeviceConnectionError):
            client.ping()

        # Reconnecting starts over
        client.session.transport.device.stalled = False
        self.assertTrue(client.connect())
        self.assertTrue(client.initialise())
        client.close()

    def test_unplugged_while_connected(self):
        self.client.connect()
        self.device.unplug()
        with self.assertRaises(DeviceConnectionError):
            self.client.initialise()
        self.assertEqual(self.events.drain()[-1].type, MessageEventType.DEVICE_FAILED)
        self.assertEqual(self.client.state, ConnectionState.FAILED)

    def test_unknown_message(self):
        self.client.connect()
        self.client.session.call(messages.GetFeatures())
        self.events.drain()
        # Device answers what it does not know with a failure
        self.client.session.call(messages.HardwareWalletMessage())
        event = self.events.get_nowait()
        self.assertEqual(event.type, MessageEventType.FAILURE)
        self.assertEqual(event.message.code, FailureType.UnexpectedMessage)

if __name__ == "__main__":
    unittest.main()
