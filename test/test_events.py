#! /usr/bin/env python3

import queue
import unittest

from hwwcore import messages
from hwwcore.events import (
    MessageEvent,
    MessageEventChannel,
    MessageEventType,
)

class TestMessageEvent(unittest.TestCase):
    def test_from_reply(self):
        event = MessageEvent.from_reply(messages.Success(message="ok"))
        self.assertEqual(event.type, MessageEventType.SUCCESS)
        self.assertEqual(event.message.message, "ok")

        event = MessageEvent.from_reply(messages.PinMatrixRequest(type=messages.PinMatrixRequestType.Current))
        self.assertEqual(event.type, MessageEventType.PIN_MATRIX_REQUEST)

    def test_requests_are_not_events(self):
        with self.assertRaises(ValueError):
            MessageEvent.from_reply(messages.Initialize())

    def test_lifecycle(self):
        self.assertTrue(MessageEventType.DEVICE_CONNECTED.is_lifecycle)
        self.assertTrue(MessageEventType.DEVICE_FAILED.is_lifecycle)
        self.assertFalse(MessageEventType.FAILURE.is_lifecycle)
        self.assertFalse(MessageEventType.FEATURES.is_lifecycle)

    def test_frozen(self):
        event = MessageEvent(MessageEventType.DEVICE_ATTACHED)
        with self.assertRaises(AttributeError):
            event.type = MessageEventType.DEVICE_FAILED

class TestMessageEventChannel(unittest.TestCase):
    def setUp(self):
        self.channel = MessageEventChannel(default_queue_size=4)

    def test_broadcast_in_order(self):
        first = self.channel.subscribe()
        second = self.channel.subscribe()
        self.channel.fire(MessageEventType.DEVICE_CONNECTED)
        self.channel.publish(MessageEvent.from_reply(messages.Success()))

        for sub in (first, second):
            self.assertEqual([e.type for e in sub], [MessageEventType.DEVICE_CONNECTED, MessageEventType.SUCCESS])
        self.assertIsNone(first.get_nowait())

    def test_late_subscriber(self):
        self.channel.fire(MessageEventType.DEVICE_ATTACHED)
        sub = self.channel.subscribe()
        self.assertEqual(sub.drain(), [])
        with self.assertRaises(queue.Empty):
            sub.get(timeout=0.01)

    def test_overflow_drops_subscriber(self):
        slow = self.channel.subscribe(maxsize=2)
        fast = self.channel.subscribe()
        for _ in range(3):
            self.channel.fire(MessageEventType.DEVICE_ATTACHED)

        self.assertTrue(slow.overflowed)
        self.assertTrue(slow.closed)
        self.assertEqual(len(slow.drain()), 2)
        self.assertFalse(fast.overflowed)
        self.assertEqual(len(fast.drain()), 3)
        self.assertEqual(self.channel.subscriber_count, 1)

        # Publishing carries on for the others
        self.channel.fire(MessageEventType.DEVICE_DISCONNECTED)
        self.assertIsNone(slow.get_nowait())
        self.assertEqual(fast.get(timeout=1).type, MessageEventType.DEVICE_DISCONNECTED)

    def test_unbounded_rejected(self):
        with self.assertRaises(ValueError):
            self.channel.subscribe(maxsize=0)

    def test_close(self):
        sub = self.channel.subscribe()
        sub.close()
        self.assertEqual(self.channel.subscriber_count, 0)
        self.channel.fire(MessageEventType.DEVICE_ATTACHED)
        self.assertEqual(sub.drain(), [])

if __name__ == "__main__":
    unittest.main()
