#! /usr/bin/env python3

import os
import unittest

from hwwcore.errors import BadArgumentError
from hwwcore.events import MessageEventType
from hwwcore.hwwclient import HardwareWalletClient
from hwwcore.messages import ButtonRequestType, PinMatrixRequestType
from hwwcore.protocols.reset import ResetState, WORD_STEPS

PIN = "1234"

class TestWalletReset(unittest.TestCase):
    def setUp(self):
        self.client = HardwareWalletClient('emulator:wiped', timeout=5)
        self.device = self.client.session.transport.device
        self.events = self.client.subscribe()
        self.client.connect()
        self.client.initialise()
        self.events.drain()

    def tearDown(self):
        self.client.close()

    def reply_types(self):
        return [e.type for e in self.events.drain() if not e.type.is_lifecycle]

    def start_words(self):
        self.client.wipe_device()
        self.client.pin_matrix_ack(PIN)
        self.client.pin_matrix_ack(PIN)
        self.client.entropy_ack(os.urandom(32))
        self.assertEqual(self.reply_types(), [
            MessageEventType.BUTTON_REQUEST,
            MessageEventType.PIN_MATRIX_REQUEST,
            MessageEventType.ENTROPY_REQUEST,
            MessageEventType.BUTTON_REQUEST,
        ])
        self.assertEqual(self.client.reset_context.state, ResetState.CONFIRMING_WORDS)

    def test_wipe(self):
        self.client.wipe_device()
        event = self.events.get_nowait()
        self.assertEqual(event.type, MessageEventType.BUTTON_REQUEST)
        self.assertEqual(event.message.code, ButtonRequestType.WipeDevice)
        self.assertEqual(self.client.reset_context.state, ResetState.WIPED)

        # A second wipe starts over
        first = self.client.reset_context
        self.client.wipe_device()
        self.assertIsNot(self.client.reset_context, first)

    def test_states(self):
        self.client.wipe_device()
        self.client.pin_matrix_ack(PIN)
        self.assertEqual(self.client.reset_context.state, ResetState.PIN_REQUESTED)
        self.client.pin_matrix_ack(PIN)
        self.assertEqual(self.client.reset_context.state, ResetState.ENTROPY_REQUESTED)

    def test_twenty_four_words(self):
        self.start_words()
        for step in range(1, WORD_STEPS):
            self.client.word_ack("")
            event = self.events.get_nowait()
            self.assertEqual(event.type, MessageEventType.BUTTON_REQUEST)
            self.assertEqual(event.message.code, ButtonRequestType.ConfirmWord)
            self.assertEqual(self.client.reset_context.word_steps, step)

        self.client.word_ack("")
        event = self.events.get_nowait()
        self.assertEqual(event.type, MessageEventType.SUCCESS)
        self.assertIsNone(self.client.reset_context)

        # The new wallet is usable
        self.client.get_deterministic_hierarchy("m/44h/0h/0h")
        self.assertEqual(self.reply_types(), [MessageEventType.PUBLIC_KEY])

    def test_twenty_three_words(self):
        self.start_words()
        for _ in range(WORD_STEPS - 1):
            self.client.word_ack("")
        types = self.reply_types()
        self.assertEqual(len(types), WORD_STEPS - 1)
        self.assertNotIn(MessageEventType.SUCCESS, types)

        context = self.client.reset_context
        self.assertEqual(context.words_displayed, 12)
        self.assertEqual(context.words_confirmed, 11)
        self.assertEqual(context.steps_remaining, 1)

    def test_word_steps_not_shared(self):
        self.start_words()
        for _ in range(5):
            self.client.word_ack("")
        self.events.drain()
        # Abandon and start a fresh reset, its counter starts at zero
        self.start_words()
        self.assertEqual(self.client.reset_context.word_steps, 0)
        for _ in range(WORD_STEPS):
            self.client.word_ack("")
        self.assertEqual(self.reply_types()[-1], MessageEventType.SUCCESS)

    def test_initialise_abandons(self):
        self.start_words()
        self.client.word_ack("")
        self.client.initialise()
        self.assertIsNone(self.client.reset_context)

    def test_cancel_disposes(self):
        self.start_words()
        self.client.cancel()
        self.assertEqual(self.reply_types(), [MessageEventType.FAILURE])
        self.assertIsNone(self.client.reset_context)

    def test_reset_device(self):
        self.client.reset_device(label="new wallet")
        event = self.events.get_nowait()
        self.assertEqual(event.type, MessageEventType.PIN_MATRIX_REQUEST)
        self.assertEqual(event.message.type, PinMatrixRequestType.NewFirst)
        self.assertEqual(self.client.reset_context.state, ResetState.PIN_REQUESTED)
        self.client.pin_matrix_ack(PIN)
        self.client.pin_matrix_ack(PIN)
        self.assertEqual(self.reply_types(), [MessageEventType.PIN_MATRIX_REQUEST, MessageEventType.ENTROPY_REQUEST])

    def test_reset_device_without_pin(self):
        self.client.reset_device(strength=256, pin_protection=False)
        self.assertEqual(self.reply_types(), [MessageEventType.ENTROPY_REQUEST])
        self.assertEqual(self.client.reset_context.word_count, 24)
        self.client.entropy_ack(b"")
        for _ in range(47):
            self.client.word_ack("")
        self.assertNotIn(MessageEventType.SUCCESS, self.reply_types())
        self.client.word_ack("")
        self.assertEqual(self.reply_types(), [MessageEventType.SUCCESS])

    def test_bad_arguments(self):
        with self.assertRaises(BadArgumentError):
            self.client.entropy_ack(None)
        with self.assertRaises(BadArgumentError):
            self.client.word_ack(None)
        with self.assertRaises(BadArgumentError):
            self.client.reset_device(strength=100)
        self.assertEqual(self.events.drain(), [])

if __name__ == "__main__":
    unittest.main()
