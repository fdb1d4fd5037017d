#! /usr/bin/env python3

import unittest

from hwwcore import messages
from hwwcore.common import Chain, KeyPurpose
from hwwcore.emulator import cipher_key_value
from hwwcore.errors import BadArgumentError
from hwwcore.events import MessageEventType
from hwwcore.hwwclient import HardwareWalletClient
from hwwcore.key import H_
from hwwcore.messages import FailureType
from hwwcore.protocols.cipher import cipher_key_path

PIN = "1234"
LABEL = b"MultiBit HD     Unlock"
VALUE = b"0123456789abcdef"

class TestCipherKeyPath(unittest.TestCase):
    def test_paths(self):
        self.assertEqual(cipher_key_path(0, KeyPurpose.RECEIVE_FUNDS, 0), [H_(44), H_(0), H_(0), 0, 0])
        self.assertEqual(cipher_key_path(1, KeyPurpose.CHANGE, 7), [H_(44), H_(0), H_(1), 1, 7])
        self.assertEqual(cipher_key_path(0, KeyPurpose.REFUND, 0, Chain.TEST), [H_(44), H_(1), H_(0), 0, 0])
        self.assertEqual(cipher_key_path(0, KeyPurpose.AUTHENTICATION, 0)[3], 1)
        with self.assertRaises(BadArgumentError):
            cipher_key_path(-1, KeyPurpose.RECEIVE_FUNDS, 0)
        with self.assertRaises(BadArgumentError):
            cipher_key_path(0, KeyPurpose.RECEIVE_FUNDS, H_(0))

class TestCipherKeyValue(unittest.TestCase):
    def setUp(self):
        self.client = HardwareWalletClient('emulator:initialised', timeout=5)
        self.device = self.client.session.transport.device
        self.events = self.client.subscribe()
        self.client.connect()
        self.client.initialise()
        self.events.drain()

    def tearDown(self):
        self.client.close()

    def cipher(self, value=VALUE, encrypt=True):
        self.client.cipher_key_value(0, KeyPurpose.RECEIVE_FUNDS, 0, LABEL, value, encrypt, True, True)
        events = self.events.drain()
        # Exactly one event per call
        self.assertEqual(len(events), 1)
        return events[0]

    def test_locked(self):
        event = self.cipher()
        self.assertEqual(event.type, MessageEventType.PIN_MATRIX_REQUEST)
        self.assertTrue(self.client.cipher.awaiting_pin)
        self.assertEqual(self.client.cipher.pending.key, LABEL)

    def test_after_pin(self):
        self.assertEqual(self.cipher().type, MessageEventType.PIN_MATRIX_REQUEST)
        self.client.pin_matrix_ack(PIN)
        self.assertEqual(self.events.get_nowait().type, MessageEventType.BUTTON_REQUEST)

        event = self.cipher()
        self.assertEqual(event.type, MessageEventType.CIPHERED_KEY_VALUE)
        self.assertFalse(self.client.cipher.awaiting_pin)
        self.assertEqual(len(event.message.value), len(VALUE))
        self.assertNotEqual(event.message.value, VALUE)

        # Same key for the same label and path
        request = messages.CipherKeyValue(address_n=tuple(cipher_key_path(0, KeyPurpose.RECEIVE_FUNDS, 0)), key=LABEL, value=VALUE)
        node = self.device.master.derive_path(request.address_n)
        self.assertEqual(event.message.value, cipher_key_value(node, request))

        self.assertEqual(self.cipher(event.message.value, encrypt=False).message.value, VALUE)

    def test_bad_length(self):
        self.client.pin_matrix_ack(PIN)
        self.events.drain()
        event = self.cipher(b"too short")
        self.assertEqual(event.type, MessageEventType.FAILURE)
        self.assertEqual(event.message.code, FailureType.DataError)

    def test_bad_arguments(self):
        with self.assertRaises(BadArgumentError):
            self.client.cipher_key_value(0, KeyPurpose.RECEIVE_FUNDS, 0, None, VALUE)
        with self.assertRaises(BadArgumentError):
            self.client.cipher_key_value(0, KeyPurpose.RECEIVE_FUNDS, 0, LABEL, None)
        with self.assertRaises(BadArgumentError):
            self.client.cipher_key_value(0, 0, 0, LABEL, VALUE)
        self.assertEqual(self.events.drain(), [])

    def test_wiped_device(self):
        client = HardwareWalletClient('emulator:wiped', timeout=5)
        events = client.subscribe()
        client.connect()
        client.cipher_key_value(0, KeyPurpose.RECEIVE_FUNDS, 0, LABEL, VALUE)
        event = events.drain()[-1]
        self.assertEqual(event.type, MessageEventType.FAILURE)
        self.assertEqual(event.message.code, FailureType.NotInitialized)
        client.close()

if __name__ == "__main__":
    unittest.main()
