#! /usr/bin/env python3

import unittest

from mnemonic import Mnemonic

from hwwcore.common import Chain
from hwwcore.emulator import TEST_MNEMONIC
from hwwcore.errors import SequencingViolationError
from hwwcore.events import MessageEventType
from hwwcore.hwwclient import HardwareWalletClient
from hwwcore.key import ExtendedKey, H_
from hwwcore.protocols.hierarchy import (
    account_path,
    coin_type_path,
    master_path,
    purpose_path,
    to_extended_key,
)

PATHS = [master_path(), purpose_path(), coin_type_path(), account_path()]

def expected_xpub(path):
    master = ExtendedKey.from_seed(Mnemonic.to_seed(TEST_MNEMONIC, passphrase=""))
    return master.derive_path(path).neuter().to_string()

class TestDeterministicHierarchy(unittest.TestCase):
    def setUp(self):
        self.client = HardwareWalletClient('emulator:initialised', timeout=5)
        self.device = self.client.session.transport.device
        self.events = self.client.subscribe()
        self.client.connect()
        self.client.initialise()
        self.events.drain()

    def tearDown(self):
        self.client.close()

    def get_xpubs(self, client, events):
        xpubs = []
        for path in PATHS:
            self.assertIsNone(client.get_deterministic_hierarchy(path))
            event = events.get_nowait()
            self.assertEqual(event.type, MessageEventType.PUBLIC_KEY)
            self.assertEqual(event.message.node.depth, len(path))
            xpubs.append(to_extended_key(event.message).to_string())
        return xpubs

    def test_paths(self):
        self.assertEqual(PATHS, [[], [H_(44)], [H_(44), H_(0)], [H_(44), H_(0), H_(0)]])
        self.assertEqual(coin_type_path(Chain.TEST), [H_(44), H_(1)])
        self.assertEqual(account_path(2, Chain.TEST), [H_(44), H_(1), H_(2)])

    def test_supported_depths(self):
        xpubs = self.get_xpubs(self.client, self.events)
        self.assertEqual(len(set(xpubs)), 4)
        self.assertEqual(xpubs, [expected_xpub(path) for path in PATHS])

    def test_deterministic(self):
        first = self.get_xpubs(self.client, self.events)
        second = self.get_xpubs(self.client, self.events)
        self.assertEqual(first, second)

        other = HardwareWalletClient('emulator:initialised', timeout=5)
        other_events = other.subscribe()
        other.connect()
        other.initialise()
        other_events.drain()
        self.assertEqual(self.get_xpubs(other, other_events), first)
        other.close()

    def test_path_strings(self):
        self.client.get_deterministic_hierarchy("m/44h/0h/0h")
        event = self.events.get_nowait()
        self.assertEqual(event.message.xpub, expected_xpub(account_path()))
        self.assertEqual(event.message.node.child_num, H_(0))

    def test_unsupported_depths(self):
        for path in ([H_(44), H_(0), H_(0), 0], "m/44h/0h/0h/0/0", [0] * 8):
            with self.subTest(path=path):
                with self.assertRaises(SequencingViolationError):
                    self.client.get_deterministic_hierarchy(path)
        self.assertEqual(self.events.drain(), [])
        self.assertNotIn('GetPublicKey', [m.message_name() for m in self.device.received])

    def test_testnet_key(self):
        self.client.get_deterministic_hierarchy(account_path(0, Chain.TEST))
        key = to_extended_key(self.events.get_nowait().message, testnet=True)
        self.assertTrue(key.to_string().startswith("tpub"))
        self.assertEqual(key.depth, 3)

if __name__ == "__main__":
    unittest.main()
