#! /usr/bin/env python3

import argparse
import sys
import unittest

from test_auth import TestCreatePin, TestPinPolicy, TestUnlock
from test_base58 import TestBase58
from test_bip32 import TestBIP32, TestPaths
from test_cipher import TestCipherKeyPath, TestCipherKeyValue
from test_client import TestCLI, TestCommands, TestCreateWallet, TestFirmwareCheck
from test_events import TestMessageEvent, TestMessageEventChannel
from test_hierarchy import TestDeterministicHierarchy
from test_reset import TestWalletReset
from test_session import TestDeviceSession

parser = argparse.ArgumentParser(description='Run automated tests')
parser.add_argument('--unit-only', help='Only run tests that do not need the device emulator', action='store_true')
parser.add_argument('--emulator-only', help='Only run tests against the device emulator', action='store_true')

args = parser.parse_args()

UNIT_TESTS = [
    TestBase58,
    TestBIP32,
    TestPaths,
    TestMessageEvent,
    TestMessageEventChannel,
    TestCipherKeyPath,
]

EMULATOR_TESTS = [
    TestDeviceSession,
    TestUnlock,
    TestPinPolicy,
    TestCreatePin,
    TestWalletReset,
    TestDeterministicHierarchy,
    TestCipherKeyValue,
    TestCreateWallet,
    TestFirmwareCheck,
    TestCommands,
    TestCLI,
]

# Run tests
suite = unittest.TestSuite()
if not args.emulator_only:
    for case in UNIT_TESTS:
        suite.addTests(unittest.defaultTestLoader.loadTestsFromTestCase(case))
if not args.unit_only:
    for case in EMULATOR_TESTS:
        suite.addTests(unittest.defaultTestLoader.loadTestsFromTestCase(case))
success = unittest.TextTestRunner(stream=sys.stdout, verbosity=2).run(suite).wasSuccessful()

sys.exit(not success)
