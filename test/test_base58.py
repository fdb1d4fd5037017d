#! /usr/bin/env python3

"""Tests for the base58 encoding of extended keys"""

from binascii import unhexlify
from typing import List, Tuple
import unittest
import hwwcore._base58 as base58

# From Bitcoin Core's base58_encode_decode.json
TEST_VECTORS: List[Tuple[str, str]] = [
    ("", ""),
    ("61", "2g"),
    ("626262", "a3gV"),
    ("73696d706c792061206c6f6e6720737472696e67", "2cFupjhnEsSn59qHXstmK2ffpLv2"),
    ("00eb15231dfceb60925886b67d065299925915aeb172c06647", "1NS17iag9jJgTHD1VXjvLCEnZuQ3rJDE9L"),
    ("00000000000000000000", "1111111111"),
]

TEST_VECTORS_CHECK: List[Tuple[str, str]] = [
    ("", "3QJmnh"),
    ("61", "C2dGTwc"),
    ("00eb15231dfceb60925886b67d065299925915aeb172c06647", "13REmUhe2ckUKy1FvM7AMCdtyYq831yxM3QeyEu4"),
    ("00000000000000000000", "111111111146Momb"),
]

# BIP 32 test vector 1, chain m
MASTER_XPUB = "xpub661MyMwAqRbcFtXgS5sYJABqqG9YLmC4Q1Rdap9gSE8NqtwybGhePY2gZ29ESFjqJoCu1Rupje8YtGqsefD265TMg7usUDFdp6W1EGMcet8"
MASTER_PUBKEY = "0339a36013301597daef41fbe593a02cc513d0b55527ec2df1050e2e8ff49c85c2"

class TestBase58(unittest.TestCase):
    def test_round_trip_vectors(self):
        for hex_data, encoded in TEST_VECTORS:
            with self.subTest(encoded=encoded):
                self.assertEqual(base58.encode(unhexlify(hex_data)), encoded)
                self.assertEqual(base58.decode(encoded), unhexlify(hex_data))

    def test_check_vectors(self):
        for hex_data, encoded in TEST_VECTORS_CHECK:
            with self.subTest(encoded=encoded):
                self.assertEqual(base58.encode_check(unhexlify(hex_data)), encoded)
                self.assertEqual(base58.decode_check(encoded), unhexlify(hex_data))

    def test_bad_checksum(self):
        # Last character changed
        with self.assertRaises(ValueError):
            base58.decode_check("C2dGTwd")

    def test_xpub_to_pub_hex(self):
        self.assertEqual(base58.xpub_to_pub_hex(MASTER_XPUB), MASTER_PUBKEY)

if __name__ == "__main__":
    unittest.main()
