#!/usr/bin/env python3
# Copyright (c) 2020 The HWI developers
# Distributed under the MIT software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.

"""
Key Classes and Utilities
*************************

Classes and utilities for working with extended keys and derivation paths.
The device returns extended public keys as a public key and chain code pair;
:class:`ExtendedKey` turns those into the usual xpub strings.
"""

from . import _base58 as base58
from .common import (
    Chain,
    KeyPurpose,
    hash160,
)
from .errors import BadArgumentError

import binascii
import hmac
import hashlib
import struct
from typing import (
    Dict,
    List,
    Optional,
    Sequence,
    Union,
)

import ecdsa


HARDENED_FLAG = 1 << 31

CURVE = ecdsa.curves.SECP256k1

def H_(x: int) -> int:
    """
    Shortcut function that "hardens" a number in a BIP44 path.
    """
    return x | HARDENED_FLAG

def is_hardened(i: int) -> bool:
    """
    Returns whether an index is hardened
    """
    return i & HARDENED_FLAG != 0


def privkey_to_pubkey(privkey: bytes) -> bytes:
    """
    Compute the compressed public key for a 32 byte secp256k1 private key.
    """
    sk = ecdsa.SigningKey.from_string(privkey, curve=CURVE)
    return sk.get_verifying_key().to_string("compressed")


class ExtendedKey(object):
    """
    A BIP 32 extended public key, or private key when ``privkey`` is given.
    """

    MAINNET_PUBLIC = b'\x04\x88\xB2\x1E'
    MAINNET_PRIVATE = b'\x04\x88\xAD\xE4'
    TESTNET_PUBLIC = b'\x04\x35\x87\xCF'
    TESTNET_PRIVATE = b'\x04\x35\x83\x94'

    def __init__(self, version: bytes, depth: int, parent_fingerprint: bytes, child_num: int, chaincode: bytes, privkey: Optional[bytes], pubkey: bytes) -> None:
        """
        :param version: The version bytes for this xpub
        :param depth: The depth of this xpub as defined in BIP 32
        :param parent_fingerprint: The 4 byte fingerprint of the parent xpub as defined in BIP 32
        :param child_num: The number of this xpub as defined in BIP 32
        :param chaincode: The chaincode of this xpub as defined in BIP 32
        :param privkey: The private key for this xpub if available
        :param pubkey: The public key for this xpub
        """
        self.version: bytes = version
        self.is_testnet: bool = version == ExtendedKey.TESTNET_PUBLIC or version == ExtendedKey.TESTNET_PRIVATE
        self.is_private: bool = version == ExtendedKey.MAINNET_PRIVATE or version == ExtendedKey.TESTNET_PRIVATE
        self.depth: int = depth
        self.parent_fingerprint: bytes = parent_fingerprint
        self.child_num: int = child_num
        self.chaincode: bytes = chaincode
        self.pubkey: bytes = pubkey
        self.privkey: Optional[bytes] = privkey

    @classmethod
    def from_seed(cls, seed: bytes, testnet: bool = False) -> 'ExtendedKey':
        """
        Create the BIP 32 master private key for a seed

        :param seed: The seed, typically the output of BIP 39 seed stretching
        :param testnet: Whether to use testnet version bytes
        """
        I = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        privkey, chaincode = I[:32], I[32:]
        version = ExtendedKey.TESTNET_PRIVATE if testnet else ExtendedKey.MAINNET_PRIVATE
        return cls(version, 0, b'\x00\x00\x00\x00', 0, chaincode, privkey, privkey_to_pubkey(privkey))

    @classmethod
    def deserialize(cls, xpub: str) -> 'ExtendedKey':
        """
        Create an :class:`~ExtendedKey` from a Base58 check encoded xpub

        :param xpub: The Base58 check encoded xpub
        """
        try:
            data = base58.decode_check(xpub)
        except ValueError as e:
            raise BadArgumentError(str(e))
        return cls.from_bytes(data)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'ExtendedKey':
        """
        Create an :class:`~ExtendedKey` from a serialized xpub

        :param xpub: The serialized xpub
        """

        version = data[0:4]
        if version not in [ExtendedKey.MAINNET_PRIVATE, ExtendedKey.MAINNET_PUBLIC, ExtendedKey.TESTNET_PRIVATE, ExtendedKey.TESTNET_PUBLIC]:
            raise BadArgumentError(f"Extended key magic of {version.hex()} is invalid")
        is_private = version == ExtendedKey.MAINNET_PRIVATE or version == ExtendedKey.TESTNET_PRIVATE
        depth = data[4]
        parent_fingerprint = data[5:9]
        child_num = struct.unpack('>I', data[9:13])[0]
        chaincode = data[13:45]

        if is_private:
            privkey = data[46:]
            return cls(version, depth, parent_fingerprint, child_num, chaincode, privkey, privkey_to_pubkey(privkey))
        else:
            pubkey = data[45:78]
            return cls(version, depth, parent_fingerprint, child_num, chaincode, None, pubkey)

    def serialize(self) -> bytes:
        """
        Serialize the ExtendedKey with the serialization format described in BIP 32.
        Does not create an xpub string, but the bytes serialized here can be Base58 check encoded into one.

        :return: BIP 32 serialized extended key
        """
        r = self.version + struct.pack('B', self.depth) + self.parent_fingerprint + struct.pack('>I', self.child_num) + self.chaincode
        if self.is_private:
            if self.privkey is None:
                raise ValueError("Somehow we are private but don't have a privkey")
            r += b"\x00" + self.privkey
        else:
            r += self.pubkey
        return r

    def to_string(self) -> str:
        """
        Serialize the ExtendedKey as a Base58 check encoded xpub string

        :return: Base58 check encoded xpub
        """
        return base58.encode_check(self.serialize())

    def fingerprint(self) -> bytes:
        """
        The 4 byte BIP 32 fingerprint of this key, the parent fingerprint of its children.
        """
        return hash160(self.pubkey)[0:4]

    def neuter(self) -> 'ExtendedKey':
        """
        Drop the private key, returning the extended public key.
        """
        version = ExtendedKey.TESTNET_PUBLIC if self.is_testnet else ExtendedKey.MAINNET_PUBLIC
        return ExtendedKey(version, self.depth, self.parent_fingerprint, self.child_num, self.chaincode, None, self.pubkey)

    def get_printable_dict(self) -> Dict[str, object]:
        """
        Get the attributes of this ExtendedKey as a dictionary that can be printed

        :return: Dictionary containing ExtendedKey information that can be printed
        """
        d: Dict[str, object] = {}
        d['testnet'] = self.is_testnet
        d['private'] = self.is_private
        d['depth'] = self.depth
        d['parent_fingerprint'] = binascii.hexlify(self.parent_fingerprint).decode()
        d['child_num'] = self.child_num
        d['chaincode'] = binascii.hexlify(self.chaincode).decode()
        if self.is_private and isinstance(self.privkey, bytes):
            d['privkey'] = binascii.hexlify(self.privkey).decode()
        d['pubkey'] = binascii.hexlify(self.pubkey).decode()
        return d

    def derive_priv(self, i: int) -> 'ExtendedKey':
        """
        Derive the private key at the given child index. Hardened indexes are allowed.

        :param i: The child index of the key to derive
        """
        if self.privkey is None:
            raise ValueError("Cannot derive a private child from a public key")

        if is_hardened(i):
            data = b'\x00' + self.privkey + struct.pack(">L", i)
        else:
            data = self.pubkey + struct.pack(">L", i)

        Ihmac = hmac.new(self.chaincode, data, hashlib.sha512).digest()
        Il_int = int.from_bytes(Ihmac[:32], byteorder="big")
        if Il_int >= CURVE.order:
            raise ValueError("Invalid child key, try the next index")
        k = (Il_int + int.from_bytes(self.privkey, byteorder="big")) % CURVE.order
        if k == 0:
            raise ValueError("Invalid child key, try the next index")

        privkey = k.to_bytes(32, byteorder="big")
        return ExtendedKey(self.version, self.depth + 1, self.fingerprint(), i, Ihmac[32:], privkey, privkey_to_pubkey(privkey))

    def derive_pub(self, i: int) -> 'ExtendedKey':
        """
        Derive the public key at the given child index.

        :param i: The child index of the pubkey to derive
        """
        if is_hardened(i):
            raise ValueError("Index cannot be larger than 2^31")

        # Data to HMAC.  Same as CKDpriv() for public child key.
        data = self.pubkey + struct.pack(">L", i)

        # Get HMAC of data
        Ihmac = hmac.new(self.chaincode, data, hashlib.sha512).digest()
        Il_int = int.from_bytes(Ihmac[:32], byteorder="big")

        # Construct curve point Il*G+K
        parent = ecdsa.VerifyingKey.from_string(self.pubkey, curve=CURVE).pubkey.point
        child = ecdsa.VerifyingKey.from_public_point(CURVE.generator * Il_int + parent, curve=CURVE)

        version = ExtendedKey.TESTNET_PUBLIC if self.is_testnet else ExtendedKey.MAINNET_PUBLIC
        return ExtendedKey(version, self.depth + 1, self.fingerprint(), i, Ihmac[32:], None, child.to_string("compressed"))

    def derive_path(self, path: Sequence[int]) -> 'ExtendedKey':
        """
        Derive the key at the given path, privately if this key is private

        :param path: Sequence of integers for the path of the key to derive
        """
        key = self
        for i in path:
            key = key.derive_priv(i) if key.is_private else key.derive_pub(i)
        return key


def parse_path(nstr: str) -> List[int]:
    """
    Convert BIP32 path string to list of uint32 integers with hardened flags.
    Several conventions are supported to set the hardened flag: -1, 1', 1h

    e.g.: "0/1h/1" -> [0, 0x80000001, 1]

    :param nstr: path string
    :return: list of integers
    """
    if not nstr:
        return []

    n = nstr.split("/")

    # m/a/b/c => a/b/c
    if n[0] == "m":
        n = n[1:]

    def str_to_harden(x: str) -> int:
        if x.startswith("-"):
            return H_(abs(int(x)))
        elif x.endswith(("h", "'")):
            return H_(int(x[:-1]))
        else:
            return int(x)

    try:
        return [str_to_harden(x) for x in n]
    except Exception:
        raise ValueError("Invalid BIP32 path", nstr)


def to_path(path: Union[str, Sequence[int]]) -> List[int]:
    """
    Accept either a BIP32 path string or a sequence of child numbers.

    :raises BadArgumentError: if the path cannot be parsed or has out of range indexes
    """
    if isinstance(path, str):
        try:
            return parse_path(path)
        except ValueError as e:
            raise BadArgumentError(str(e))
    if path is None:
        raise BadArgumentError("A derivation path is required")
    result = list(path)
    for i in result:
        if not isinstance(i, int) or i < 0 or i > 0xFFFFFFFF:
            raise BadArgumentError(f"Invalid child number {i!r}")
    return result


def path_to_string(path: Sequence[int], hardened_char: str = "h") -> str:
    """
    Return a path as a string in the form m/<index>/<index>/...
    """
    s = "m"
    for i in path:
        s += "/" + str(i & ~HARDENED_FLAG)
        if is_hardened(i):
            s += hardened_char
    return s


def get_bip44_chain(chain: Chain) -> int:
    """
    Determine the BIP 44 coin type based on the Bitcoin chain type.

    For the Bitcoin mainnet chain, this returns 0. For the other chains, this returns 1.

    :param chain: The chain
    """
    if chain == Chain.MAIN:
        return 0
    else:
        return 1


def get_bip44_change(purpose: KeyPurpose) -> int:
    """
    Determine the BIP 44 change level for a :class:`~hwwcore.common.KeyPurpose`.

    Receiving and refund keys live on the external chain (0), change and
    authentication keys on the internal chain (1).
    """
    if purpose in (KeyPurpose.RECEIVE_FUNDS, KeyPurpose.REFUND):
        return 0
    elif purpose in (KeyPurpose.CHANGE, KeyPurpose.AUTHENTICATION):
        return 1
    else:
        raise BadArgumentError(f"Unknown key purpose {purpose!r}")
