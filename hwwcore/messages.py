"""
Protocol Messages
*****************

The typed message vocabulary exchanged with the device.

Messages are immutable once constructed. Requests are built by the protocol modules;
replies are produced by the transport, which decodes the device's wire format into
these classes.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import (
    Optional,
    Tuple,
)


class FailureType(IntEnum):
    """
    Failure codes. Values below 100 are the device's own codes, the others are
    produced on the host side and never come over the wire.
    """
    UnexpectedMessage = 1
    ButtonExpected = 2
    DataError = 3
    ActionCancelled = 4
    PinExpected = 5
    PinCancelled = 6
    PinInvalid = 7
    InvalidSignature = 8
    ProcessError = 9
    NotEnoughFunds = 10
    NotInitialized = 11
    PinMismatch = 12
    FirmwareError = 99
    Timeout = 100
    PinAttemptsExceeded = 101


class ButtonRequestType(IntEnum):
    Other = 1
    FeeOverThreshold = 2
    ConfirmOutput = 3
    ResetDevice = 4
    ConfirmWord = 5
    WipeDevice = 6
    ProtectCall = 7
    SignTx = 8
    FirmwareCheck = 9
    Address = 10
    PublicKey = 11


class PinMatrixRequestType(IntEnum):
    Current = 1
    NewFirst = 2
    NewSecond = 3


class HardwareWalletMessage(object):
    """
    Base class of every message, request or reply.
    """

    def message_name(self) -> str:
        return type(self).__name__


# Requests

@dataclass(frozen=True)
class Initialize(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class GetFeatures(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class Ping(HardwareWalletMessage):
    message: str = ""
    button_protection: bool = False
    pin_protection: bool = False


@dataclass(frozen=True)
class ClearSession(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class Cancel(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class GetPublicKey(HardwareWalletMessage):
    address_n: Tuple[int, ...] = ()
    show_display: bool = False


@dataclass(frozen=True)
class PinMatrixAck(HardwareWalletMessage):
    pin: str = field(default="", repr=False)


@dataclass(frozen=True)
class ButtonAck(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class WipeDevice(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class ResetDevice(HardwareWalletMessage):
    display_random: bool = False
    strength: int = 128
    passphrase_protection: bool = False
    pin_protection: bool = True
    language: str = "english"
    label: str = ""


@dataclass(frozen=True)
class EntropyAck(HardwareWalletMessage):
    entropy: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class WordAck(HardwareWalletMessage):
    word: str = field(default="", repr=False)


@dataclass(frozen=True)
class CipherKeyValue(HardwareWalletMessage):
    address_n: Tuple[int, ...] = ()
    key: bytes = b""
    value: bytes = field(default=b"", repr=False)
    encrypt: bool = True
    ask_on_encrypt: bool = True
    ask_on_decrypt: bool = True
    iv: bytes = b""


# Replies

@dataclass(frozen=True)
class Features(HardwareWalletMessage):
    vendor: str = "bitcointrezor.com"
    major_version: int = 1
    minor_version: int = 3
    patch_version: int = 0
    bootloader_mode: bool = False
    device_id: str = ""
    pin_protection: bool = False
    passphrase_protection: bool = False
    language: str = "english"
    label: str = ""
    initialized: bool = False
    pin_cached: bool = False
    passphrase_cached: bool = False
    model: str = "1"

    @property
    def version(self) -> Tuple[int, int, int]:
        return (self.major_version, self.minor_version, self.patch_version)


@dataclass(frozen=True)
class HDNode(HardwareWalletMessage):
    depth: int
    fingerprint: int
    child_num: int
    chain_code: bytes
    public_key: bytes


@dataclass(frozen=True)
class PublicKey(HardwareWalletMessage):
    node: HDNode
    xpub: str = ""


@dataclass(frozen=True)
class PinMatrixRequest(HardwareWalletMessage):
    type: Optional[PinMatrixRequestType] = None


@dataclass(frozen=True)
class ButtonRequest(HardwareWalletMessage):
    code: ButtonRequestType = ButtonRequestType.Other
    data: str = ""


@dataclass(frozen=True)
class EntropyRequest(HardwareWalletMessage):
    pass


@dataclass(frozen=True)
class CipheredKeyValue(HardwareWalletMessage):
    value: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class Success(HardwareWalletMessage):
    message: str = ""


@dataclass(frozen=True)
class Failure(HardwareWalletMessage):
    code: FailureType = FailureType.ProcessError
    message: str = ""
