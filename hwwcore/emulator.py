"""
Device Emulator
***************

An in-process stand-in for a Trezor One, answering every request with exactly one reply.

Two profiles mirror the two situations a wallet application meets:

``initialised``
    A device that already holds a wallet (the well known test mnemonic) and is PIN locked.

``wiped``
    A factory fresh device. The first ``Initialize`` reports it wiped. From then on it
    reports itself initialised: the transition out of the factory state is one way for
    the session that started it. A ``WipeDevice`` in between does not bring
    the wiped report back.

The emulator knows one operator PIN (``1234`` by default). Every other PIN is rejected with
``Failure(PinInvalid)``, however often it is tried, and never advances the state of the
correct PIN. A correct PIN on a device that is already unlocked is answered with
``Success``, so every request still gets exactly one reply.

Wallet creation follows the device's own order: new PIN, PIN confirmation, host entropy,
then 24 word steps (12 words shown on the display, 12 confirmed back) and a final
``Success``. Mnemonic words never leave the emulator.
"""

import hashlib
import hmac
import logging
import os

from typing import (
    List,
    Optional,
)

import pyaes
from mnemonic import Mnemonic

from . import messages
from .key import ExtendedKey
from .messages import (
    ButtonRequestType,
    FailureType,
    HardwareWalletMessage,
    PinMatrixRequestType,
)

LOG = logging.getLogger(__name__)

PROFILES = ('initialised', 'wiped')

DEFAULT_PIN = '1234'
# From Trezor device tests
TEST_MNEMONIC = 'alcohol woman abuse must during monitor noble actual mixed trade anger aisle'
FIRMWARE_VERSION = (1, 12, 1)

# Reset states
PIN_FIRST = 'pin_first'
PIN_SECOND = 'pin_second'
ENTROPY = 'entropy'
WORDS = 'words'


def _failure(code: FailureType, message: str) -> messages.Failure:
    return messages.Failure(code=code, message=message)


def cipher_key_value(node: ExtendedKey, msg: messages.CipherKeyValue) -> bytes:
    """
    Encrypt or decrypt ``msg.value`` the way Trezor firmware does.

    The AES-256-CBC key and IV come from an HMAC-SHA512 keyed with the node's private key
    over the label and the confirmation flags. No padding is applied.
    """
    if node.privkey is None:
        raise ValueError("A private node is required")
    data = msg.key + (b"E1" if msg.ask_on_encrypt else b"E0") + (b"D1" if msg.ask_on_decrypt else b"D0")
    digest = hmac.new(node.privkey, data, hashlib.sha512).digest()
    key = digest[:32]
    iv = msg.iv if len(msg.iv) == 16 else digest[32:48]

    aes_cbc = pyaes.AESModeOfOperationCBC(key, iv=iv)
    blocks = [msg.value[i:i + 16] for i in range(0, len(msg.value), 16)]
    if msg.encrypt:
        return b''.join(aes_cbc.encrypt(block) for block in blocks)
    return b''.join(aes_cbc.decrypt(block) for block in blocks)


class DeviceEmulator(object):
    def __init__(
        self,
        profile: str = 'initialised',
        pin: str = DEFAULT_PIN,
        mnemonic: str = TEST_MNEMONIC,
        internal_entropy: Optional[bytes] = None,
        label: str = 'hwwcore emulator',
    ) -> None:
        if profile not in PROFILES:
            raise ValueError(f"Unknown emulator profile {profile!r}")
        self.profile = profile
        self.pin = pin
        self.label = label
        self.plugged_in = True
        # When set, requests are swallowed and never answered
        self.stalled = False
        self.received: List[HardwareWalletMessage] = []

        self._internal_entropy = internal_entropy if internal_entropy is not None else os.urandom(32)
        self._mnemonic = Mnemonic('english')
        self._seed: Optional[bytes] = None
        self._strength = 128
        self._words: List[str] = []
        self._word_step = 0
        self._pin_acks = 0
        self._initialize_calls = 0
        self.unlocked = False

        if profile == 'initialised':
            self._load_mnemonic(mnemonic)
            self.initialized = True
            self.reset_state: Optional[str] = None
        else:
            self.initialized = False
            self.reset_state = PIN_FIRST

    @classmethod
    def for_profile(cls, profile: str) -> 'DeviceEmulator':
        return cls(profile=profile)

    def _load_mnemonic(self, words: str) -> None:
        self._seed = Mnemonic.to_seed(words, passphrase="")

    @property
    def master(self) -> Optional[ExtendedKey]:
        if self._seed is None:
            return None
        return ExtendedKey.from_seed(self._seed)

    def unplug(self) -> None:
        self.plugged_in = False

    def plug_in(self) -> None:
        self.plugged_in = True

    def features(self, initialized: Optional[bool] = None) -> messages.Features:
        return messages.Features(
            major_version=FIRMWARE_VERSION[0],
            minor_version=FIRMWARE_VERSION[1],
            patch_version=FIRMWARE_VERSION[2],
            device_id=f"EMULATOR-{self.profile.upper()}",
            pin_protection=True,
            label=self.label,
            initialized=self.initialized if initialized is None else initialized,
            pin_cached=self.unlocked,
        )

    def process(self, msg: HardwareWalletMessage) -> Optional[HardwareWalletMessage]:
        """
        Handle one request and return its reply, or None while stalled.
        """
        self.received.append(msg)
        if self.stalled:
            LOG.debug("Emulator stalled, dropping %s", msg.message_name())
            return None
        handler = getattr(self, '_handle_' + msg.message_name(), None)
        if handler is None:
            return _failure(FailureType.UnexpectedMessage, "Unexpected message")
        reply = handler(msg)
        LOG.debug("Emulator %s -> %s", msg.message_name(), reply.message_name())
        return reply

    def _handle_Initialize(self, msg: messages.Initialize) -> HardwareWalletMessage:
        # Initialize aborts any workflow in progress
        if self.reset_state in (ENTROPY, WORDS):
            self.reset_state = PIN_FIRST if self._seed is None else None
        self._initialize_calls += 1
        if self.profile == 'wiped':
            # Wiped on the first call of the session only, whatever happened since
            return self.features(initialized=self._initialize_calls > 1)
        return self.features()

    def _handle_GetFeatures(self, msg: messages.GetFeatures) -> HardwareWalletMessage:
        return self.features()

    def _handle_Ping(self, msg: messages.Ping) -> HardwareWalletMessage:
        if msg.pin_protection and not self.unlocked:
            return messages.PinMatrixRequest(type=PinMatrixRequestType.Current)
        if msg.button_protection:
            return messages.ButtonRequest(code=ButtonRequestType.ProtectCall)
        return messages.Success(message=msg.message)

    def _handle_ClearSession(self, msg: messages.ClearSession) -> HardwareWalletMessage:
        self.unlocked = False
        return messages.Success(message="Session cleared")

    def _handle_Cancel(self, msg: messages.Cancel) -> HardwareWalletMessage:
        if self.reset_state in (PIN_SECOND, ENTROPY, WORDS):
            self.reset_state = PIN_FIRST
        return _failure(FailureType.ActionCancelled, "Cancelled")

    def _handle_ButtonAck(self, msg: messages.ButtonAck) -> HardwareWalletMessage:
        return messages.Success(message="Confirmed")

    def _handle_GetPublicKey(self, msg: messages.GetPublicKey) -> HardwareWalletMessage:
        master = self.master
        if master is None:
            return _failure(FailureType.NotInitialized, "Device not initialized")
        node = master.derive_path(msg.address_n)
        return messages.PublicKey(
            node=messages.HDNode(
                depth=node.depth,
                fingerprint=int.from_bytes(node.parent_fingerprint, byteorder="big"),
                child_num=node.child_num,
                chain_code=node.chaincode,
                public_key=node.pubkey,
            ),
            xpub=node.neuter().to_string(),
        )

    def _handle_PinMatrixAck(self, msg: messages.PinMatrixAck) -> HardwareWalletMessage:
        if msg.pin != self.pin:
            return _failure(FailureType.PinInvalid, "Invalid PIN")

        if self.reset_state == PIN_FIRST:
            self.reset_state = PIN_SECOND
            return messages.PinMatrixRequest(type=PinMatrixRequestType.NewSecond)
        if self.reset_state == PIN_SECOND:
            self.reset_state = ENTROPY
            return messages.EntropyRequest()

        self._pin_acks += 1
        if self._pin_acks == 1:
            self.unlocked = True
            return messages.ButtonRequest(code=ButtonRequestType.ProtectCall)
        return messages.Success(message="PIN already accepted")

    def _handle_WipeDevice(self, msg: messages.WipeDevice) -> HardwareWalletMessage:
        self._seed = None
        self._words = []
        self._word_step = 0
        self._pin_acks = 0
        self.unlocked = False
        self.initialized = False
        self.reset_state = PIN_FIRST
        return messages.ButtonRequest(code=ButtonRequestType.WipeDevice)

    def _handle_ResetDevice(self, msg: messages.ResetDevice) -> HardwareWalletMessage:
        if self._seed is not None:
            return _failure(FailureType.UnexpectedMessage, "Device is already initialized. Use Wipe first.")
        if msg.strength not in (128, 192, 256):
            return _failure(FailureType.DataError, "Invalid strength (has to be 128, 192 or 256 bits)")
        self._strength = msg.strength
        if msg.label:
            self.label = msg.label
        if msg.pin_protection:
            self.reset_state = PIN_FIRST
            return messages.PinMatrixRequest(type=PinMatrixRequestType.NewFirst)
        self.reset_state = ENTROPY
        return messages.EntropyRequest()

    def _handle_EntropyAck(self, msg: messages.EntropyAck) -> HardwareWalletMessage:
        if self.reset_state != ENTROPY:
            return _failure(FailureType.UnexpectedMessage, "Not in Reset mode")
        entropy = hashlib.sha256(self._internal_entropy + msg.entropy).digest()[:self._strength // 8]
        self._words = self._mnemonic.to_mnemonic(entropy).split(' ')
        self._word_step = 0
        self.reset_state = WORDS
        return messages.ButtonRequest(code=ButtonRequestType.ConfirmWord, data=self._step_text())

    def _step_text(self) -> str:
        count = len(self._words)
        if self._word_step < count:
            return f"Write down word {self._word_step + 1} of {count}"
        return f"Check word {self._word_step - count + 1} of {count}"

    def _handle_WordAck(self, msg: messages.WordAck) -> HardwareWalletMessage:
        if self.reset_state != WORDS:
            return _failure(FailureType.UnexpectedMessage, "Not in Reset mode")
        self._word_step += 1
        if self._word_step < 2 * len(self._words):
            return messages.ButtonRequest(code=ButtonRequestType.ConfirmWord, data=self._step_text())

        self._load_mnemonic(' '.join(self._words))
        self._words = []
        self._word_step = 0
        self.reset_state = None
        self.initialized = True
        return messages.Success(message="Device reset")

    def _handle_CipherKeyValue(self, msg: messages.CipherKeyValue) -> HardwareWalletMessage:
        master = self.master
        if master is None:
            return _failure(FailureType.NotInitialized, "Device not initialized")
        if not self.unlocked:
            return messages.PinMatrixRequest(type=PinMatrixRequestType.Current)
        if len(msg.value) % 16 > 0:
            return _failure(FailureType.DataError, "Value length must be a multiple of 16")
        node = master.derive_path(msg.address_n)
        return messages.CipheredKeyValue(value=cipher_key_value(node, msg))
