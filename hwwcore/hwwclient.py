"""
Hardware Wallet Client Interface
********************************

The :class:`HardwareWalletClient` is what applications talk to. It owns one
:class:`~hwwcore.session.DeviceSession` and the sub-protocols built on top of it.

Operations return as soon as the device has answered, but the answer itself is
delivered as a :class:`~hwwcore.events.MessageEvent`. Subscribe before issuing
operations::

    client = HardwareWalletClient('emulator:initialised')
    events = client.subscribe()
    client.connect()
    client.initialise()
    for event in events:
        ...

Device failures, such as a wrong PIN, are events too. Exceptions are reserved for
programming errors and for a transport that went away.
"""

import logging

from typing import (
    Dict,
    Optional,
    Sequence,
    Union,
)

import semver

from . import messages
from .common import Chain, KeyPurpose
from .events import (
    DEFAULT_QUEUE_SIZE,
    MessageEventChannel,
    Subscription,
)
from .protocols import (
    AuthenticationProtocol,
    CipherKeyProtocol,
    DeterministicHierarchyResolver,
    PinPolicy,
    WalletResetProtocol,
)
from .protocols.auth import InitialiseContext, PinContext
from .protocols.reset import ResetContext
from .session import (
    ConnectionState,
    DEFAULT_TIMEOUT,
    DeviceSession,
)
from .transport import Transport, get_transport

LOG = logging.getLogger(__name__)

VENDORS = ("bitcointrezor.com", "trezor.io")

MINIMUM_FIRMWARE_VERSION: Dict[str, semver.Version] = {
    "1": semver.Version(1, 8, 0),
    "T": semver.Version(2, 1, 0),
}

OUTDATED_FIRMWARE_ERROR = """
Your Trezor firmware is out of date. Update it with the following command:
  trezorctl firmware-update
Or visit https://wallet.trezor.io/
""".strip()


class HardwareWalletClient(object):
    """Create a client for a device.

    Nothing is sent to the device until :meth:`connect` and :meth:`initialise` are called.
    """

    def __init__(
        self,
        path: str,
        chain: Chain = Chain.MAIN,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        pin_policy: Optional[PinPolicy] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        """
        :param path: Path to the device as returned by :func:`~hwwcore.commands.enumerate`
        :param chain: The chain, selects the BIP 44 coin type
        :param timeout: Seconds to wait for each device reply
        :param queue_size: Default size of subscriber queues
        :param pin_policy: Bound on consecutive wrong PINs
        :param transport: Use this transport instead of looking ``path`` up
        """
        self.path = path
        self.chain = chain
        self.channel = MessageEventChannel(queue_size)
        if transport is None:
            transport = get_transport(path)
        self.session = DeviceSession(transport, self.channel, timeout)

        self.auth = AuthenticationProtocol(self.session, pin_policy)
        self.reset = WalletResetProtocol(self.session)
        self.hierarchy = DeterministicHierarchyResolver(self.session)
        self.cipher = CipherKeyProtocol(self.session, chain)

    @property
    def state(self) -> ConnectionState:
        return self.session.state

    @property
    def features(self) -> Optional[messages.Features]:
        return self.auth.initialise_context.features

    @property
    def reset_context(self) -> Optional[ResetContext]:
        return self.reset.context

    @property
    def pin_context(self) -> Optional[PinContext]:
        return self.auth.context

    @property
    def initialise_context(self) -> InitialiseContext:
        return self.auth.initialise_context

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        """
        Receive every event published from now on.

        :param maxsize: Size of this subscriber's queue
        """
        return self.channel.subscribe(maxsize)

    def attach(self) -> bool:
        """
        Whether the device is physically present
        """
        return self.session.attach()

    def connect(self) -> bool:
        """
        Open the device. A ``DEVICE_CONNECTED`` event is published before this returns.
        """
        return self.session.connect()

    def disconnect(self) -> None:
        self.session.disconnect()

    def initialise(self) -> bool:
        """
        Start a new protocol session. The ``FEATURES`` event says whether the device is wiped.

        :return: Whether the device answered with its features
        """
        features = self.auth.initialise()
        if features is None:
            return False
        self._check_features(features)
        return True

    def _check_features(self, features: messages.Features) -> None:
        if features.vendor not in VENDORS:
            LOG.warning(f"Unexpected device vendor {features.vendor}")
        if features.bootloader_mode:
            return
        required = MINIMUM_FIRMWARE_VERSION.get(features.model or "1")
        if required is not None and semver.Version(*features.version) < required:
            LOG.warning(OUTDATED_FIRMWARE_ERROR)

    def get_deterministic_hierarchy(self, path: Union[str, Sequence[int]]) -> None:
        """
        Request the public key at ``path``, delivered as a ``PUBLIC_KEY`` event.

        :raises SequencingViolationError: for depths other than 0 to 3
        """
        self.hierarchy.get_deterministic_hierarchy(path)

    def pin_matrix_ack(self, pin: str) -> None:
        """
        Answer a ``PIN_MATRIX_REQUEST``.
        """
        self.auth.pin_matrix_ack(pin)

    def wipe_device(self) -> None:
        """
        Wipe the device. The ``BUTTON_REQUEST`` event asks the user to confirm on the device.
        """
        self.reset.wipe_device()

    def reset_device(
        self,
        strength: int = 128,
        label: str = "",
        language: str = "english",
        pin_protection: bool = True,
        passphrase_protection: bool = False,
        display_random: bool = False,
    ) -> None:
        """
        Start creating a new wallet on a wiped device.
        """
        self.reset.reset_device(strength, label, language, pin_protection, passphrase_protection, display_random)

    def entropy_ack(self, entropy: bytes) -> None:
        """
        Answer an ``ENTROPY_REQUEST``.
        """
        self.reset.entropy_ack(entropy)

    def word_ack(self, word: str) -> None:
        """
        Acknowledge one word of the recovery mnemonic, shown or confirmed.
        """
        self.reset.word_ack(word)

    def cipher_key_value(
        self,
        key_index: int,
        key_purpose: KeyPurpose,
        sub_index: int,
        key_label: bytes,
        key_value: bytes,
        encrypt: bool = True,
        ask_on_encrypt: bool = True,
        ask_on_decrypt: bool = True,
    ) -> None:
        """
        Encrypt or decrypt ``key_value`` on the device. See :mod:`~hwwcore.protocols.cipher`.
        """
        self.cipher.cipher_key_value(key_index, key_purpose, sub_index, key_label, key_value, encrypt, ask_on_encrypt, ask_on_decrypt)

    def button_ack(self) -> None:
        self.session.call(messages.ButtonAck())

    def cancel(self) -> None:
        """
        Cancel whatever the device is waiting for. Answered with a ``FAILURE`` event.
        """
        self.session.call(messages.Cancel())

    def ping(self, msg: str = "", pin_protection: bool = False) -> None:
        self.session.call(messages.Ping(message=msg, pin_protection=pin_protection))

    def clear_session(self) -> None:
        """
        Forget the PIN. The next protected operation asks for it again.
        """
        self.session.call(messages.ClearSession())

    def close(self) -> None:
        "Close the device."
        self.session.close()
