#! /usr/bin/env python3

"""
Commands
********

The functions in this module drive complete flows on a device and return their outcome as
JSON ready dictionaries. Each function that takes a ``client`` uses a
:class:`~hwwcore.hwwclient.HardwareWalletClient` that is already connected and initialised,
as returned by :func:`~get_client`.

The client itself reports device replies as events. The commands subscribe to them,
answer intermediate requests where they can, and turn a ``FAILURE`` event into a
:class:`~hwwcore.errors.DeviceFailureError`.

The :func:`~enumerate` function returns information about what devices are available to be connected to.
The ``path`` of each can then be used with :func:`~get_client`.
"""

import logging
import os

from dataclasses import asdict
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Union,
)

from .common import (
    Chain,
    KeyPurpose,
)
from .errors import (
    ActionCanceledError,
    BadArgumentError,
    DeviceConnectionError,
    DeviceFailureError,
    DeviceNotReadyError,
    UnavailableActionError,
    common_err_msgs,
    handle_errors,
)
from .events import (
    MessageEvent,
    MessageEventType,
    Subscription,
)
from .hwwclient import HardwareWalletClient
from .messages import FailureType
from .protocols.auth import PinPolicy
from .protocols.hierarchy import to_extended_key
from .protocols.reset import WORD_STEPS
from .session import DEFAULT_TIMEOUT
from .transport import Transport, enumerate_devices

LOG = logging.getLogger(__name__)

# 24 words confirmed twice is the longest a reset can take
MAX_WORD_STEPS = 2 * 24


def get_client(
    device_path: str,
    chain: Chain = Chain.MAIN,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    pin_policy: Optional[PinPolicy] = None,
    transport: Optional[Transport] = None,
) -> HardwareWalletClient:
    """
    Returns a connected and initialised HardwareWalletClient for the device at the device path

    :param device_path: The path specifying where the device can be accessed as returned by :func:`~enumerate`
    :param chain: The Chain this client will be using
    :param timeout: Seconds to wait for each device reply
    :param pin_policy: Bound on consecutive wrong PINs
    :param transport: An already enumerated transport for ``device_path``
    :return: A :class:`~hwwcore.hwwclient.HardwareWalletClient` to interact with the device
    :raises: DeviceConnectionError: if the device is not there or cannot be opened
    """
    client = HardwareWalletClient(device_path, chain=chain, timeout=timeout, pin_policy=pin_policy, transport=transport)
    try:
        if not client.attach():
            raise DeviceConnectionError(f"Device not found: {device_path}")
        if not client.connect():
            raise DeviceConnectionError(f"Unable to connect to {device_path}")
        if not client.initialise():
            raise DeviceNotReadyError("Device did not report its features")
    except Exception:
        client.close()
        raise
    return client

# Get a list of all available hardware wallets
def enumerate(allow_emulators: bool = False, chain: Chain = Chain.MAIN) -> List[Dict[str, Any]]:
    """
    Enumerate all of the devices that can potentially be accessed.

    :param allow_emulators: Whether to include the in-process emulator profiles
    :param chain: The Chain the clients will be using
    :return: A list of devices for which clients can be created for.
    """
    result: List[Dict[str, Any]] = []

    for transport in enumerate_devices():
        emulated = transport.PATH_PREFIX == 'emulator'
        if emulated and not allow_emulators:
            continue

        d_data: Dict[str, Any] = {}
        d_data['type'] = 'trezor'
        d_data['model'] = 'trezor_1_simulator' if emulated else 'trezor_1'
        d_data['path'] = transport.get_path()

        client = None
        with handle_errors(common_err_msgs["enumerate"], d_data):
            client = get_client(d_data['path'], chain, transport=transport)
            features = client.features
            assert features is not None
            d_data['label'] = features.label
            d_data['needs_pin_sent'] = features.pin_protection and not features.pin_cached
            if features.initialized:
                d_data['fingerprint'] = _master_fingerprint(client)
            else:
                d_data['error'] = 'Not initialized'

        if client:
            client.close()

        result.append(d_data)
    return result


def _reply(events: Subscription, *expected: MessageEventType) -> MessageEvent:
    """
    Take the device reply to the last operation from ``events``.

    :raises DeviceFailureError: if the device answered with a failure or something unexpected
    """
    replies = [e for e in events.drain() if not e.type.is_lifecycle]
    if events.overflowed:
        raise DeviceFailureError("Missed device replies")
    if len(replies) == 0:
        raise DeviceFailureError("No reply from device")
    event = replies[-1]
    if event.type == MessageEventType.FAILURE:
        failure = event.message
        if failure.code in (FailureType.ActionCancelled, FailureType.PinCancelled):
            raise ActionCanceledError(failure.message)
        raise DeviceFailureError(failure.message)
    if expected and event.type not in expected:
        raise DeviceFailureError(f"Unexpected {event.type} from device")
    return event


def _run(client: HardwareWalletClient, operation: Callable[[], None], *expected: MessageEventType) -> MessageEvent:
    events = client.subscribe()
    try:
        operation()
        return _reply(events, *expected)
    finally:
        events.close()


def _master_fingerprint(client: HardwareWalletClient) -> str:
    event = _run(client, lambda: client.get_deterministic_hierarchy([]), MessageEventType.PUBLIC_KEY)
    return to_extended_key(event.message).fingerprint().hex()


def getfeatures(client: HardwareWalletClient) -> Dict[str, Any]:
    """
    Get the features the device reported when it was initialised

    :param client: The client to interact with
    :return: The features, with the firmware version as ``"<major>.<minor>.<patch>"``
    """
    features = client.features
    if features is None:
        raise DeviceNotReadyError("Device has not been initialised")
    result = asdict(features)
    result['version'] = '.'.join(str(v) for v in features.version)
    return result


def getxpub(client: HardwareWalletClient, path: str, expert: bool = False) -> Dict[str, Any]:
    """
    Get the master public key at a path from a client

    :param client: The client to interact with
    :param path: The derivation path for the public key to retrieve, at most three levels deep
    :param expert: Whether to return the decoded key as well
    :return: A dictionary containing the public key at the ``bip32_path``.
        With expert mode, the information contained within the xpub are also returned.
        Returned as ``{"xpub": <xpub string>}``.
    """
    event = _run(client, lambda: client.get_deterministic_hierarchy(path), MessageEventType.PUBLIC_KEY)
    xpub = to_extended_key(event.message, testnet=client.chain != Chain.MAIN)
    result: Dict[str, Any] = {"xpub": xpub.to_string()}
    if expert:
        result.update(xpub.get_printable_dict())
    return result


def unlock(client: HardwareWalletClient, pin: str) -> Dict[str, bool]:
    """
    Unlock the device with its PIN. Does nothing if it is already unlocked.

    :param client: The client to interact with
    :param pin: The PIN, as positions on the device's PIN matrix
    :return: A dictionary with the ``success`` key.
    """
    event = _run(client, lambda: client.ping(pin_protection=True), MessageEventType.PIN_MATRIX_REQUEST, MessageEventType.SUCCESS)
    if event.type == MessageEventType.SUCCESS:
        return {"success": True}
    _run(client, lambda: client.pin_matrix_ack(pin), MessageEventType.BUTTON_REQUEST, MessageEventType.SUCCESS)
    return {"success": client.auth.unlocked}


def setup_device(client: HardwareWalletClient, pin: str, label: str = "", strength: int = 128, entropy: Optional[bytes] = None) -> Dict[str, Union[bool, int]]:
    """
    Setup a device that has not yet been initialized.

    The recovery words are shown on the device only. Each of them is acknowledged as the
    user writes it down and again when it is checked.

    :param client: The client to interact with
    :param pin: The PIN to protect the new wallet with, entered twice
    :param label: The label to apply to the newly setup device
    :param strength: Seed strength in bits
    :param entropy: Host entropy to mix in, random if not given
    :return: A dictionary with the ``success`` key and the number of ``words``.
    """
    features = client.features
    if features is not None and features.initialized:
        raise UnavailableActionError("Device is already initialized. Use wipe first.")
    if not pin:
        raise BadArgumentError("A PIN is required to setup the device")

    _run(client, lambda: client.reset_device(strength=strength, label=label), MessageEventType.PIN_MATRIX_REQUEST)
    _run(client, lambda: client.pin_matrix_ack(pin), MessageEventType.PIN_MATRIX_REQUEST)
    _run(client, lambda: client.pin_matrix_ack(pin), MessageEventType.ENTROPY_REQUEST)

    if entropy is None:
        entropy = os.urandom(32)
    _run(client, lambda: client.entropy_ack(entropy), MessageEventType.BUTTON_REQUEST)

    context = client.reset_context
    words = context.word_count if context is not None else WORD_STEPS // 2
    for _ in range(MAX_WORD_STEPS):
        event = _run(client, lambda: client.word_ack(""), MessageEventType.BUTTON_REQUEST, MessageEventType.SUCCESS)
        if event.type == MessageEventType.SUCCESS:
            LOG.info(f"Wallet created, {words} recovery words")
            return {"success": True, "words": words}
    raise DeviceFailureError("Device did not finish the reset")


def wipe_device(client: HardwareWalletClient) -> Dict[str, bool]:
    """
    Wipe a device

    :param client: The client to interact with
    :return: A dictionary with the ``success`` key.
    """
    _run(client, client.wipe_device, MessageEventType.BUTTON_REQUEST)
    _run(client, client.button_ack, MessageEventType.SUCCESS)
    return {"success": True}


def cipher_key(
    client: HardwareWalletClient,
    key_index: int,
    sub_index: int,
    label: str,
    value: str,
    key_purpose: KeyPurpose = KeyPurpose.RECEIVE_FUNDS,
    encrypt: bool = True,
    pin: Optional[str] = None,
) -> Dict[str, str]:
    """
    Encrypt or decrypt a value with a key that stays on the device

    :param client: The client to interact with
    :param key_index: The account of the key
    :param sub_index: The index of the key
    :param label: Shown on the device and mixed into the key
    :param value: Hex encoded value, a multiple of 16 bytes long
    :param key_purpose: Selects the external or internal chain
    :param encrypt: Encrypt if True, decrypt otherwise
    :param pin: PIN to send if the device asks for it
    :return: A dictionary containing the hex encoded result as ``value``
    """
    try:
        data = bytes.fromhex(value)
    except ValueError:
        raise BadArgumentError("Value must be hex encoded")

    def operation() -> None:
        client.cipher_key_value(key_index, key_purpose, sub_index, label.encode(), data, encrypt, True, True)

    event = _run(client, operation, MessageEventType.CIPHERED_KEY_VALUE, MessageEventType.PIN_MATRIX_REQUEST)
    if event.type == MessageEventType.PIN_MATRIX_REQUEST:
        if pin is None:
            raise DeviceNotReadyError("Device is locked. Unlock it with 'unlock' or pass --pin.")
        _run(client, lambda: client.pin_matrix_ack(pin), MessageEventType.BUTTON_REQUEST, MessageEventType.SUCCESS)
        # The request that asked for the PIN has to be made again
        event = _run(client, operation, MessageEventType.CIPHERED_KEY_VALUE)
    return {"value": event.message.value.hex()}
