"""
Transports
**********

A transport carries typed protocol messages to and from one device. Byte framing
and message encoding live below this layer; everything above it only sees
:mod:`~hwwcore.messages` values.

Transports are found by path prefix: ``emulator:<profile>`` for the in-process
emulator and ``hid:<path>`` for a physical device.
"""

import importlib
import logging

from typing import (
    List,
    Optional,
    Type,
)

from ..messages import HardwareWalletMessage

LOG = logging.getLogger(__name__)

TRANSPORT_MODULES = ['emulator', 'hid']


class TransportException(Exception):
    pass


class Transport(object):
    """
    A raw connection to one device.

    At most one request may be outstanding: :meth:`write` a request, then
    :meth:`read` its single reply.
    """

    PATH_PREFIX: str = ""

    @classmethod
    def enumerate(cls) -> List['Transport']:
        raise NotImplementedError

    @classmethod
    def find_by_path(cls, path: str) -> 'Transport':
        for device in cls.enumerate():
            if device.get_path() == path:
                return device
        raise TransportException(f"{cls.PATH_PREFIX} device not found: {path}")

    def get_path(self) -> str:
        raise NotImplementedError

    def is_present(self) -> bool:
        """
        Whether the device is physically there. Does not talk to it.
        """
        raise NotImplementedError

    def open(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def write(self, msg: HardwareWalletMessage) -> None:
        raise NotImplementedError

    def read(self, timeout: Optional[float] = None) -> Optional[HardwareWalletMessage]:
        """
        Wait for the reply to the last request.

        :param timeout: Seconds to wait, forever if None
        :return: The reply, or None if nothing arrived in time
        :raises TransportException: if the device went away
        """
        raise NotImplementedError


def all_transports() -> List[Type[Transport]]:
    transports: List[Type[Transport]] = []
    for module in TRANSPORT_MODULES:
        try:
            imported = importlib.import_module('.' + module, __package__)
            transports.append(getattr(imported, 'TRANSPORT'))
        except ImportError as e:
            # Only warn so the emulator keeps working without the HID libraries
            LOG.warning(f"{e}, required for the {module} transport. Ignore if you do not want this transport.")
    return transports


def enumerate_devices() -> List[Transport]:
    devices: List[Transport] = []
    for transport in all_transports():
        try:
            found = transport.enumerate()
            LOG.info(f"Enumerating {transport.__name__}: found {len(found)} devices")
            devices.extend(found)
        except NotImplementedError:
            LOG.error(f"{transport.__name__} does not implement device enumeration")
        except Exception as e:
            LOG.error(f"Failed to enumerate {transport.__name__}. {e.__class__.__name__}: {e}")
    return devices


def get_transport(path: str) -> Transport:
    """
    Get the transport for a path such as ``emulator:wiped``.

    :raises TransportException: if no transport knows the path
    """
    for transport in all_transports():
        if path.startswith(transport.PATH_PREFIX + ':'):
            return transport.find_by_path(path)
    raise TransportException(f"Could not find device by path: {path}")
