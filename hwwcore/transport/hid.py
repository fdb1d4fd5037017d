"""
HID Transport
*************

Physical Trezor One devices over USB HID.

This transport finds devices and owns the HID handle. Turning messages into
64 byte reports and back is the job of a :class:`MessageCodec` supplied by the
caller; without one the device can be attached but not talked to.
"""

import logging

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

import hid

from . import Transport, TransportException
from ..messages import HardwareWalletMessage

LOG = logging.getLogger(__name__)

TREZOR_VENDOR_ID = 0x534c
TREZOR_PRODUCT_ID = 0x0001
DEBUG_INTERFACE = 1


class MessageCodec(object):
    """
    Encodes and decodes messages on an open HID handle.
    """

    def write(self, handle: Any, msg: HardwareWalletMessage) -> None:
        raise NotImplementedError

    def read(self, handle: Any, timeout: Optional[float]) -> Optional[HardwareWalletMessage]:
        raise NotImplementedError


def find_hid_devices() -> List[Dict[str, Any]]:
    """
    List the HID interfaces of attached Trezor One devices, skipping the debug link.
    """
    devices = []
    for d in hid.enumerate(TREZOR_VENDOR_ID, TREZOR_PRODUCT_ID):
        if d.get('interface_number', 0) == DEBUG_INTERFACE:
            continue
        devices.append(d)
    return devices


class HidTransport(Transport):
    PATH_PREFIX = 'hid'

    def __init__(self, hid_path: bytes, codec: Optional[MessageCodec] = None) -> None:
        self.hid_path = hid_path
        self.codec = codec
        self.handle: Optional[Any] = None

    @classmethod
    def enumerate(cls) -> List[Transport]:
        return [cls(d['path']) for d in find_hid_devices()]

    def get_path(self) -> str:
        return f"{self.PATH_PREFIX}:{self.hid_path.decode()}"

    def is_present(self) -> bool:
        return any(d['path'] == self.hid_path for d in find_hid_devices())

    def open(self) -> None:
        self.handle = hid.device()
        try:
            self.handle.open_path(self.hid_path)
        except OSError as e:
            self.handle = None
            raise TransportException(f"Unable to open {self.get_path()}: {e}")
        self.handle.set_nonblocking(True)
        LOG.debug("Opened %s", self.get_path())

    def close(self) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None

    def _require_codec(self) -> MessageCodec:
        if self.handle is None:
            raise TransportException("Transport is not open")
        if self.codec is None:
            raise TransportException("No message codec configured for HID devices")
        return self.codec

    def write(self, msg: HardwareWalletMessage) -> None:
        codec = self._require_codec()
        try:
            codec.write(self.handle, msg)
        except OSError as e:
            raise TransportException(f"Device disconnected: {e}")

    def read(self, timeout: Optional[float] = None) -> Optional[HardwareWalletMessage]:
        codec = self._require_codec()
        try:
            return codec.read(self.handle, timeout)
        except OSError as e:
            raise TransportException(f"Device disconnected: {e}")


TRANSPORT = HidTransport
