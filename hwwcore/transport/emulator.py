"""
Emulator Transport
******************

Connects a session to an in-process :class:`~hwwcore.emulator.DeviceEmulator`.
Replies go through a queue so reads time out exactly like they would on a real
device that stopped answering.
"""

import queue

from typing import (
    List,
    Optional,
)

from . import Transport, TransportException
from ..emulator import DeviceEmulator, PROFILES
from ..messages import HardwareWalletMessage


class EmulatorTransport(Transport):
    PATH_PREFIX = 'emulator'

    def __init__(self, device: DeviceEmulator) -> None:
        self.device = device
        self._opened = False
        self._replies: 'queue.Queue[HardwareWalletMessage]' = queue.Queue()

    @classmethod
    def enumerate(cls) -> List[Transport]:
        return [cls(DeviceEmulator.for_profile(profile)) for profile in PROFILES]

    @classmethod
    def find_by_path(cls, path: str) -> Transport:
        profile = path.split(':', 1)[1]
        try:
            return cls(DeviceEmulator.for_profile(profile))
        except ValueError as e:
            raise TransportException(str(e))

    def get_path(self) -> str:
        return f"{self.PATH_PREFIX}:{self.device.profile}"

    def is_present(self) -> bool:
        return self.device.plugged_in

    def open(self) -> None:
        if not self.device.plugged_in:
            raise TransportException("Device not found")
        self._opened = True

    def close(self) -> None:
        self._opened = False
        # Drop replies nobody is going to read
        while not self._replies.empty():
            self._replies.get_nowait()

    def _check(self) -> None:
        if not self.device.plugged_in:
            raise TransportException("Device disconnected")
        if not self._opened:
            raise TransportException("Transport is not open")

    def write(self, msg: HardwareWalletMessage) -> None:
        self._check()
        reply = self.device.process(msg)
        if reply is not None:
            self._replies.put(reply)

    def read(self, timeout: Optional[float] = None) -> Optional[HardwareWalletMessage]:
        self._check()
        try:
            return self._replies.get(timeout=timeout)
        except queue.Empty:
            return None


TRANSPORT = EmulatorTransport
