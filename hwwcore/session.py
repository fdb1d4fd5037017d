"""
Device Session
**************

A :class:`DeviceSession` is one connection to one device. It owns the transport,
serializes requests so that only one is ever outstanding, and broadcasts every
reply on the :class:`~hwwcore.events.MessageEventChannel`.

Protocol state machines register as observers and get each request/reply pair
right after the reply has been published.
"""

import logging
import threading

from enum import Enum
from typing import (
    List,
    Optional,
)

from .errors import (
    DeviceConnectionError,
    DeviceFailureError,
    DeviceTimeoutError,
)
from .events import (
    MessageEvent,
    MessageEventChannel,
    MessageEventType,
)
from .messages import (
    Failure,
    FailureType,
    HardwareWalletMessage,
)
from .transport import Transport, TransportException

LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0 # seconds


class ConnectionState(Enum):
    DETACHED = 0
    ATTACHED = 1
    CONNECTED = 2
    DISCONNECTED = 3
    FAILED = 4

    def __str__(self) -> str:
        return str(self.name).lower()


class SessionObserver(object):
    """
    Something that follows the protocol exchange, such as a protocol state machine.
    """

    def observe(self, request: HardwareWalletMessage, reply: HardwareWalletMessage) -> None:
        raise NotImplementedError


class DeviceSession(object):
    def __init__(self, transport: Transport, channel: MessageEventChannel, timeout: Optional[float] = DEFAULT_TIMEOUT) -> None:
        """
        :param transport: The transport of the device
        :param channel: Where events are published
        :param timeout: Seconds to wait for each reply
        """
        LOG.info("creating session for device: {}".format(transport.get_path()))
        self.transport = transport
        self.channel = channel
        self.timeout = timeout
        self.state = ConnectionState.DETACHED
        self._observers: List[SessionObserver] = []
        self._lock = threading.RLock()

    def add_observer(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def fire(self, event_type: MessageEventType, msg: Optional[HardwareWalletMessage] = None) -> MessageEvent:
        """
        Publish a host side event, ordered with the device's own replies.
        """
        with self._lock:
            return self.channel.fire(event_type, msg)

    def attach(self) -> bool:
        """
        Check that the device is physically present. Nothing is sent to it.
        """
        with self._lock:
            if not self.transport.is_present():
                LOG.debug("Device %s is not present", self.transport.get_path())
                return False
            if self.state in (ConnectionState.DETACHED, ConnectionState.DISCONNECTED, ConnectionState.FAILED):
                self.state = ConnectionState.ATTACHED
                self.channel.fire(MessageEventType.DEVICE_ATTACHED)
            return True

    def connect(self) -> bool:
        """
        Open the transport. Publishes ``DEVICE_CONNECTED`` before returning.
        """
        with self._lock:
            if self.state == ConnectionState.CONNECTED:
                return True
            try:
                self.transport.open()
            except TransportException as e:
                LOG.error(f"Unable to connect to {self.transport.get_path()}: {e}")
                self.state = ConnectionState.FAILED
                return False
            self.state = ConnectionState.CONNECTED
            self.channel.fire(MessageEventType.DEVICE_CONNECTED)
            return True

    def disconnect(self) -> None:
        with self._lock:
            if self.state != ConnectionState.CONNECTED:
                return
            self._close_transport()
            self.state = ConnectionState.DISCONNECTED
            self.channel.fire(MessageEventType.DEVICE_DISCONNECTED)

    def _close_transport(self) -> None:
        try:
            self.transport.close()
        except TransportException as e:
            LOG.debug(f"Ignoring error while closing transport: {e}")

    def _fail(self, failure: Optional[Failure] = None) -> None:
        self._close_transport()
        self.state = ConnectionState.FAILED
        self.channel.fire(MessageEventType.DEVICE_FAILED, failure)

    def call(self, msg: HardwareWalletMessage) -> HardwareWalletMessage:
        """
        Send one request and wait for its reply.

        :param msg: The request
        :return: The reply, already published on the channel
        :raises DeviceConnectionError: if the session is not connected or the device went away
        :raises DeviceTimeoutError: if no reply arrived within the timeout
        """
        with self._lock:
            if self.state != ConnectionState.CONNECTED:
                raise DeviceConnectionError('Device is not connected')

            LOG.debug("Sending %s", msg.message_name())
            try:
                self.transport.write(msg)
                reply = self.transport.read(self.timeout)
            except TransportException as e:
                self._fail()
                raise DeviceConnectionError(f"Device disconnected: {e}")

            if reply is None:
                failure = Failure(code=FailureType.Timeout, message=f"No reply to {msg.message_name()} after {self.timeout} seconds")
                self._fail(failure)
                raise DeviceTimeoutError(failure.message)

            try:
                event = MessageEvent.from_reply(reply)
            except ValueError as e:
                self._fail()
                raise DeviceFailureError(str(e))

            LOG.debug("Received %s", reply.message_name())
            self.channel.publish(event)
            for observer in self._observers:
                observer.observe(msg, reply)
            return reply

    def close(self) -> None:
        self.disconnect()
