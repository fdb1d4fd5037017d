"""
Message Events
**************

Everything interesting the device does is published as a :class:`MessageEvent` on a
:class:`MessageEventChannel`. Device replies are mirrored one to one, and connection
lifecycle changes get their own event types.

Each subscriber owns a bounded queue. Publishing never blocks: a subscriber that
falls behind far enough to fill its queue is marked as overflowed and closed, the
device session carries on.
"""

import logging
import queue
import threading

from dataclasses import dataclass
from enum import Enum
from typing import (
    Iterator,
    List,
    Optional,
)

from . import messages
from .messages import HardwareWalletMessage

LOG = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 64


class MessageEventType(Enum):
    """
    The type of a :class:`MessageEvent`
    """
    FEATURES = 'features'
    PUBLIC_KEY = 'public_key'
    PIN_MATRIX_REQUEST = 'pin_matrix_request'
    BUTTON_REQUEST = 'button_request'
    ENTROPY_REQUEST = 'entropy_request'
    CIPHERED_KEY_VALUE = 'ciphered_key_value'
    SUCCESS = 'success'
    FAILURE = 'failure'
    DEVICE_ATTACHED = 'device_attached'
    DEVICE_CONNECTED = 'device_connected'
    DEVICE_DISCONNECTED = 'device_disconnected'
    DEVICE_FAILED = 'device_failed'

    def __str__(self) -> str:
        return str(self.name).lower()

    @property
    def is_lifecycle(self) -> bool:
        """
        Whether this event is about the connection rather than a device reply
        """
        return self.name.startswith('DEVICE_')

    @staticmethod
    def from_message(msg: HardwareWalletMessage) -> 'MessageEventType':
        """
        Get the event type mirroring a device reply.

        :raises ValueError: if the message is not a reply
        """
        try:
            return _REPLY_EVENT_TYPES[type(msg)]
        except KeyError:
            raise ValueError(f"{msg.message_name()} is not a device reply")


_REPLY_EVENT_TYPES = {
    messages.Features: MessageEventType.FEATURES,
    messages.PublicKey: MessageEventType.PUBLIC_KEY,
    messages.PinMatrixRequest: MessageEventType.PIN_MATRIX_REQUEST,
    messages.ButtonRequest: MessageEventType.BUTTON_REQUEST,
    messages.EntropyRequest: MessageEventType.ENTROPY_REQUEST,
    messages.CipheredKeyValue: MessageEventType.CIPHERED_KEY_VALUE,
    messages.Success: MessageEventType.SUCCESS,
    messages.Failure: MessageEventType.FAILURE,
}


@dataclass(frozen=True)
class MessageEvent(object):
    """
    A protocol event with an optional message payload
    """
    type: MessageEventType
    message: Optional[HardwareWalletMessage] = None

    @classmethod
    def from_reply(cls, msg: HardwareWalletMessage) -> 'MessageEvent':
        return cls(MessageEventType.from_message(msg), msg)


class Subscription(object):
    """
    A subscriber's view of a :class:`MessageEventChannel`.

    Events are buffered in a bounded queue until the subscriber reads them.
    """

    def __init__(self, channel: 'MessageEventChannel', maxsize: int) -> None:
        self._channel = channel
        self._queue: 'queue.Queue[MessageEvent]' = queue.Queue(maxsize=maxsize)
        self.overflowed = False
        self.closed = False

    def _offer(self, event: MessageEvent) -> bool:
        """
        Enqueue without blocking. Returns False once the subscriber should be dropped.
        """
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            LOG.warning("Subscriber queue full, dropping subscriber")
            self.overflowed = True
            self.closed = True
            return False
        return True

    def get(self, timeout: Optional[float] = None) -> MessageEvent:
        """
        Wait for the next event.

        :param timeout: Seconds to wait, forever if None
        :raises queue.Empty: if no event arrived in time
        """
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> Optional[MessageEvent]:
        """
        Return the next buffered event, or None if there is none.
        """
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[MessageEvent]:
        """
        Return every buffered event, oldest first.
        """
        events = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)

    def __iter__(self) -> Iterator[MessageEvent]:
        return iter(self.drain())

    def close(self) -> None:
        self.closed = True
        self._channel.unsubscribe(self)


class MessageEventChannel(object):
    """
    Broadcast channel delivering every published event to all current subscribers
    """

    def __init__(self, default_queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.default_queue_size = default_queue_size
        self._subscribers: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        """
        Add a subscriber. It only sees events published after this call.

        :param maxsize: Queue size for this subscriber, the channel default if None
        """
        if maxsize is None:
            maxsize = self.default_queue_size
        if maxsize <= 0:
            raise ValueError("Subscriber queues must be bounded")
        sub = Subscription(self, maxsize)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def publish(self, event: MessageEvent) -> None:
        """
        Deliver an event to every subscriber without blocking.
        """
        LOG.debug("Publishing %s", event.type)
        with self._lock:
            subscribers = list(self._subscribers)
        dropped = [sub for sub in subscribers if not sub._offer(event)]
        if dropped:
            with self._lock:
                for sub in dropped:
                    if sub in self._subscribers:
                        self._subscribers.remove(sub)

    def fire(self, event_type: MessageEventType, msg: Optional[HardwareWalletMessage] = None) -> MessageEvent:
        """
        Build and publish an event in one go.
        """
        event = MessageEvent(event_type, msg)
        self.publish(event)
        return event

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
