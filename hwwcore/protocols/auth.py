"""
Authentication Protocol
***********************

PIN entry for unlocking an existing wallet and for choosing the PIN of a new one.

Both flows answer a ``PinMatrixRequest`` with :meth:`AuthenticationProtocol.pin_matrix_ack`,
but the device reacts differently:

* Unlock: the correct PIN is followed by a ``ButtonRequest`` (protect call) the first time,
  after which the protected operation can be repeated. A wrong PIN gets a ``Failure``.
* Create: the first PIN is answered with a request for the same PIN again, the
  confirmation with an ``EntropyRequest``.

PINs are forwarded as they are; the device decides what is valid. The only thing the host
enforces is the :class:`PinPolicy` bound on consecutive failures. ``Initialize``, ``WipeDevice``
and ``ClearSession`` start the count again.
"""

import logging

from dataclasses import dataclass
from typing import Optional

from .base import SessionProtocol
from .. import messages
from ..errors import BadArgumentError
from ..events import MessageEventType
from ..messages import (
    ButtonRequestType,
    FailureType,
    HardwareWalletMessage,
    PinMatrixRequestType,
)
from ..session import DeviceSession

LOG = logging.getLogger(__name__)

# A Trezor wipes itself after 16 wrong PINs
DEFAULT_MAX_PIN_FAILURES = 16


@dataclass
class PinContext(object):
    """
    Counters for one PIN entry, from the ``PinMatrixRequest`` to its outcome.

    Correct and wrong PINs are counted separately.
    """
    phase: Optional[PinMatrixRequestType] = None
    attempts: int = 0
    failures: int = 0
    accepted: int = 0


@dataclass
class InitialiseContext(object):
    """
    What the session has learnt from ``Initialize`` so far. Only ever counts up.
    """
    calls: int = 0
    features: Optional[messages.Features] = None

    @property
    def wiped(self) -> bool:
        return self.features is not None and not self.features.initialized


class PinPolicy(object):
    """
    Bounds the number of consecutive wrong PINs the host will forward.

    Subclass to change how failures are counted or reported.
    """

    def __init__(self, max_failures: int = DEFAULT_MAX_PIN_FAILURES) -> None:
        if max_failures <= 0:
            raise ValueError("max_failures must be positive")
        self.max_failures = max_failures

    def allows_attempt(self, consecutive_failures: int) -> bool:
        return consecutive_failures < self.max_failures

    def on_failure(self, consecutive_failures: int, failure: messages.Failure) -> None:
        LOG.warning(f"PIN rejected by device ({consecutive_failures} of {self.max_failures} attempts used)")


class AuthenticationProtocol(SessionProtocol):
    def __init__(self, session: DeviceSession, policy: Optional[PinPolicy] = None) -> None:
        super().__init__(session)
        self.policy = policy if policy is not None else PinPolicy()
        self.context: Optional[PinContext] = None
        self.initialise_context = InitialiseContext()
        self.consecutive_failures = 0
        self.unlocked = False

    def initialise(self) -> Optional[messages.Features]:
        """
        Send ``Initialize``. The ``FEATURES`` event describes whether the device is wiped.

        :return: The features, or None if the device answered with something else
        """
        reply = self.call(messages.Initialize())
        if isinstance(reply, messages.Features):
            return reply
        return None

    def pin_matrix_ack(self, pin: str) -> None:
        """
        Send the PIN, encoded with the positions of the device's PIN matrix.

        :raises BadArgumentError: if no PIN is given
        """
        if pin is None or not isinstance(pin, str):
            raise BadArgumentError("A PIN is required")

        if not self.policy.allows_attempt(self.consecutive_failures):
            LOG.warning("Refusing to send PIN, too many failed attempts")
            self.session.fire(MessageEventType.FAILURE, messages.Failure(
                code=FailureType.PinAttemptsExceeded,
                message=f"PIN rejected {self.consecutive_failures} times in a row",
            ))
            return

        if self.context is None:
            self.context = PinContext()
        self.context.attempts += 1
        self.call(messages.PinMatrixAck(pin=pin))

    def _dispose(self) -> None:
        self.context = None

    def _start_over(self) -> None:
        # Failures only count towards the bound within one operation
        self.consecutive_failures = 0
        self._dispose()

    def observe(self, request: HardwareWalletMessage, reply: HardwareWalletMessage) -> None:
        if isinstance(request, messages.Initialize) and isinstance(reply, messages.Features):
            self.initialise_context.calls += 1
            self.initialise_context.features = reply
            self.unlocked = reply.pin_cached or not reply.pin_protection
            self._start_over()
            return

        if isinstance(request, (messages.WipeDevice, messages.ClearSession)):
            self.unlocked = False
            self._start_over()
            return

        if isinstance(request, messages.PinMatrixAck):
            self._observe_pin_reply(reply)
        elif isinstance(reply, messages.PinMatrixRequest):
            # Some other request needs the PIN first
            LOG.debug("PIN requested (%s)", reply.type)
            self.unlocked = False
            self.context = PinContext(phase=reply.type)

    def _observe_pin_reply(self, reply: HardwareWalletMessage) -> None:
        context = self.context if self.context is not None else PinContext(attempts=1)

        if isinstance(reply, messages.Failure):
            if reply.code in (FailureType.PinInvalid, FailureType.PinMismatch):
                context.failures += 1
                self.consecutive_failures += 1
                self.policy.on_failure(self.consecutive_failures, reply)
                self.context = context
            else:
                self._dispose()
            return

        context.accepted += 1
        self.consecutive_failures = 0
        if isinstance(reply, messages.PinMatrixRequest):
            # New PIN accepted, the device wants it again
            self.context = PinContext(phase=reply.type)
            return

        if isinstance(reply, messages.Success) or (isinstance(reply, messages.ButtonRequest) and reply.code == ButtonRequestType.ProtectCall):
            self.unlocked = True
        self._dispose()
