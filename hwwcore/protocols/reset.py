"""
Wallet Reset Protocol
*********************

Wipes the device and drives the creation of a new wallet:

``WIPED -> ENTROPY_REQUESTED -> CONFIRMING_WORDS(n) -> SUCCESS``

After the entropy has been sent the device shows the 12 recovery words one at a
time and then asks for each of them back, 24 steps in total. Every step is
acknowledged with :meth:`WalletResetProtocol.word_ack`; steps 1 to 23 are answered
with a ``ButtonRequest`` and step 24 with ``Success``. The words themselves never
cross the wire, the host only confirms that each step happened.

There is no abort half way through. Abandoning a reset throws its context away, a new
one starts with the next ``wipe_device()`` or ``reset_device()``.
"""

import logging

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .base import SessionProtocol
from .. import messages
from ..errors import BadArgumentError
from ..messages import (
    FailureType,
    HardwareWalletMessage,
)

LOG = logging.getLogger(__name__)

MNEMONIC_WORD_COUNT = 12
WORD_STEPS = 2 * MNEMONIC_WORD_COUNT


class ResetState(Enum):
    WIPED = 0
    PIN_REQUESTED = 1
    ENTROPY_REQUESTED = 2
    CONFIRMING_WORDS = 3
    SUCCESS = 4

    def __str__(self) -> str:
        return str(self.name).lower()


@dataclass
class ResetContext(object):
    """
    Progress of one reset, private to it.
    """
    state: ResetState = ResetState.WIPED
    word_steps: int = 0
    word_count: int = MNEMONIC_WORD_COUNT

    @property
    def words_displayed(self) -> int:
        return min(self.word_steps, self.word_count)

    @property
    def words_confirmed(self) -> int:
        return max(0, self.word_steps - self.word_count)

    @property
    def steps_remaining(self) -> int:
        return 2 * self.word_count - self.word_steps


class WalletResetProtocol(SessionProtocol):
    context: Optional[ResetContext] = None

    def wipe_device(self) -> None:
        """
        Ask the device to wipe itself. Always answered with a ``ButtonRequest`` to confirm.
        """
        self.call(messages.WipeDevice())

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
        Start creating a wallet on a wiped device.

        :param strength: Seed strength in bits, 128 gives 12 words
        :param label: A label to apply to the device
        :param pin_protection: Whether to set a PIN, which makes the device ask for it first
        """
        if strength not in (128, 192, 256):
            raise BadArgumentError("Strength must be 128, 192 or 256 bits")
        self.call(messages.ResetDevice(
            display_random=display_random,
            strength=strength,
            passphrase_protection=passphrase_protection,
            pin_protection=pin_protection,
            language=language,
            label=label,
        ))

    def entropy_ack(self, entropy: bytes) -> None:
        """
        Send host entropy. Its content is not checked; the device mixes it into its own.

        :raises BadArgumentError: if no entropy is given
        """
        if entropy is None or not isinstance(entropy, (bytes, bytearray)):
            raise BadArgumentError("Entropy must be bytes")
        self.call(messages.EntropyAck(entropy=bytes(entropy)))

    def word_ack(self, word: str) -> None:
        """
        Acknowledge one word step.

        :raises BadArgumentError: if no word is given
        """
        if word is None or not isinstance(word, str):
            raise BadArgumentError("A word is required")
        self.call(messages.WordAck(word=word))

    def _start(self, state: ResetState, word_count: int = MNEMONIC_WORD_COUNT) -> None:
        if self.context is not None and self.context.state != ResetState.SUCCESS:
            LOG.info(f"Abandoning reset in state {self.context.state}")
        self.context = ResetContext(state=state, word_count=word_count)

    def observe(self, request: HardwareWalletMessage, reply: HardwareWalletMessage) -> None:
        if isinstance(request, messages.WipeDevice):
            if isinstance(reply, messages.ButtonRequest):
                self._start(ResetState.WIPED)
            return

        if isinstance(request, messages.ResetDevice):
            if isinstance(reply, messages.PinMatrixRequest):
                self._start(ResetState.PIN_REQUESTED, request.strength // 32 * 3)
            elif isinstance(reply, messages.EntropyRequest):
                self._start(ResetState.ENTROPY_REQUESTED, request.strength // 32 * 3)
            return

        if isinstance(request, messages.Initialize):
            if self.context is not None and self.context.state in (ResetState.ENTROPY_REQUESTED, ResetState.CONFIRMING_WORDS):
                LOG.info("Initialize abandoned the reset in progress")
                self.context = None
            return

        if isinstance(reply, messages.EntropyRequest):
            if self.context is None:
                self._start(ResetState.ENTROPY_REQUESTED)
            self.context.state = ResetState.ENTROPY_REQUESTED
            return

        if self.context is None:
            return

        if isinstance(reply, messages.Failure):
            if reply.code == FailureType.ActionCancelled:
                LOG.info("Reset cancelled")
                self.context = None
            return

        if isinstance(request, messages.PinMatrixAck) and isinstance(reply, messages.PinMatrixRequest):
            self.context.state = ResetState.PIN_REQUESTED
        elif isinstance(request, messages.EntropyAck) and isinstance(reply, messages.ButtonRequest):
            self.context.state = ResetState.CONFIRMING_WORDS
            self.context.word_steps = 0
        elif isinstance(request, messages.WordAck):
            self.context.word_steps += 1
            if isinstance(reply, messages.Success):
                LOG.info("Device reset complete")
                self.context.state = ResetState.SUCCESS
                self.context = None
