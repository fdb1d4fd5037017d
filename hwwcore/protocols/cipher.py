"""
Cipher Key Protocol
*******************

Encrypts or decrypts a value with a key that never leaves the device, bound to the
BIP 44 path ``m/44h/<coin type>h/<key index>h/<change>/<sub index>``.

The device only does this for an unlocked session. A locked device answers with a
``PinMatrixRequest`` instead; once the PIN has been accepted the same call has to be
made again. Each call produces exactly one event: the ciphered value, a failure or
the PIN request.
"""

import logging

from typing import (
    List,
    Optional,
)

from .base import SessionProtocol
from .. import messages
from ..common import (
    Chain,
    KeyPurpose,
)
from ..errors import BadArgumentError
from ..key import (
    H_,
    get_bip44_chain,
    get_bip44_change,
)
from ..messages import HardwareWalletMessage
from ..session import DeviceSession
from .hierarchy import BIP44_PURPOSE

LOG = logging.getLogger(__name__)


def cipher_key_path(key_index: int, key_purpose: KeyPurpose, sub_index: int, chain: Chain = Chain.MAIN) -> List[int]:
    if key_index < 0 or sub_index < 0 or key_index >= H_(0) or sub_index >= H_(0):
        raise BadArgumentError("Key and sub indexes must be between 0 and 2^31 - 1")
    return [H_(BIP44_PURPOSE), H_(get_bip44_chain(chain)), H_(key_index), get_bip44_change(key_purpose), sub_index]


class CipherKeyProtocol(SessionProtocol):
    def __init__(self, session: DeviceSession, chain: Chain = Chain.MAIN) -> None:
        super().__init__(session)
        self.chain = chain
        # The request that is waiting for the PIN, if any
        self.pending: Optional[messages.CipherKeyValue] = None

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
        :param key_index: The BIP 44 account of the key
        :param key_purpose: Selects the external or internal chain
        :param sub_index: The index of the key on that chain
        :param key_label: Label shown on the device and mixed into the key
        :param key_value: The value, a multiple of 16 bytes long
        :param encrypt: Encrypt if True, decrypt otherwise
        :raises BadArgumentError: if the label or value is missing
        """
        if key_label is None or not isinstance(key_label, (bytes, bytearray)):
            raise BadArgumentError("Key label must be bytes")
        if key_value is None or not isinstance(key_value, (bytes, bytearray)):
            raise BadArgumentError("Key value must be bytes")
        if not isinstance(key_purpose, KeyPurpose):
            raise BadArgumentError(f"Unknown key purpose {key_purpose!r}")

        address_n = cipher_key_path(key_index, key_purpose, sub_index, self.chain)
        LOG.debug("Cipher key value at key index %d sub index %d (encrypt=%s)", key_index, sub_index, encrypt)
        self.call(messages.CipherKeyValue(
            address_n=tuple(address_n),
            key=bytes(key_label),
            value=bytes(key_value),
            encrypt=encrypt,
            ask_on_encrypt=ask_on_encrypt,
            ask_on_decrypt=ask_on_decrypt,
        ))

    @property
    def awaiting_pin(self) -> bool:
        return self.pending is not None

    def observe(self, request: HardwareWalletMessage, reply: HardwareWalletMessage) -> None:
        if isinstance(request, messages.CipherKeyValue):
            self.pending = request if isinstance(reply, messages.PinMatrixRequest) else None
        elif isinstance(request, (messages.WipeDevice, messages.Initialize)):
            self.pending = None
