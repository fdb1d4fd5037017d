"""
Deterministic Hierarchy Resolver
********************************

Asks the device for the public key at a BIP 32 derivation path.

Only the four levels a wallet needs are wired up, selected by the length of the
path: the master key, the purpose, the coin type and the account. Any other depth
is a programming error and raises :class:`~hwwcore.errors.SequencingViolationError`
without talking to the device.

The key is delivered as a ``PUBLIC_KEY`` event; the call itself returns nothing.
"""

from typing import (
    List,
    Sequence,
    Union,
)

from .base import SessionProtocol
from .. import messages
from ..common import Chain
from ..errors import SequencingViolationError
from ..key import (
    ExtendedKey,
    H_,
    get_bip44_chain,
    path_to_string,
    to_path,
)

MASTER_DEPTH = 0
PURPOSE_DEPTH = 1
COIN_TYPE_DEPTH = 2
ACCOUNT_DEPTH = 3
SUPPORTED_DEPTHS = (MASTER_DEPTH, PURPOSE_DEPTH, COIN_TYPE_DEPTH, ACCOUNT_DEPTH)

BIP44_PURPOSE = 44


def master_path() -> List[int]:
    return []


def purpose_path(purpose: int = BIP44_PURPOSE) -> List[int]:
    return [H_(purpose)]


def coin_type_path(chain: Chain = Chain.MAIN, purpose: int = BIP44_PURPOSE) -> List[int]:
    return [H_(purpose), H_(get_bip44_chain(chain))]


def account_path(account: int = 0, chain: Chain = Chain.MAIN, purpose: int = BIP44_PURPOSE) -> List[int]:
    """
    ``m/44h/<coin type>h/<account>h``
    """
    return [H_(purpose), H_(get_bip44_chain(chain)), H_(account)]


def to_extended_key(msg: messages.PublicKey, testnet: bool = False) -> ExtendedKey:
    """
    Build an :class:`~hwwcore.key.ExtendedKey` from a ``PublicKey`` reply.
    """
    node = msg.node
    version = ExtendedKey.TESTNET_PUBLIC if testnet else ExtendedKey.MAINNET_PUBLIC
    return ExtendedKey(version, node.depth, node.fingerprint.to_bytes(4, byteorder="big"), node.child_num, node.chain_code, None, node.public_key)


class DeterministicHierarchyResolver(SessionProtocol):

    def get_deterministic_hierarchy(self, path: Union[str, Sequence[int]]) -> None:
        """
        Request the public key at ``path``.

        :param path: A path string such as ``m/44h/0h/0h`` or a sequence of child numbers
        :raises BadArgumentError: if the path cannot be parsed
        :raises SequencingViolationError: if the depth is not one of the supported levels
        """
        address_n = to_path(path)
        if len(address_n) not in SUPPORTED_DEPTHS:
            raise SequencingViolationError(f"Unexpected child number count: {len(address_n)} ({path_to_string(address_n)})")
        self.call(messages.GetPublicKey(address_n=tuple(address_n)))
