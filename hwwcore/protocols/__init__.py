"""
Protocols
*********

The sub-protocols driven by :class:`~hwwcore.hwwclient.HardwareWalletClient`.

Each one sends its own requests through the :class:`~hwwcore.session.DeviceSession`
and follows every request/reply pair of the session, including the ones sent by the
other protocols, to keep its Session Operation Context up to date. Contexts are created
when an operation starts and disposed when it ends; they are never shared.
"""

from .base import SessionProtocol
from .auth import AuthenticationProtocol, PinPolicy
from .cipher import CipherKeyProtocol
from .hierarchy import DeterministicHierarchyResolver
from .reset import WalletResetProtocol

__all__ = [
    'SessionProtocol',
    'AuthenticationProtocol',
    'PinPolicy',
    'CipherKeyProtocol',
    'DeterministicHierarchyResolver',
    'WalletResetProtocol',
]
