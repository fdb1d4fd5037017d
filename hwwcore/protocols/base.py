from ..messages import HardwareWalletMessage
from ..session import DeviceSession, SessionObserver


class SessionProtocol(SessionObserver):
    """
    Base of the sub-protocols. Registers itself with the session on creation.
    """

    def __init__(self, session: DeviceSession) -> None:
        self.session = session
        session.add_observer(self)

    def call(self, msg: HardwareWalletMessage) -> HardwareWalletMessage:
        return self.session.call(msg)

    def observe(self, request: HardwareWalletMessage, reply: HardwareWalletMessage) -> None:
        pass
