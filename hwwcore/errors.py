"""
Errors and Error Codes
**********************

hwwcore has several possible Exceptions with corresponding error codes.

Device replies are never raised: a ``Failure`` from the device is published as a
:attr:`~hwwcore.events.MessageEventType.FAILURE` event. The exceptions here cover the
cases where the caller itself did something wrong (bad arguments, unsupported
derivation depths) or the transport went away.

:mod:`~hwwcore.commands` functions will generally raise an exception that is a subclass of :class:`HWWError`.
The command line tool will convert these exceptions into a dictionary containing the error message and error code.
These look like ``{"error": "<msg>", "code": <code>}``.
"""

from typing import Any, Dict, Iterator, Optional
from contextlib import contextmanager

# Error codes
NO_DEVICE_TYPE = -1 #: No device path or emulator profile was given
MISSING_ARGUMENTS = -2 #: Arguments are missing
DEVICE_CONN_ERROR = -3 #: Error connecting to the device
BAD_ARGUMENT = -7 #: Bad, malformed, or conflicting argument was provided
UNAVAILABLE_ACTION = -9 #: Function is not available for this device
DEVICE_NOT_READY = -12 #: Device is not ready
UNKNOWN_ERROR = -13 #: An unknown error occurred
ACTION_CANCELED = -14 #: Action was canceled by the user
HELP_TEXT = -17 #: Help text was requested by the user
SEQUENCING_VIOLATION = -19 #: The caller asked for a request shape the protocol does not support
DEVICE_TIMEOUT = -20 #: The device did not reply in time
PROTOCOL_FAILURE = -21 #: The device replied with a Failure message

# Exceptions
class HWWError(Exception):
    """
    Generic exception type produced by hwwcore
    Subclassed by specific Errors to have Exceptions that have specific error codes.

    Contains a message and error code.
    """
    def __init__(self, msg: str, code: int) -> None:
        """
        Create an exception with the message and error code

        :param msg: The error message
        :param code: The error code
        """
        Exception.__init__(self)
        self.code = code
        self.msg = msg

    def get_code(self) -> int:
        """
        Get the error code for this Error

        :return: The error code
        """
        return self.code

    def get_msg(self) -> str:
        """
        Get the error message for this Error

        :return: The error message
        """
        return self.msg

    def __str__(self) -> str:
        return self.msg

class UnavailableActionError(HWWError):
    """
    :class:`HWWError` for :data:`UNAVAILABLE_ACTION`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, UNAVAILABLE_ACTION)

class DeviceNotReadyError(HWWError):
    """
    :class:`HWWError` for :data:`DEVICE_NOT_READY`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, DEVICE_NOT_READY)

class BadArgumentError(HWWError):
    """
    :class:`HWWError` for :data:`BAD_ARGUMENT`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, BAD_ARGUMENT)

class DeviceFailureError(HWWError):
    """
    :class:`HWWError` for :data:`PROTOCOL_FAILURE`

    Raised by :mod:`~hwwcore.commands`, which turn a ``FAILURE`` event into an
    error result for the command line, and by the session when the device answers
    with something that is not a reply.
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, PROTOCOL_FAILURE)

class ActionCanceledError(HWWError):
    """
    :class:`HWWError` for :data:`ACTION_CANCELED`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, ACTION_CANCELED)

class DeviceConnectionError(HWWError):
    """
    :class:`HWWError` for :data:`DEVICE_CONN_ERROR`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, DEVICE_CONN_ERROR)

class DeviceTimeoutError(DeviceConnectionError):
    """
    :class:`HWWError` for :data:`DEVICE_TIMEOUT`

    A subclass of :class:`DeviceConnectionError` since the recovery is the same:
    reconnect and restart the operation.
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, DEVICE_TIMEOUT)

class SequencingViolationError(HWWError):
    """
    :class:`HWWError` for :data:`SEQUENCING_VIOLATION`

    A programming error: the caller asked for something the protocol layer was never
    wired to support. It is not retryable.
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWWError.__init__(self, msg, SEQUENCING_VIOLATION)

@contextmanager
def handle_errors(
    msg: Optional[str] = None,
    result: Optional[Dict[str, Any]] = None,
    code: int = UNKNOWN_ERROR,
    debug: bool = False,
) -> Iterator[None]:
    """
    Context manager to catch all Exceptions and HWWErrors to return them as dictionaries containing the error message and code.

    :param msg: Error message prefix. Attached to the beginning of each error message
    :param result: The dictionary to put the resulting error in
    :param code: The default error code to use for Exceptions
    :param debug: Whether to also print out the traceback for debugging purposes
    """
    if result is None:
        result = {}

    if msg is None:
        msg = ""
    else:
        msg = msg + " "

    try:
        yield

    except HWWError as e:
        result['error'] = msg + e.get_msg()
        result['code'] = e.get_code()
    except Exception as e:
        result['error'] = msg + str(e)
        result['code'] = code
        if debug:
            import traceback
            traceback.print_exc()


common_err_msgs = {
    "enumerate": "Could not open client or get features:"
}
