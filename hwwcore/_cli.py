#! /usr/bin/env python3

from .commands import (
    cipher_key,
    enumerate,
    get_client,
    getfeatures,
    getxpub,
    setup_device,
    unlock,
    wipe_device,
)
from .common import (
    Chain,
    KeyPurpose,
)
from .emulator import PROFILES
from .errors import (
    handle_errors,
    BadArgumentError,
    DEVICE_CONN_ERROR,
    HELP_TEXT,
    MISSING_ARGUMENTS,
    NO_DEVICE_TYPE,
)
from .hwwclient import HardwareWalletClient
from .session import DEFAULT_TIMEOUT
from . import __version__

import argparse
import getpass
import logging
import json
import sys

from typing import (
    Any,
    Dict,
    IO,
    List,
    NoReturn,
    Optional,
    Union,
)


def _require_pin(args: argparse.Namespace) -> str:
    if args.pin is None:
        raise BadArgumentError("This command needs the device PIN, use --pin or --stdinpin")
    return args.pin

def enumerate_handler(args: argparse.Namespace) -> List[Dict[str, Any]]:
    return enumerate(allow_emulators=args.allow_emulators, chain=args.chain)

def getfeatures_handler(args: argparse.Namespace, client: HardwareWalletClient) -> Dict[str, Any]:
    return getfeatures(client)

def getxpub_handler(args: argparse.Namespace, client: HardwareWalletClient) -> Dict[str, Any]:
    return getxpub(client, path=args.path, expert=args.expert)

def unlock_handler(args: argparse.Namespace, client: HardwareWalletClient) -> Dict[str, bool]:
    return unlock(client, pin=_require_pin(args))

def setup_device_handler(args: argparse.Namespace, client: HardwareWalletClient) -> Dict[str, Union[bool, int]]:
    return setup_device(client, pin=_require_pin(args), label=args.label, strength=args.strength)

def wipe_device_handler(args: argparse.Namespace, client: HardwareWalletClient) -> Dict[str, bool]:
    return wipe_device(client)

def cipher_key_handler(args: argparse.Namespace, client: HardwareWalletClient) -> Dict[str, str]:
    return cipher_key(client, args.key_index, args.sub_index, args.label, args.value, key_purpose=args.purpose, encrypt=not args.decrypt, pin=args.pin)

class HWWHelpFormatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter):
    pass

class HWWArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.formatter_class = HWWHelpFormatter

    def print_usage(self, file: Optional[IO[str]] = None) -> None:
        if file is None:
            file = sys.stderr
        super().print_usage(file)

    def print_help(self, file: Optional[IO[str]] = None) -> None:
        if file is None:
            file = sys.stderr
        super().print_help(file)
        error = {'error': 'Help text requested', 'code': HELP_TEXT}
        print(json.dumps(error))

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        args = {'prog': self.prog, 'message': message}
        error = {'error': '%(prog)s: error: %(message)s' % args, 'code': MISSING_ARGUMENTS}
        print(json.dumps(error))
        self.exit(2)

def get_parser() -> HWWArgumentParser:
    parser = HWWArgumentParser(description='Hardware wallet communication core, version {}.\nDrive a Trezor-class device through its message protocol. Responses are in JSON format.'.format(__version__))
    device_group = parser.add_mutually_exclusive_group()
    device_group.add_argument('--device-path', '-d', help='Specify the device path of the device to connect to, as returned by enumerate')
    device_group.add_argument('--emulator', '-e', help='Use the in-process device emulator with this profile', choices=PROFILES)
    parser.add_argument('--chain', help='Select chain to work with', type=Chain.argparse, choices=list(Chain), default=Chain.MAIN) # type: ignore
    parser.add_argument('--timeout', help='Seconds to wait for each device reply', type=float, default=DEFAULT_TIMEOUT)
    parser.add_argument('--pin', help='The PIN, as positions on the device PIN matrix')
    parser.add_argument('--stdinpin', help='Enter the PIN on the command line', action='store_true')
    parser.add_argument('--debug', help='Print debug statements', action='store_true')
    parser.add_argument('--version', action='version', version='%(prog)s {}'.format(__version__))
    parser.add_argument('--stdin', help='Enter commands and arguments via stdin', action='store_true')
    parser.add_argument('--expert', help='Return more detailed information from some commands', action='store_true')
    parser.add_argument("--emulators", help="Enable enumeration and detection of device emulators", action="store_true", dest="allow_emulators")

    subparsers = parser.add_subparsers(description='Commands', dest='command')
    # work-around to make subparser required
    subparsers.required = True

    enumerate_parser = subparsers.add_parser('enumerate', help='List all available devices')
    enumerate_parser.set_defaults(func=enumerate_handler)

    getfeatures_parser = subparsers.add_parser('getfeatures', help='Show what the device reports about itself')
    getfeatures_parser.set_defaults(func=getfeatures_handler)

    getxpub_parser = subparsers.add_parser('getxpub', help='Get an extended public key, at most three levels deep')
    getxpub_parser.add_argument('path', help='The BIP 32 derivation path to derive the key at, e.g. m/44h/0h/0h')
    getxpub_parser.set_defaults(func=getxpub_handler)

    unlock_parser = subparsers.add_parser('unlock', help='Unlock the device with the PIN given by --pin')
    unlock_parser.set_defaults(func=unlock_handler)

    setupdev_parser = subparsers.add_parser('setup', help='Create a new wallet on a wiped device, protected by the PIN given by --pin')
    setupdev_parser.add_argument('--label', '-l', help='The name to give to the device', default='')
    setupdev_parser.add_argument('--strength', help='Seed strength in bits', type=int, choices=[128, 192, 256], default=128)
    setupdev_parser.set_defaults(func=setup_device_handler)

    wipedev_parser = subparsers.add_parser('wipe', help='Wipe a device')
    wipedev_parser.set_defaults(func=wipe_device_handler)

    cipherkey_parser = subparsers.add_parser('cipherkey', help='Encrypt or decrypt a value with a key that stays on the device')
    cipherkey_parser.add_argument('key_index', type=int, help='The account of the key')
    cipherkey_parser.add_argument('sub_index', type=int, help='The index of the key')
    cipherkey_parser.add_argument('label', help='Label shown on the device and mixed into the key')
    cipherkey_parser.add_argument('value', help='Hex encoded value, a multiple of 16 bytes long')
    cipherkey_parser.add_argument('--purpose', help='What the key is used for', type=KeyPurpose.argparse, choices=list(KeyPurpose), default=KeyPurpose.RECEIVE_FUNDS) # type: ignore
    cipherkey_parser.add_argument('--decrypt', help='Decrypt instead of encrypt', action='store_true')
    cipherkey_parser.set_defaults(func=cipher_key_handler)

    return parser

def process_commands(cli_args: List[str]) -> Any:
    parser = get_parser()

    if any(arg == '--stdin' for arg in cli_args):
        while True:
            try:
                line = input()
                # Exit loop when we see 2 consecutive newlines (i.e. an empty line)
                if line == '':
                    break
                # Split the line and append it to the cli args
                import shlex
                cli_args.extend(shlex.split(line))
            except EOFError:
                # If we see EOF, stop taking input
                break

    # Parse arguments again for anything entered over stdin
    args = parser.parse_args(cli_args)

    command = args.command
    result: Dict[str, Any] = {}

    # Setup debug logging
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    # Enter the PIN on stdin
    if args.stdinpin:
        args.pin = getpass.getpass('Enter your device PIN: ')

    # List all available hardware wallet devices
    if command == 'enumerate':
        return args.func(args)

    if args.emulator:
        device_path = 'emulator:' + args.emulator
    elif args.device_path:
        device_path = args.device_path
    else:
        return {'error': 'You must specify a device path or an emulator profile for all commands except enumerate', 'code': NO_DEVICE_TYPE}

    with handle_errors(result=result, code=DEVICE_CONN_ERROR):
        client = get_client(device_path, chain=args.chain, timeout=args.timeout)
    if 'error' in result:
        return result

    # Do the commands
    with handle_errors(result=result, debug=args.debug):
        result = args.func(args, client)

    with handle_errors(result=result, debug=args.debug):
        client.close()

    return result

def main() -> None:
    result = process_commands(sys.argv[1:])
    print(json.dumps(result))
