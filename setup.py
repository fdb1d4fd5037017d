# -*- coding: utf-8 -*-
from setuptools import setup

packages = \
['hwwcore',
 'hwwcore.protocols',
 'hwwcore.transport']

package_data = \
{'': ['*']}

modules = \
['hww']
install_requires = \
['ecdsa>=0,<1',
 'hidapi>=0.14.0',
 'mnemonic>=0,<1',
 'pyaes>=1.6,<2.0',
 'semver>=3.0.1,<4.0.0']

extras_require = \
{'test': ['pytest>=7']}

entry_points = \
{'console_scripts': ['hwwcore = hwwcore._cli:main']}

setup_kwargs = {
    'name': 'hww-core',
    'version': '0.1.0',
    'description': 'A protocol client for Trezor-class hardware wallets',
    'long_description': "# Hardware Wallet Communication Core\n\nA protocol client that drives a Trezor-class signing device through its request/response message protocol:\nunlock an existing wallet with its PIN, create a new wallet, derive deterministic public keys and\nencrypt or decrypt values with keys that never leave the device.\n\nEvery device reply is published as an event that applications subscribe to. An in-process device\nemulator makes the whole protocol usable without hardware.\n\n## Usage\n\n```\n./hww.py --emulators enumerate\n./hww.py --emulator initialised getxpub m/44h/0h/0h\n./hww.py --emulator initialised --pin 1234 cipherkey 0 0 'MultiBit HD     Unlock' 0123456789abcdef0123456789abcdef\n```\n\nAll output will be in JSON form and sent to `stdout`.\n\n## Tests\n\n```\ncd test\n./run_tests.py\n```\n",
    'author': 'None',
    'author_email': 'None',
    'maintainer': 'None',
    'maintainer_email': 'None',
    'url': 'None',
    'packages': packages,
    'package_data': package_data,
    'py_modules': modules,
    'install_requires': install_requires,
    'extras_require': extras_require,
    'entry_points': entry_points,
    'python_requires': '>=3.8',
}


setup(**setup_kwargs)
