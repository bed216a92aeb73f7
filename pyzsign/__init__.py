"""Python wrapper for the prebuilt zsign iOS app signing binaries."""

import threading

from .config import ZsignConfig
from .dispatcher import CommandResult, Dispatcher
from .errors import ZsignError, UnsupportedPlatformError, UnsupportedArchitectureError, BinaryNotFoundError
from .options import SignOptions, build_sign_args
from .resolver import resolve_binary
from .zsign import Zsign, parse_version

__version__ = '0.1.0'

_default = None
_default_lock = threading.Lock()


def get_default() -> Zsign:
    """Shared Zsign built from the environment on first use"""
    global _default
    with _default_lock:
        if _default is None:
            _default = Zsign(ZsignConfig.from_env())
        return _default


def show_help(callback=None):
    return get_default().show_help(callback)


def get_version(callback=None):
    return get_default().get_version(callback)


def sign(input_package, options=None, callback=None):
    return get_default().sign(input_package, options, callback)
