import os
import platform
import logging
from typing import Callable, Optional, Tuple

from .config import DEFAULT_BIN_DIR
from .errors import UnsupportedPlatformError, UnsupportedArchitectureError, BinaryNotFoundError

logger = logging.getLogger(__name__)

BINARY_PREFIX = 'zsign'

WINDOWS_NAMES = {'Windows', 'Windows_NT'}

ARCH_ALIASES = {
    'arm64': 'arm64',
    'ARM64': 'arm64',
    'aarch64': 'arm64',
    'x64': 'x64',
    'x86_64': 'x64',
    'AMD64': 'x64',
    'amd64': 'x64',
}

Locator = Callable[[str, str], str]


def get_os_suffix(system: str) -> str:
    """Map a reported OS family to the binary suffix"""
    if system == 'Linux':
        return 'linux'
    elif system == 'Darwin':
        return 'macos'
    elif system in WINDOWS_NAMES:
        return 'win'
    raise UnsupportedPlatformError(system)


def get_arch_suffix(machine: str) -> str:
    """Map a reported CPU architecture to the binary suffix"""
    try:
        return ARCH_ALIASES[machine]
    except KeyError:
        raise UnsupportedArchitectureError(machine) from None


def get_platform_key(system: Optional[str] = None, machine: Optional[str] = None) -> Tuple[str, str]:
    if system is None:
        system = platform.system()
    if machine is None:
        machine = platform.machine()
    return get_os_suffix(system), get_arch_suffix(machine)


def default_locator(bin_dir: Optional[str] = None) -> Locator:
    """Locator for binaries named <bin_dir>/zsign_<os>_<arch>"""
    bin_dir = bin_dir or DEFAULT_BIN_DIR

    def locate(os_suffix: str, arch_suffix: str) -> str:
        return os.path.join(bin_dir, f"{BINARY_PREFIX}_{os_suffix}_{arch_suffix}")

    return locate


def resolve_binary(system: Optional[str] = None, machine: Optional[str] = None,
                   locator: Optional[Locator] = None, exists=os.path.exists) -> str:
    """Resolve the zsign binary for the host (or the given OS/arch).

    Raises UnsupportedPlatformError, UnsupportedArchitectureError or
    BinaryNotFoundError; there is no fallback binary.
    """
    os_suffix, arch_suffix = get_platform_key(system, machine)
    locate = locator or default_locator()
    path = locate(os_suffix, arch_suffix)

    if not exists(path):
        raise BinaryNotFoundError(path)

    logger.debug(f"Resolved zsign binary for {os_suffix}/{arch_suffix}: {path}")
    return path
