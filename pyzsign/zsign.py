import logging
from concurrent.futures import Future
from typing import Mapping, Optional, Union

from .config import ZsignConfig
from .dispatcher import Callback, CommandResult, Dispatcher
from .options import SignOptions, build_sign_args
from .resolver import Locator, default_locator, resolve_binary

logger = logging.getLogger(__name__)


class Zsign:
    """Wrapper around the prebuilt zsign binary for this platform.

    The binary is resolved once, when the wrapper is created; an unsupported
    OS/arch or a missing binary raises immediately. Every operation returns a
    Future resolving to a CommandResult and optionally reports through a
    (error, output) callback.
    """

    def __init__(self, config: Optional[ZsignConfig] = None, locator: Optional[Locator] = None,
                 system: Optional[str] = None, machine: Optional[str] = None):
        self.config = config if config is not None else ZsignConfig()
        self.binary_path = resolve_binary(
            system=system,
            machine=machine,
            locator=locator or default_locator(self.config.binary_dir)
        )
        self.dispatcher = Dispatcher(self.binary_path, self.config)

    def show_help(self, callback: Optional[Callback] = None) -> 'Future[CommandResult]':
        """Print zsign's help text. Mostly useful for CLI usage."""
        return self.dispatcher.invoke(['--help'], callback)

    def get_version(self, callback: Optional[Callback] = None) -> 'Future[CommandResult]':
        """Print zsign's version information. See parse_version."""
        return self.dispatcher.invoke(['-v'], callback)

    def sign(self, input_package: str, options: Union[SignOptions, Mapping, None] = None,
             callback: Optional[Callback] = None) -> 'Future[CommandResult]':
        """Sign input_package (an .ipa or an .app folder) with the given options"""
        args = build_sign_args(input_package, options)
        logger.info(f"Signing package: {input_package}")
        return self.dispatcher.invoke(args, callback)


def parse_version(output: str) -> str:
    """Extract the version from `zsign -v` output, e.g. 'version: 0.7' -> '0.7'"""
    tokens = output.split(' ')
    if len(tokens) < 2 or not tokens[1].strip():
        raise ValueError(f"Unrecognized zsign version output: {output!r}")
    return tokens[1].strip()
