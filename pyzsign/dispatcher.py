import os
import logging
import subprocess
import threading
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import ZsignConfig
from .options import mask_args

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[BaseException], Optional[str]], None]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one zsign run: either output or error is set, never both"""
    output: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the output, raising the process error if the run failed"""
        if self.error is not None:
            raise self.error
        return self.output


class Dispatcher:
    """Runs the zsign binary in a child process, one worker thread per call"""

    def __init__(self, binary_path: str, config: Optional[ZsignConfig] = None):
        self.binary_path = binary_path
        self.config = config if config is not None else ZsignConfig()

    def invoke(self, args: List[str], callback: Optional[Callback] = None) -> 'Future[CommandResult]':
        """Start zsign with args and return a Future resolving to a CommandResult.

        If callback is given it is called once with (error, None) or
        (None, output) when the run completes, or with (CancelledError(), None)
        if the future is cancelled before zsign starts.
        """
        future = Future()
        if callback is not None:
            future.add_done_callback(lambda f: _notify(f, callback))

        thread = threading.Thread(target=self._run, args=(list(args), future))
        thread.daemon = True
        thread.start()
        return future

    def run(self, args: List[str]) -> CommandResult:
        """Blocking variant of invoke"""
        return self.invoke(args).result()

    def _child_env(self):
        if not self.config.env:
            return None
        env = dict(os.environ)
        env.update(self.config.env)
        return env

    def _run(self, args: List[str], future: Future):
        if not future.set_running_or_notify_cancel():
            return

        cmd = [self.binary_path] + args
        if self.config.debug:
            logger.info(f"[pyzsign] Binary: {self.binary_path}")
        logger.debug(f"Executing: {' '.join(mask_args(cmd))}")

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding='utf-8',
                errors='replace',
                check=True,
                timeout=self.config.timeout,
                env=self._child_env()
            )
        except Exception as e:
            # spawn failures, non-zero exits, timeouts and rejected arguments (e.g. NUL bytes)
            logger.error(f"zsign failed: {str(e)}")
            future.set_result(CommandResult(error=e))
            return

        future.set_result(CommandResult(output=proc.stdout or proc.stderr))


def _notify(future: Future, callback: Callback):
    if future.cancelled():
        callback(CancelledError(), None)
        return
    error = future.exception()
    if error is None:
        result = future.result()
        if result.ok:
            callback(None, result.output)
            return
        error = result.error
    callback(error, None)
