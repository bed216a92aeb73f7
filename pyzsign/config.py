import os
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Bundled binaries live next to this module: pyzsign/bin/zsign_<os>_<arch>
DEFAULT_BIN_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'bin')


class ZsignConfig(BaseSettings):
    """Per-instance settings for a Zsign wrapper.

    Fields not passed to the constructor are read from ZSIGN_DEBUG,
    ZSIGN_BIN_DIR, ZSIGN_TIMEOUT and ZSIGN_ENV (JSON object).
    """

    model_config = SettingsConfigDict(
        env_prefix='ZSIGN_',
        extra='ignore',
        case_sensitive=False,
        frozen=True,
    )

    debug: bool = Field(
        default=False,
        description='Log the resolved binary path before every invocation.',
    )
    bin_dir: Optional[str] = Field(
        default=None,
        description='Directory holding the prebuilt zsign_<os>_<arch> binaries.',
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description='Seconds before a child process is killed, None waits forever.',
    )
    env: Optional[Dict[str, str]] = Field(
        default=None,
        description='Extra environment variables for the child process.',
    )

    @property
    def binary_dir(self) -> str:
        return self.bin_dir or DEFAULT_BIN_DIR

    @classmethod
    def from_env(cls) -> 'ZsignConfig':
        """Build a config purely from ZSIGN_* environment variables"""
        return cls()
