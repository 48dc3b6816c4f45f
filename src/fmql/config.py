"""Runtime configuration for the query engine.

All env-var reading is centralised here. A ``.env`` file in the working
directory is loaded on import, so values can be kept there instead of the
shell environment.

Variables:
  FMQL_SHOW_HIDDEN       include dot-files in results (default: false)
  FMQL_FOLLOW_SYMLINKS   descend into symlinked directories (default: true)
  FMQL_LOG_LEVEL         logging level name for the CLI (default: WARNING)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))

_TRUE_VALUES = ("true", "1", "yes", "on")


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class EngineConfig:
    """Settings shared by the SQL engine and the listing mode."""

    show_hidden: bool = False
    follow_symlinks: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a config from environment variables (``os.environ`` by default)."""
        env = os.environ if environ is None else environ
        return cls(
            show_hidden=_env_flag(env, "FMQL_SHOW_HIDDEN", False),
            follow_symlinks=_env_flag(env, "FMQL_FOLLOW_SYMLINKS", True),
            log_level=env.get("FMQL_LOG_LEVEL", "WARNING").upper(),
        )
