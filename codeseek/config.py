# codeseek/config.py

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import find_dotenv, load_dotenv


ENV_PREFIX = "CODESEEK_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as error:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from error
    if value < 1:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


def _env_list(name: str) -> Tuple[str, ...]:
    raw = _env(name)
    if raw is None:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    """
    Runtime configuration. Every field has a working default except the
    answer-provider keys, which are only needed for search().
    """
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-haiku-4-5"
    chroma_persist_directory: str = "./data/chroma_db"
    window_size: int = 50
    batch_size: int = 50
    top_k: int = 5
    recent_days: int = 30
    rebuild_vocabulary_per_query: bool = False
    git_history: bool = True
    sessions_dir: str = "~/.codeseek/sessions"
    cors_origins: Tuple[str, ...] = ()

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Read CODESEEK_* variables, after loading a .env file if present."""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        defaults = cls()
        return cls(
            openai_api_key               = _env("OPENAI_KEY"),
            anthropic_api_key            = _env("ANTHROPIC_KEY"),
            openai_model                 = _env("OPENAI_MODEL", defaults.openai_model),
            anthropic_model              = _env("ANTHROPIC_MODEL", defaults.anthropic_model),
            chroma_persist_directory     = _env("CHROMA_DIR", defaults.chroma_persist_directory),
            window_size                  = _env_int("WINDOW_SIZE", defaults.window_size),
            batch_size                   = _env_int("BATCH_SIZE", defaults.batch_size),
            top_k                        = _env_int("TOP_K", defaults.top_k),
            recent_days                  = _env_int("RECENT_DAYS", defaults.recent_days),
            rebuild_vocabulary_per_query = _env_bool("REBUILD_PER_QUERY", defaults.rebuild_vocabulary_per_query),
            git_history                  = _env_bool("GIT_HISTORY", defaults.git_history),
            sessions_dir                 = _env("SESSIONS_DIR", defaults.sessions_dir),
            cors_origins                 = _env_list("CORS_ORIGINS"),
        )
