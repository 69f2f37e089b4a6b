import hashlib
import logging
import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .models import Pubkey


_log = logging.getLogger(__name__)

DEFAULT_PROGRAM_ID = hashlib.sha256(b"vibeledger").hexdigest()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


class Settings(BaseModel):
    program_id: Pubkey = DEFAULT_PROGRAM_ID
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_json: bool = False
    api_root_path: str = ""
    reward_token_mint: Optional[Pubkey] = None


def load_settings() -> Settings:
    """Build settings from VIBE_* environment variables; invalid values fail loudly."""
    try:
        return Settings(
            program_id=_env_str("VIBE_PROGRAM_ID", DEFAULT_PROGRAM_ID).lower(),
            log_level=_env_str("VIBE_LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("VIBE_LOG_JSON", False),
            api_root_path=_env_str("VIBE_API_ROOT_PATH", "") or "",
            reward_token_mint=_env_str("VIBE_REWARD_TOKEN_MINT", None),
        )
    except ValidationError:
        _log.error("invalid VIBE_* configuration in environment")
        raise


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
