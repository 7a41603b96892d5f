"""
Runtime configuration loaded from the environment (and an optional .env file).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger("cutlab")

DEFAULT_BUCKET = "audio-files"
DEFAULT_UPLOAD_URL = "http://localhost:8000"
DEFAULT_OUTPUT_DIR = "output_videos"
DEFAULT_PAGE_SIZE = 10
DEFAULT_HTTP_TIMEOUT = 60.0

_REQUIRED = ("SUPABASE_URL", "SUPABASE_ANON_KEY", "VIDEO_API_URL")


@dataclass(frozen=True)
class Settings:
    """Everything a client needs; passed explicitly at construction time."""

    supabase_url: str
    supabase_key: str
    api_url: str
    bucket: str = DEFAULT_BUCKET
    upload_url: str = DEFAULT_UPLOAD_URL
    output_dir: str = DEFAULT_OUTPUT_DIR
    page_size: int = DEFAULT_PAGE_SIZE
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


def load_env_file() -> None:
    """Load .env from the project root if present, otherwise search upwards from cwd."""
    project_root = Path(__file__).parent.parent.parent
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ after loading .env).

    Missing credentials are a startup error, never something to retry.
    """
    if env is None:
        load_env_file()
        env = dict(os.environ)

    missing = [name for name in _REQUIRED if not env.get(name)]
    if missing:
        logger.error("Missing configuration: %s", ", ".join(missing))
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    try:
        page_size = int(env.get("CUTLAB_PAGE_SIZE", DEFAULT_PAGE_SIZE))
        timeout = float(env.get("CUTLAB_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e
    if page_size <= 0:
        raise ConfigurationError("CUTLAB_PAGE_SIZE must be positive")

    return Settings(
        supabase_url=env["SUPABASE_URL"].rstrip("/"),
        supabase_key=env["SUPABASE_ANON_KEY"],
        api_url=env["VIDEO_API_URL"].rstrip("/"),
        bucket=env.get("CUTLAB_BUCKET") or DEFAULT_BUCKET,
        upload_url=(env.get("CUTLAB_UPLOAD_URL") or DEFAULT_UPLOAD_URL).rstrip("/"),
        output_dir=env.get("CUTLAB_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR,
        page_size=page_size,
        http_timeout=timeout,
    )
