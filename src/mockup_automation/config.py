"""Runtime configuration loaded from the environment (and a local .env file)."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_APP_URL = "https://chatgpt.com/"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    """All tunables of a run. Timeouts and settle intervals are in seconds."""

    app_url: str = DEFAULT_APP_URL
    profile_dir: Path = Path(".browser-data")
    templates_dir: Path = Path("templates")
    output_dir: Path = Path("output")
    headless: bool = False

    log_file: str = "logs/mockup_automation.log"
    log_level: str = "INFO"

    lookup_base_url: str = ""
    lookup_api_key: str = ""
    lookup_collection: str = "inspirations"

    login_timeout: float = 300.0
    composer_timeout: float = 30.0
    generation_timeout: float = 120.0
    probe_timeout: float = 1.5
    poll_interval: float = 1.0

    page_settle: float = 2.0
    upload_settle: float = 3.0
    paste_settle: float = 1.0
    result_settle: float = 3.0

    request_timeout: float = 30.0
    max_redirects: int = 5
    max_download_bytes: int = 20 * 1024 * 1024

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Build settings from environment variables, loading .env first."""
        load_dotenv(dotenv_path)

        supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
        lookup_base = os.getenv("LOOKUP_BASE_URL", "").rstrip("/")
        if not lookup_base and supabase_url:
            lookup_base = f"{supabase_url}/rest/v1"

        return cls(
            app_url=os.getenv("MOCKUP_APP_URL", DEFAULT_APP_URL),
            profile_dir=Path(os.getenv("MOCKUP_PROFILE_DIR", ".browser-data")),
            templates_dir=Path(os.getenv("MOCKUP_TEMPLATES_DIR", "templates")),
            output_dir=Path(os.getenv("MOCKUP_OUTPUT_DIR", "output")),
            headless=_env_bool("MOCKUP_HEADLESS", False),
            log_file=os.getenv("MOCKUP_LOG_FILE", "logs/mockup_automation.log"),
            log_level=os.getenv("MOCKUP_LOG_LEVEL", "INFO"),
            lookup_base_url=lookup_base,
            lookup_api_key=os.getenv("SUPABASE_ANON_KEY", ""),
            lookup_collection=os.getenv("LOOKUP_COLLECTION", "inspirations"),
            login_timeout=_env_float("LOGIN_TIMEOUT", 300.0),
            composer_timeout=_env_float("COMPOSER_TIMEOUT", 30.0),
            generation_timeout=_env_float("GENERATION_TIMEOUT", 120.0),
            page_settle=_env_float("PAGE_SETTLE", 2.0),
            upload_settle=_env_float("UPLOAD_SETTLE", 3.0),
            result_settle=_env_float("RESULT_SETTLE", 3.0),
            request_timeout=_env_float("REQUEST_TIMEOUT", 30.0),
            max_redirects=_env_int("MAX_REDIRECTS", 5),
            max_download_bytes=_env_int("MAX_DOWNLOAD_MB", 20) * 1024 * 1024,
        )

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)
