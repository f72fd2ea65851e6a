"""
settings.py: runtime configuration for the MyBloom discovery backend.

Precedence for config values:
1) Environment variables (a local .env is loaded first)
2) Defaults below

Nothing here is a process-wide singleton: the server builds one Settings and
one Preferences per app, one Session per request, and passes them down.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from utils.cache_utils import load_cache, save_cache

load_dotenv()


# --- Helpers ---------------------------------------------------------------

def as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def as_tuple(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if not value:
        return default
    items = tuple(x.strip() for x in value.split(",") if x.strip())
    return items or default


# =========================
# CONFIG
# =========================
PLANTNET_BASE_URL = "https://my-api.plantnet.org/v2/identify"
WIKI_USER_AGENT = "MyBloomApp/1.1 (plant discovery journal)"


@dataclass(frozen=True)
class Settings:
    plantnet_api_key: str = ""
    plantnet_project: str = "all"
    plantnet_base_url: str = PLANTNET_BASE_URL
    plantnet_timeout: float = 60.0

    wiki_locales: Tuple[str, ...] = ("en", "fr")
    wiki_user_agent: str = WIKI_USER_AGENT
    wiki_timeout: float = 20.0

    data_dir: Path = field(default_factory=lambda: Path("data"))
    jpeg_quality: int = 90
    pipeline_workers: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            plantnet_api_key=os.getenv("PLANTNET_API_KEY", ""),
            plantnet_project=os.getenv("PLANTNET_PROJECT", "all"),
            plantnet_base_url=os.getenv("PLANTNET_URL", PLANTNET_BASE_URL),
            plantnet_timeout=as_float(os.getenv("PLANTNET_TIMEOUT"), 60.0),
            wiki_locales=as_tuple(os.getenv("WIKI_LOCALES"), ("en", "fr")),
            wiki_user_agent=os.getenv("WIKI_USER_AGENT", WIKI_USER_AGENT),
            wiki_timeout=as_float(os.getenv("WIKI_TIMEOUT"), 20.0),
            data_dir=Path(os.getenv("MYBLOOM_DATA_DIR", "data")).expanduser().resolve(),
            jpeg_quality=as_int(os.getenv("JPEG_QUALITY"), 90),
            pipeline_workers=max(1, as_int(os.getenv("PIPELINE_WORKERS"), 4)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def plantnet_url(self) -> str:
        return f"{self.plantnet_base_url.rstrip('/')}/{self.plantnet_project}"

    @property
    def images_dir(self) -> Path:
        return self.data_dir / "plant_images"

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def database_path(self) -> Path:
        return self.data_dir / "mybloom.db"

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / "app_preferences.json"


# =========================
# Preferences (theme)
# =========================
THEME_KEY = "theme_mode"
THEME_LIGHT = "light"
THEME_DARK = "dark"
THEME_SYSTEM = "system"
THEMES: Dict[str, str] = {
    THEME_LIGHT: "Light",
    THEME_DARK: "Dark",
    THEME_SYSTEM: "System",
}


class Preferences:
    """Small JSON-backed key/value store for user-facing app preferences."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def init(self) -> None:
        """Create the preferences file with defaults if it does not exist yet."""
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        save_cache(str(self.path), {THEME_KEY: THEME_SYSTEM})

    def get_theme(self) -> str:
        theme = load_cache(str(self.path)).get(THEME_KEY, THEME_SYSTEM)
        return theme if theme in THEMES else THEME_SYSTEM

    def set_theme(self, theme_mode: str) -> None:
        if theme_mode not in THEMES:
            raise ValueError(f"Unknown theme mode: {theme_mode!r}")
        with self._lock:
            data = load_cache(str(self.path))
            data[THEME_KEY] = theme_mode
            self.path.parent.mkdir(parents=True, exist_ok=True)
            save_cache(str(self.path), data)


# =========================
# Session (current user)
# =========================
class Session:
    """Who is signed in. The sign-in flow itself lives outside this backend."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id: Optional[str] = None
        if user_id:
            self.sign_in(user_id)

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def sign_in(self, user_id: str) -> None:
        user_id = (user_id or "").strip()
        if not user_id:
            raise ValueError("user_id must be non-empty")
        self._user_id = user_id

    def sign_out(self) -> None:
        self._user_id = None
