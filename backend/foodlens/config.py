"""
Centralized configuration.
Read once from the environment at process start into an immutable Settings
object; components receive it through their constructors.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# backend/foodlens/config.py -> parent=foodlens, parent.parent=backend
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_REPO_ROOT = _BACKEND_DIR.parent

DEFAULT_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-lite"
DEFAULT_GEMINI_FALLBACKS = ("gemini-2.5-flash", "gemini-2.0-flash")
DEFAULT_OFF_URL = "https://world.openfoodfacts.org"
DEFAULT_OFF_IMAGE_URL = "https://images.openfoodfacts.org/images/products"
DEFAULT_USER_AGENT = "FoodLens/0.1 (product-resolution)"


def get_env_path() -> Path:
    return _BACKEND_DIR / ".env"


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("CONFIG invalid float %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration. Build with Settings.from_env()."""
    gemini_api_key: str = ""
    gemini_url: str = DEFAULT_GEMINI_URL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_fallback_models: Tuple[str, ...] = DEFAULT_GEMINI_FALLBACKS
    gemini_max_output_tokens: int = 4096
    gemini_temperature: float = 0.2
    model_timeout: float = 30.0

    off_url: str = DEFAULT_OFF_URL
    off_enabled: bool = True
    off_timeout: float = 10.0
    off_image_url: str = DEFAULT_OFF_IMAGE_URL
    image_check_timeout: float = 3.0

    scan_cache_size: int = 200
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY", "").strip(),
            gemini_url=os.environ.get("GEMINI_API_URL", DEFAULT_GEMINI_URL).rstrip("/"),
            gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL).strip(),
            gemini_fallback_models=_env_list("GEMINI_FALLBACK_MODELS", DEFAULT_GEMINI_FALLBACKS),
            gemini_max_output_tokens=_env_int("GEMINI_MAX_OUTPUT_TOKENS", 4096),
            gemini_temperature=_env_float("GEMINI_TEMPERATURE", 0.2),
            model_timeout=_env_float("MODEL_TIMEOUT", 30.0),
            off_url=os.environ.get("OPEN_FOOD_FACTS_URL", DEFAULT_OFF_URL).rstrip("/"),
            off_enabled=_env_bool("OPEN_FOOD_FACTS_ENABLED", "true"),
            off_timeout=_env_float("OPEN_FOOD_FACTS_TIMEOUT", 10.0),
            off_image_url=os.environ.get("OFF_IMAGE_URL", DEFAULT_OFF_IMAGE_URL).rstrip("/"),
            image_check_timeout=_env_float("IMAGE_CHECK_TIMEOUT", 3.0),
            scan_cache_size=_env_int("SCAN_CACHE_SIZE", 200),
            user_agent=os.environ.get("HTTP_USER_AGENT", DEFAULT_USER_AGENT),
        )

    @property
    def model_configured(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def model_chain(self) -> Tuple[str, ...]:
        """Preferred model first, then fallbacks, duplicates dropped."""
        chain = []
        for name in (self.gemini_model,) + tuple(self.gemini_fallback_models):
            name = (name or "").strip()
            if name and name not in chain:
                chain.append(name)
        return tuple(chain)


# --- Startup logging ---
def log_config(settings: Optional[Settings] = None) -> None:
    s = settings or Settings.from_env()
    logger.info(
        "CONFIG: gemini_key=%s models=%s model_timeout=%.0fs off_enabled=%s "
        "off_timeout=%.0fs image_check_timeout=%.1fs scan_cache_size=%d",
        s.model_configured, ",".join(s.model_chain), s.model_timeout,
        s.off_enabled, s.off_timeout, s.image_check_timeout, s.scan_cache_size,
    )
