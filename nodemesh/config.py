"""
Configuration for the NodeMesh Chat Router

Built once at process start (see app.py lifespan) and passed explicitly to the
classifier, the model invoker and every handler. Nothing below reads the
environment after construction.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_FALLBACK_MODELS = ("gemini-1.5-flash", "gemini-pro")
DEFAULT_WEATHER_BASE_URL = "https://api.weatherapi.com/v1"
DEFAULT_NEWS_BASE_URL = "https://newsapi.org/v2"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid {name}, using default {default}")
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid {name}, using default {default}")
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def mask_secret(value: Optional[str]) -> str:
    """Render a credential for logs: first five and last four characters only."""
    if not value:
        return "<not set>"
    if len(value) <= 9:
        return "*" * len(value)
    return f"{value[:5]}...{value[-4:]}"


@dataclass
class RouterConfig:
    """
    Configuration for the chat router.

    Attributes:
        gemini_api_key: Gemini API key (empty disables the LLM path)
        gemini_model: Preferred Gemini model (default: gemini-2.0-flash)
        fallback_models: Models tried, in order, after the preferred one
        disable_gemini: Kill switch forcing the deterministic fallbacks
        gemini_timeout: Per-model call timeout in seconds (default: 15.0)
        weather_api_key: weatherapi.com key (empty disables weather)
        news_api_key: newsapi.org key (empty disables news)
        http_timeout: Timeout for weather/news HTTP calls (default: 15.0)
        weather_base_url: weatherapi.com API root
        news_base_url: newsapi.org API root
        news_country: Country used for top headlines (default: us)
        news_default_category: Category used when no keywords are present
        news_page_size: Articles requested per call (default: 5)
        news_max_keywords: Keyword tokens kept for the news query (default: 4)
        allowed_origins: CORS allow-list for the HTTP surface
        log_classifications: Log every classification (default: True)
    """

    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    fallback_models: Tuple[str, ...] = DEFAULT_FALLBACK_MODELS
    disable_gemini: bool = False
    gemini_timeout: float = 15.0
    weather_api_key: str = ""
    news_api_key: str = ""
    http_timeout: float = 15.0
    weather_base_url: str = DEFAULT_WEATHER_BASE_URL
    news_base_url: str = DEFAULT_NEWS_BASE_URL
    news_country: str = "us"
    news_default_category: str = "business"
    news_page_size: int = 5
    news_max_keywords: int = 4
    allowed_origins: Tuple[str, ...] = field(default_factory=lambda: ("http://localhost:5173",))
    log_classifications: bool = True

    @property
    def llm_enabled(self) -> bool:
        """LLM path usable: key present and kill switch off."""
        return bool(self.gemini_api_key) and not self.disable_gemini

    @property
    def weather_configured(self) -> bool:
        return bool(self.weather_api_key)

    @property
    def news_configured(self) -> bool:
        return bool(self.news_api_key)

    def __post_init__(self):
        """Validate configuration after initialization"""
        if not self.gemini_model:
            raise ValueError("gemini_model must not be empty")

        if self.gemini_timeout <= 0:
            raise ValueError(f"gemini_timeout must be positive, got {self.gemini_timeout}")

        if self.http_timeout <= 0:
            raise ValueError(f"http_timeout must be positive, got {self.http_timeout}")

        if self.news_page_size <= 0:
            raise ValueError(f"news_page_size must be positive, got {self.news_page_size}")

        if self.news_max_keywords <= 0:
            raise ValueError(f"news_max_keywords must be positive, got {self.news_max_keywords}")

        self.fallback_models = tuple(self.fallback_models)
        self.allowed_origins = tuple(self.allowed_origins)

        if self.disable_gemini:
            logger.info("Gemini disabled via DISABLE_GEMINI. Keyword fallbacks only.")
        elif not self.gemini_api_key:
            logger.warning("⚠️ GEMINI_API_KEY not set. LLM classification and general answers are disabled.")

        if not self.weather_api_key:
            logger.warning("⚠️ WEATHER_API_KEY not set. Weather requests will report not configured.")

        if not self.news_api_key:
            logger.warning("⚠️ NEWS_API_KEY not set. News requests will report not configured.")

        if self.log_classifications:
            logger.info(
                f" RouterConfig loaded: model={self.gemini_model}, "
                f"fallbacks={list(self.fallback_models)}, llm_enabled={self.llm_enabled}, "
                f"gemini_key={mask_secret(self.gemini_api_key)}, "
                f"gemini_timeout={self.gemini_timeout}s, http_timeout={self.http_timeout}s"
            )

    @staticmethod
    def from_env() -> "RouterConfig":
        """
        Load configuration from environment variables.

        Environment Variables:
            GEMINI_API_KEY: Gemini API key (optional, LLM path disabled without it)
            GEMINI_MODEL: Preferred model (default: gemini-2.0-flash)
            GEMINI_FALLBACK_MODELS: Comma-separated fallback models
                (default: gemini-1.5-flash,gemini-pro)
            DISABLE_GEMINI: Force the keyword fallbacks (default: false)
            GEMINI_TIMEOUT: Per-model timeout in seconds (default: 15.0)
            WEATHER_API_KEY: weatherapi.com key
            NEWS_API_KEY: newsapi.org key
            NODEMESH_HTTP_TIMEOUT: Weather/news timeout in seconds (default: 15.0)
            NODEMESH_NEWS_COUNTRY: Headline country (default: us)
            NODEMESH_NEWS_CATEGORY: Default headline category (default: business)
            NODEMESH_NEWS_PAGE_SIZE: Articles per request (default: 5)
            NODEMESH_ALLOWED_ORIGINS: Comma-separated CORS origins
            NODEMESH_LOG_CLASSIFICATIONS: Log classifications (default: true)

        Returns:
            RouterConfig instance loaded from environment
        """
        return RouterConfig(
            gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL).strip() or DEFAULT_GEMINI_MODEL,
            fallback_models=_env_list("GEMINI_FALLBACK_MODELS", DEFAULT_FALLBACK_MODELS),
            disable_gemini=_env_flag("DISABLE_GEMINI", "false"),
            gemini_timeout=_env_float("GEMINI_TIMEOUT", 15.0),
            weather_api_key=os.getenv("WEATHER_API_KEY", "").strip(),
            news_api_key=os.getenv("NEWS_API_KEY", "").strip(),
            http_timeout=_env_float("NODEMESH_HTTP_TIMEOUT", 15.0),
            news_country=os.getenv("NODEMESH_NEWS_COUNTRY", "us"),
            news_default_category=os.getenv("NODEMESH_NEWS_CATEGORY", "business"),
            news_page_size=_env_int("NODEMESH_NEWS_PAGE_SIZE", 5),
            allowed_origins=_env_list("NODEMESH_ALLOWED_ORIGINS", ("http://localhost:5173",)),
            log_classifications=_env_flag("NODEMESH_LOG_CLASSIFICATIONS", "true"),
        )
