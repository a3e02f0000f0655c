"""
Daily Devotional - Configuration

Load configuration from YAML files and environment variables.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml

from core.constants import TEXT_SOURCE_DELAYS_MS
from core.logging import get_logger
from core.models import GenerationSettings, LLMConfig, StorageConfig, TranslationInfo

logger = get_logger(__name__)

# Default paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "outputs"
LOGS_DIR = PROJECT_ROOT / "logs"

# Default config file
DEFAULT_CONFIG_FILE = CONFIG_DIR / "pipeline.yaml"

ENV_PREFIX = "DEVOTIONAL_"


def load_config(config_path: Optional[Path] = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file (default: config/pipeline.yaml)

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = Path(os.environ.get(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_FILE))

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return _default_config()

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded config from {config_path}")
    return config


def _default_config() -> dict[str, Any]:
    """Return default configuration."""
    return {
        "llm": {
            "base_url": "https://api.openai.com/v1",
            "api_key": "",
            "model": "gpt-4o",
        },
        "database": {
            "path": str(DATA_DIR / "devotional.sqlite"),
        },
        "storage": {
            "backend": "local",
            "local_path": str(OUTPUT_DIR / "storage"),
        },
        "translations": [
            {"code": "KJV", "name": "King James Version", "language": "en"},
        ],
        "credentials": {},
        "generation": {},
    }


# ============================================================================
# Credential / Config Store
# ============================================================================


class ConfigStore:
    """
    Named configuration values (API keys, voice identifiers) looked up by key.

    Lookup order: environment variable DEVOTIONAL_<KEY>, then the
    ``credentials`` mapping of the config file. Empty values count as absent.
    """

    def __init__(
        self,
        values: Optional[dict[str, Any]] = None,
        use_env: bool = True,
    ):
        self._values = {k: v for k, v in (values or {}).items()}
        self._use_env = use_env

    @classmethod
    def from_config(cls, config: Optional[dict[str, Any]] = None) -> "ConfigStore":
        if config is None:
            config = load_config()
        return cls(config.get("credentials") or {})

    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None when unset or empty."""
        if self._use_env:
            env_value = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
            if env_value:
                return env_value

        value = self._values.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def has(self, *keys: str) -> bool:
        """True when every key has a non-empty value."""
        return all(self.get(key) for key in keys)


# ============================================================================
# Typed Accessors
# ============================================================================


def get_llm_config(config: Optional[dict[str, Any]] = None) -> LLMConfig:
    """
    Get LLM configuration from config dict and environment variables.
    Environment variables take precedence.

    Env vars:
        DEVOTIONAL_LLM_BASE_URL
        DEVOTIONAL_LLM_API_KEY
        DEVOTIONAL_LLM_MODEL
    """
    if config is None:
        config = load_config()

    llm_config = config.get("llm", {})
    defaults = LLMConfig()

    return LLMConfig(
        base_url=os.environ.get(f"{ENV_PREFIX}LLM_BASE_URL", llm_config.get("base_url", defaults.base_url)),
        api_key=os.environ.get(f"{ENV_PREFIX}LLM_API_KEY", llm_config.get("api_key", "")),
        model=os.environ.get(f"{ENV_PREFIX}LLM_MODEL", llm_config.get("model", defaults.model)),
        temperature=float(llm_config.get("temperature", defaults.temperature)),
        max_tokens=int(llm_config.get("max_tokens", defaults.max_tokens)),
        timeout=int(llm_config.get("timeout", defaults.timeout)),
    )


def get_db_path(config: Optional[dict[str, Any]] = None) -> Path:
    """Get database file path (DEVOTIONAL_DB_PATH overrides the file)."""
    if config is None:
        config = load_config()

    env_path = os.environ.get(f"{ENV_PREFIX}DB_PATH")
    if env_path:
        return Path(env_path)

    db_config = config.get("database", {})
    return Path(db_config.get("path", str(DATA_DIR / "devotional.sqlite")))


def get_storage_config(config: Optional[dict[str, Any]] = None) -> StorageConfig:
    """
    Get object storage configuration.

    Env vars (override file values):
        DEVOTIONAL_STORAGE_BUCKET
        DEVOTIONAL_STORAGE_ACCESS_KEY_ID
        DEVOTIONAL_STORAGE_SECRET_ACCESS_KEY
        DEVOTIONAL_STORAGE_PUBLIC_BASE_URL
    """
    if config is None:
        config = load_config()

    storage = dict(config.get("storage") or {})
    for key in ("backend", "bucket", "region", "endpoint_url", "access_key_id",
                "secret_access_key", "public_base_url", "local_path"):
        env_value = os.environ.get(f"{ENV_PREFIX}STORAGE_{key.upper()}")
        if env_value:
            storage[key] = env_value

    return StorageConfig(**storage)


def get_translation_catalog(config: Optional[dict[str, Any]] = None) -> list[TranslationInfo]:
    """
    Get the configured translation/voice codes.

    Codes with a known text-source rate ceiling get their fixed delay
    unless the entry sets ``delay_ms`` itself.
    """
    if config is None:
        config = load_config()

    catalog = []
    for entry in config.get("translations", []):
        code = str(entry.get("code", "")).strip().upper()
        if not code:
            logger.warning(f"Skipping translation entry without code: {entry}")
            continue

        catalog.append(TranslationInfo(
            code=code,
            name=entry.get("name", code),
            language=entry.get("language", "en"),
            active=bool(entry.get("active", True)),
            api_bible_id=entry.get("api_bible_id"),
            delay_ms=int(entry.get("delay_ms", TEXT_SOURCE_DELAYS_MS.get(code, 0))),
        ))

    return catalog


def get_generation_settings(config: Optional[dict[str, Any]] = None) -> GenerationSettings:
    """Get generation tunables (subtitle grouping, delays, music directory)."""
    if config is None:
        config = load_config()

    return GenerationSettings(**(config.get("generation") or {}))


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    for directory in [CONFIG_DIR, DATA_DIR, OUTPUT_DIR, LOGS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)
