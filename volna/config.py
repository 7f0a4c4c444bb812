"""
Configuration management for Volna Bot
"""
import os
import json
import logging
from typing import Dict, Any, Optional

from volna.exceptions import ConfigurationError

logger = logging.getLogger("Volna.Config")

ENV_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), '.env')


def load_env_file(path: Optional[str] = None) -> None:
    """Load environment variables from a .env file if it exists.

    Variables already present in the environment win over the file.
    """
    env_path = path or ENV_PATH
    if not os.path.exists(env_path):
        return
    try:
        with open(env_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key and not os.getenv(key):
                        os.environ[key] = value
    except OSError as e:
        logger.warning("Could not load .env file: %s", e)


CONFIG_PATH = "config.json"
DEFAULT_CONFIG = {
    # Token should NEVER be in config file - use environment variables only
    "prefix": "!",
    "language": "ru",
    "max_queue_size": 100,
    # fixed delay before logging in again after a fatal client error
    "reconnect_delay_seconds": 5,
    "ytdl_workers": 2,
    "user_agent": "Mozilla/5.0",
    "activity_text": "музыку (!help)",
    "trace_logging": False,
    "structured_logging": False,
    "log_file": "Volna.log",
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.json, merged with defaults."""
    config_path = path or CONFIG_PATH
    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_conf = json.load(f)
            if not isinstance(user_conf, dict):
                raise ValueError("top-level JSON value must be an object")
            # Remove token from user config if it exists (security measure)
            if "token" in user_conf:
                logger.warning("Token found in %s - this is insecure. Please use DISCORD_TOKEN environment variable instead.", config_path)
                del user_conf["token"]
            config = {**DEFAULT_CONFIG, **user_conf}
        except (OSError, ValueError) as e:
            logger.warning("Could not load %s: %s", config_path, e)
            config = DEFAULT_CONFIG.copy()
    else:
        config = DEFAULT_CONFIG.copy()

    return validate_config(config)


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and sanitize configuration values.

    Does not remove existing keys; only replaces clearly invalid values with defaults.
    """
    def clamp_int(key, minimum):
        default = DEFAULT_CONFIG[key]
        try:
            if int(cfg.get(key)) < minimum:
                logger.warning("Config '%s'=%s < %s; fallback to %s", key, cfg.get(key), minimum, default)
                cfg[key] = default
            else:
                cfg[key] = int(cfg[key])
        except (TypeError, ValueError):
            logger.warning("Config '%s' invalid (%s); fallback to %s", key, cfg.get(key), default)
            cfg[key] = default

    clamp_int("max_queue_size", 1)
    clamp_int("reconnect_delay_seconds", 0)
    clamp_int("ytdl_workers", 1)
    prefix = cfg.get("prefix")
    if not isinstance(prefix, str) or not prefix.strip():
        logger.warning("Config 'prefix' invalid (%r); fallback to %r", prefix, DEFAULT_CONFIG["prefix"])
        cfg["prefix"] = DEFAULT_CONFIG["prefix"]
    lang = str(cfg.get("language") or "").lower()
    if lang not in ("ru", "en"):
        logger.warning("Unknown language=%s; fallback to 'ru'", cfg.get("language"))
        cfg["language"] = "ru"
    else:
        cfg["language"] = lang
    return cfg


def get_token() -> str:
    """Get Discord token from environment variables only."""
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise ConfigurationError("DISCORD_TOKEN environment variable is required!")
    return token
