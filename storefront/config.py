"""Configuration loading and logging setup."""
import json
import logging
import os
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

_PLACEHOLDER_VALUES = {'', 'changeme', 'sk_test_placeholder'}

DEFAULT_CONFIG: Dict[str, Any] = {
    'database_url': 'sqlite:///storefront.db',
    'stripe_secret_key': '',
    'stripe_api_base': 'https://api.stripe.com',
    'currency': 'usd',
    'jwt_secret_key': 'dev-only-secret-change-me-before-deploying',
    'jwt_expires_hours': 24,
    'log_level': 'INFO',
    'host': '127.0.0.1',
    'port': 5000,
}

# (config key, environment variable)
_ENV_OVERRIDES = (
    ('database_url', 'DATABASE_URL'),
    ('stripe_secret_key', 'STRIPE_SECRET_KEY'),
    ('stripe_api_base', 'STRIPE_API_BASE'),
    ('currency', 'STOREFRONT_CURRENCY'),
    ('jwt_secret_key', 'JWT_SECRET_KEY'),
    ('log_level', 'STOREFRONT_LOG_LEVEL'),
)


def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root storefront logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger('storefront')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


def is_placeholder_value(value: str) -> bool:
    """Check if a value is a placeholder that should not be used for real API calls."""
    if not value or not isinstance(value, str):
        return True
    return value.startswith('YOUR_') or value in _PLACEHOLDER_VALUES


def load_config(config_path: str = 'config.json') -> Dict[str, Any]:
    """Load configuration from JSON file with environment variable support.

    The file is optional; missing keys fall back to :data:`DEFAULT_CONFIG`.
    Environment variables take precedence over config file values:

    - DATABASE_URL overrides database_url
    - STRIPE_SECRET_KEY overrides stripe_secret_key
    - STRIPE_API_BASE overrides stripe_api_base
    - STOREFRONT_CURRENCY overrides currency
    - JWT_SECRET_KEY overrides jwt_secret_key
    - STOREFRONT_LOG_LEVEL overrides log_level
    """
    config = dict(DEFAULT_CONFIG)
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config.update(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            logging.getLogger('storefront.config').warning(
                "Could not load %s: %s", config_path, e)

    for key, env_name in _ENV_OVERRIDES:
        if os.getenv(env_name):
            config[key] = os.getenv(env_name)

    config['currency'] = str(config['currency']).lower()
    return config
