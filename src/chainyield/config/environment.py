"""
Environment Configuration

Loads environment variables from .env files and interpolates ${VAR}
placeholders in configuration strings and RPC URLs.
"""

import os
import re
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r'\$\{([A-Za-z0-9_]+)\}')


class EnvironmentManager:
    """
    Manages environment variables for optimizer configuration.

    Features:
    - Loads from .env files
    - Supports environment-specific files (.env.development, .env.production)
    - Interpolates ${VAR} placeholders
    """

    def __init__(self, env_name: Optional[str] = None, load_files: bool = True):
        self.env_name = env_name or os.getenv("APP_ENV", "development")
        if load_files:
            self.load_env_files()

    def load_env_files(self) -> None:
        """Load environment variables from .env files"""
        # Base .env file
        load_dotenv()

        # Environment specific file (.env.development, .env.production, etc.)
        env_specific_path = f".env.{self.env_name}"
        if os.path.exists(env_specific_path):
            load_dotenv(env_specific_path)
            logger.info(f"Loaded environment specific config from {env_specific_path}")

        # Local overrides (not in version control)
        local_env_path = ".env.local"
        if os.path.exists(local_env_path):
            load_dotenv(local_env_path, override=True)
            logger.info(f"Loaded local environment overrides from {local_env_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get environment variable value with optional default"""
        return os.getenv(key, default)

    def get_float(self, key: str) -> Optional[float]:
        value = self.get(key)
        if value in (None, ""):
            return None
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {key}={value!r}")
            return None

    def interpolate_config(self, config_str: str) -> str:
        """Replace ${VAR_NAME} with the value of VAR_NAME (empty if unset)"""
        return _PLACEHOLDER.sub(lambda m: self.get(m.group(1), ''), config_str)

    def resolve_urls(self, urls: list) -> list:
        """Interpolate URLs and drop the ones whose placeholders are unset"""
        resolved = []
        for url in urls:
            missing = [name for name in _PLACEHOLDER.findall(url) if not self.get(name)]
            if missing:
                continue
            resolved.append(self.interpolate_config(url))
        return resolved

    def policy_overrides(self) -> Dict[str, Dict[str, Any]]:
        """Policy values overridden through CHAINYIELD_* variables"""
        overrides: Dict[str, Dict[str, Any]] = {}

        investment = self.get_float("CHAINYIELD_REFERENCE_INVESTMENT_USD")
        if investment is not None:
            overrides.setdefault('net_yield', {})['reference_investment_usd'] = investment

        native_price = self.get_float("CHAINYIELD_NATIVE_TOKEN_PRICE_USD")
        if native_price is not None:
            overrides.setdefault('net_yield', {})['native_token_price_usd'] = native_price

        ttl = self.get_float("CHAINYIELD_GAS_CACHE_TTL")
        if ttl is not None:
            overrides.setdefault('gas', {})['cache_ttl_seconds'] = ttl

        return overrides


def get_env_manager(env_name: Optional[str] = None) -> EnvironmentManager:
    """Create an environment manager"""
    return EnvironmentManager(env_name)
