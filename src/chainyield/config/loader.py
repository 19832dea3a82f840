"""
Configuration Loader

Loads optimizer policy files (YAML or JSON) with environment variable
interpolation and CHAINYIELD_* overrides.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .environment import EnvironmentManager
from .policy import OptimizerPolicy

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Configuration loader for optimizer policy.

    Features:
    - Load from JSON or YAML files
    - Environment variable interpolation
    - Default values fallback
    """

    def __init__(self, env_manager: Optional[EnvironmentManager] = None):
        self.env = env_manager or EnvironmentManager()

    def _read(self, path: str) -> Optional[str]:
        config_path = Path(path)
        if not config_path.exists():
            logger.warning(f"Config file not found: {path}")
            return None
        with open(config_path, 'r') as f:
            return self.env.interpolate_config(f.read())

    def load_json_config(self, path: str) -> Dict[str, Any]:
        """
        Load and parse a JSON configuration file

        Args:
            path: Path to JSON config file

        Returns:
            Parsed configuration dictionary
        """
        config_str = self._read(path)
        if config_str is None:
            return {}
        try:
            return json.loads(config_str) or {}
        except json.JSONDecodeError as e:
            logger.error(f"Error loading JSON config file {path}: {e}")
            return {}

    def load_yaml_config(self, path: str) -> Dict[str, Any]:
        """
        Load and parse a YAML configuration file

        Args:
            path: Path to YAML config file

        Returns:
            Parsed configuration dictionary
        """
        config_str = self._read(path)
        if config_str is None:
            return {}
        try:
            return yaml.safe_load(config_str) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error loading YAML config file {path}: {e}")
            return {}

    def load_policy(self, path: Optional[str] = None) -> OptimizerPolicy:
        """
        Load the optimizer policy

        Args:
            path: Optional .yaml/.yml/.json policy file

        Returns:
            Policy built from defaults, the file and environment overrides
        """
        data: Dict[str, Any] = {}
        if path:
            if path.endswith(('.yaml', '.yml')):
                data = self.load_yaml_config(path)
            elif path.endswith('.json'):
                data = self.load_json_config(path)
            else:
                logger.error(f"Unsupported config file format: {path}")

        data = _deep_merge(data, self.env.policy_overrides())
        return OptimizerPolicy.from_dict(data)


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_policy(path: Optional[str] = None) -> OptimizerPolicy:
    """Load the optimizer policy with a default loader"""
    return ConfigLoader().load_policy(path)
