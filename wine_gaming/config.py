"""
config.py
Wine Gaming Setup - Configuration Management

Loads optional user settings from a JSON file and merges them over the
built-in defaults (pinned DXVK / VKD3D-Proton versions, download URLs,
cache and log locations).
"""

import os
import copy
import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger('ConfigManager')

CONFIG_ENV_VAR = "WINE_GAMING_CONFIG"
DEFAULT_CONFIG_PATH = os.path.expanduser("~/.config/wine-gaming-setup/config.json")
DEFAULT_CACHE_DIR = os.path.expanduser("~/.cache/wine-gaming-setup")
DEFAULT_PREFIX = os.path.expanduser("~/Games/wine-gaming")

DXVK_VERSION = "2.3.1"
VKD3D_VERSION = "2.12"
DXVK_URL = "https://github.com/doitsujin/dxvk/releases/download/v{version}/dxvk-{version}.tar.gz"
VKD3D_URL = ("https://github.com/HansKristian-Work/vkd3d-proton/releases/download/"
             "v{version}/vkd3d-proton-{version}.tar.xz")

DEFAULT_CONFIG: Dict[str, Any] = {
    "versions": {
        "dxvk": DXVK_VERSION,
        "vkd3d": VKD3D_VERSION,
    },
    "urls": {
        "dxvk": DXVK_URL,
        "vkd3d": VKD3D_URL,
    },
    "paths": {
        "cache_dir": DEFAULT_CACHE_DIR,
        "log_file": os.path.join(DEFAULT_CACHE_DIR, "wine_gaming_setup.log"),
    },
    "options": {
        "verbose": False,
        "download_timeout": 60,
    },
}


class ConfigManager:
    """Class to handle configuration management"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_path: Path to configuration file; defaults to
                $WINE_GAMING_CONFIG or ~/.config/wine-gaming-setup/config.json
        """
        self.config_path = config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        config = copy.deepcopy(DEFAULT_CONFIG)
        if not os.path.exists(self.config_path):
            return config

        try:
            with open(self.config_path, "r") as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load configuration from {self.config_path}: {e}")
            return config

        if not isinstance(user_config, dict):
            logger.warning(f"Ignoring configuration {self.config_path}: top level must be an object")
            return config

        self._merge_configs(config, user_config)
        logger.debug(f"Loaded configuration from {self.config_path}")
        return config

    def _merge_configs(self, target: Dict[str, Any], source: Dict[str, Any]) -> None:
        """
        Recursively merge source dictionary into target

        Args:
            target: Target dictionary
            source: Source dictionary
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_configs(target[key], value)
            else:
                target[key] = value

    def get_config(self) -> Dict[str, Any]:
        return self.config

    def version(self, layer: str) -> str:
        return str(self.config["versions"][layer])

    def url(self, layer: str) -> str:
        """Download URL of a translation layer with its pinned version filled in"""
        return self.config["urls"][layer].format(version=self.version(layer))

    @property
    def cache_dir(self) -> str:
        return os.path.expanduser(self.config["paths"]["cache_dir"])

    @property
    def log_file(self) -> Optional[str]:
        log_file = self.config["paths"].get("log_file")
        return os.path.expanduser(log_file) if log_file else None

    @property
    def verbose(self) -> bool:
        return bool(self.config["options"].get("verbose", False))

    @property
    def download_timeout(self) -> float:
        return float(self.config["options"].get("download_timeout", 60))
