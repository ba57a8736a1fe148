"""
Configuration manager for CommuteCalc
Handles locating, loading and creating configuration files
"""

from pathlib import Path
from typing import Optional

import yaml

from commutecalc.core.models import LatLng, Marker

from .models import AppConfig
from .parser import ConfigParser, ConfigParserError


class ConfigManagerError(Exception):
    """Configuration manager error"""
    pass


class ConfigManager:
    """Manager for CommuteCalc configuration files"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Directory for configuration files (defaults to ~/.commutecalc)
        """
        if config_dir is None:
            config_dir = Path.home() / ".commutecalc"

        self.config_dir = config_dir
        self.default_config_file = self.config_dir / "config.yaml"

    def load_config(self, config_path: Optional[Path] = None) -> AppConfig:
        """
        Load configuration from file

        An explicit path must exist; the default file is optional and
        built-in defaults are used when it is absent.

        Raises:
            ConfigManagerError: If loading fails
        """
        if config_path is None:
            if not self.default_config_file.exists():
                return AppConfig()
            config_path = self.default_config_file

        if not config_path.exists():
            raise ConfigManagerError(f"Configuration file not found: {config_path}")

        try:
            return ConfigParser.parse_config(config_path)
        except ConfigParserError as e:
            raise ConfigManagerError(f"Failed to load configuration: {e}")

    def save_config(self, config: AppConfig, config_path: Optional[Path] = None) -> Path:
        """Save configuration to file (defaults to config.yaml)"""
        if config_path is None:
            config_path = self.default_config_file

        try:
            ConfigParser.save_file(config, config_path)
        except ConfigParserError as e:
            raise ConfigManagerError(f"Failed to save configuration: {e}")

        return config_path

    def create_default_config(self, config_path: Optional[Path] = None, overwrite: bool = False) -> Path:
        """
        Create a configuration file holding the default settings

        Raises:
            ConfigManagerError: If the file exists and overwrite is False
        """
        if config_path is None:
            config_path = self.default_config_file

        if config_path.exists() and not overwrite:
            raise ConfigManagerError(
                f"Config already exists: {config_path}. "
                "Use overwrite=True to replace it."
            )

        return self.save_config(AppConfig(), config_path)

    def create_example_markers(self, markers_path: Path, overwrite: bool = False) -> Path:
        """Write a small markers file to start from"""
        if markers_path.exists() and not overwrite:
            raise ConfigManagerError(f"Markers file already exists: {markers_path}")

        markers = [
            Marker(position=LatLng(lat=49.8951, lng=-97.1384), address="Downtown Winnipeg, MB", is_home=True),
            Marker(position=LatLng(lat=49.8075, lng=-97.1325), address="University of Manitoba, Winnipeg, MB", visits_per_week=5),
            Marker(position=LatLng(lat=49.8805, lng=-97.2016), address="Polo Park, Winnipeg, MB", visits_per_week=1),
        ]

        try:
            markers_path.parent.mkdir(parents=True, exist_ok=True)
            markers_path.write_text(
                yaml.dump(ConfigParser.markers_to_dict(markers), sort_keys=False),
                encoding='utf-8',
            )
        except OSError as e:
            raise ConfigManagerError(f"Failed to write markers file: {e}")

        return markers_path
