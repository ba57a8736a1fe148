"""
Configuration file parser for CommuteCalc
Handles YAML and JSON configuration and marker files with validation
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from commutecalc.core.models import LatLng, Marker

from .models import AppConfig, ConfigFormat, MarkerEntry


class ConfigParserError(Exception):
    """Configuration parsing error"""
    pass


class ConfigParser:
    """Parser for CommuteCalc configuration files"""

    @staticmethod
    def detect_format(file_path: Path) -> ConfigFormat:
        """Detect configuration file format from extension"""
        suffix = file_path.suffix.lower()

        if suffix in ['.yaml', '.yml']:
            return ConfigFormat.YAML
        elif suffix == '.json':
            return ConfigFormat.JSON
        else:
            raise ConfigParserError(f"Unsupported file format: {suffix}")

    @staticmethod
    def load_file(file_path: Path) -> Any:
        """Load configuration file content"""
        if not file_path.exists():
            raise ConfigParserError(f"Configuration file not found: {file_path}")

        format_type = ConfigParser.detect_format(file_path)

        try:
            content = file_path.read_text(encoding='utf-8')

            if format_type == ConfigFormat.YAML:
                return yaml.safe_load(content)
            return json.loads(content)

        except yaml.YAMLError as e:
            raise ConfigParserError(f"Invalid YAML syntax: {e}")
        except json.JSONDecodeError as e:
            raise ConfigParserError(f"Invalid JSON syntax: {e}")
        except OSError as e:
            raise ConfigParserError(f"Error reading file: {e}")

    @staticmethod
    def save_file(config: AppConfig, file_path: Path, format_type: Optional[ConfigFormat] = None) -> None:
        """Save configuration to file"""
        if format_type is None:
            format_type = ConfigParser.detect_format(file_path)

        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode='json')

        if format_type == ConfigFormat.YAML:
            content = yaml.dump(
                config_dict,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )
        else:
            content = json.dumps(config_dict, indent=2)

        try:
            file_path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise ConfigParserError(f"Error writing file: {e}")

    @staticmethod
    def parse_config(file_path: Path) -> AppConfig:
        """
        Parse and validate an application configuration file

        Args:
            file_path: YAML or JSON file

        Returns:
            Validated AppConfig

        Raises:
            ConfigParserError: If the file is missing, malformed or invalid
        """
        data = ConfigParser.load_file(file_path) or {}
        if not isinstance(data, dict):
            raise ConfigParserError(f"Configuration root must be a mapping: {file_path}")

        try:
            return AppConfig(**data)
        except ValidationError as e:
            raise ConfigParserError(f"Configuration validation failed: {e}")

    @staticmethod
    def parse_markers(file_path: Path) -> List[MarkerEntry]:
        """
        Parse a markers file

        Accepts either a list of entries or a mapping with a ``markers`` key.
        """
        data = ConfigParser.load_file(file_path)

        if isinstance(data, dict):
            data = data.get("markers")
        if not isinstance(data, list):
            raise ConfigParserError(f"Markers file must contain a list of markers: {file_path}")

        entries = []
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                raise ConfigParserError(f"Marker {index} must be a mapping")
            try:
                entries.append(MarkerEntry(**item))
            except ValidationError as e:
                raise ConfigParserError(f"Marker {index} is invalid: {e}")

        return entries

    @staticmethod
    def entry_to_marker(entry: MarkerEntry, position: Optional[LatLng] = None) -> Marker:
        """Build a Marker from a file entry, with an optional geocoded position"""
        if position is None:
            if not entry.has_position:
                raise ConfigParserError(f"Marker '{entry.address}' has no coordinates")
            position = LatLng(lat=entry.lat, lng=entry.lng)

        return Marker(
            position=position,
            address=entry.address,
            is_home=entry.home,
            visits_per_week=entry.visits,
        )

    @staticmethod
    def markers_to_dict(markers: List[Marker]) -> Dict[str, Any]:
        """Serialize markers in the markers file layout"""
        return {
            "markers": [
                {
                    "address": m.address,
                    "lat": m.position.lat,
                    "lng": m.position.lng,
                    "home": m.is_home,
                    "visits": m.visits_per_week,
                }
                for m in markers
            ]
        }
