"""
Configuration loader for the OSM tile downloader.
Settings come from built-in defaults, an optional YAML file and the command line,
later sources overriding earlier ones.
"""
import os
import yaml
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from osm_tile_downloader.exceptions import ConfigurationError
from osm_tile_downloader.downloader.policy import (
    DEFAULT_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY_MS,
)
from osm_tile_downloader.tiles import ZoomRange


@dataclass
class Config:
    start_zoom: Optional[int] = None
    end_zoom: Optional[int] = None
    url: Optional[str] = None
    output_dir: Optional[str] = None
    verbose: bool = False
    check_only: bool = False
    delay: int = DEFAULT_DELAY_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS
    force_overwrite: bool = False
    yes: bool = False
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_transport_errors: bool = False
    log_file: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if isinstance(self.output_dir, str) and self.output_dir:
            self.output_dir = os.path.abspath(os.path.expanduser(self.output_dir))

    @property
    def zoom_range(self) -> ZoomRange:
        return ZoomRange(self.start_zoom, self.end_zoom)

    @classmethod
    def field_names(cls):
        return [f.name for f in fields(cls) if f.name != 'extra']

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create a configuration from a mapping of setting names to values.

        Dashes in keys are accepted in place of underscores. Unknown keys are
        kept in ``extra`` so validation can report them.
        """
        known = set(cls.field_names())
        values = {}
        extra = {}
        for key, value in (data or {}).items():
            name = str(key).replace('-', '_')
            if name in known:
                values[name] = value
            else:
                extra[key] = value
        return cls(extra=extra, **values)

    @classmethod
    def from_yaml(cls, config_path: str) -> 'Config':
        """Load configuration from a YAML file."""
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Configuration file '{config_path}' could not be read: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file '{config_path}': {e}") from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file '{config_path}' must contain a mapping")
        return cls.from_dict(config_data)

    @classmethod
    def from_args(cls, args) -> 'Config':
        """Build the configuration from parsed command line arguments.

        Options left unset on the command line fall back to the YAML file
        given with ``--config``, then to the defaults.
        """
        config_path = getattr(args, 'config', None)
        config = cls.from_yaml(config_path) if config_path else cls()
        overrides = {
            name: getattr(args, name)
            for name in cls.field_names()
            if getattr(args, name, None) is not None
        }
        return config.merge(overrides)

    def merge(self, overrides: Dict[str, Any]) -> 'Config':
        """Return a copy with the given settings replaced."""
        return replace(self, **overrides)
