"""
Utility functions for the OSM tile downloader.
"""
import os
import re
import logging
from typing import Callable, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from osm_tile_downloader.tiles import MAX_ZOOM, MIN_ZOOM

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONFIRM_PATTERN = re.compile(r'^(?:y|yes)$', re.IGNORECASE)
BOOLEAN_SETTINGS = ('verbose', 'check_only', 'force_overwrite', 'yes', 'retry_transport_errors')


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_url_template(url: str) -> List[str]:
    """Check that a tile URL is http(s), has a host and carries {z}, {x} and {y}."""
    if not isinstance(url, str) or not url:
        return [f"Invalid URL: '{url}'"]

    parsed = urlparse(url)
    errors = []
    if parsed.scheme not in ('http', 'https'):
        errors.append(f"URL must use http or https, got '{url}'")
    if not parsed.hostname:
        errors.append(f"URL has no hostname: '{url}'")

    path = unquote(parsed.path + ('?' + parsed.query if parsed.query else ''))
    missing = [token for token in ('{z}', '{x}', '{y}') if token not in path]
    if missing:
        errors.append(f"URL is missing {', '.join(missing)} placeholder(s): '{url}'")
    return errors


def validate_config(config) -> Tuple[bool, List[str]]:
    """Validate the run configuration.

    Args:
        config: Configuration to check

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    for key in config.extra:
        errors.append(f"Unknown configuration setting: {key}")

    for name in BOOLEAN_SETTINGS:
        value = getattr(config, name)
        if not isinstance(value, bool):
            errors.append(f"{name} must be true or false, got '{value}'")

    # Zoom levels
    zooms_valid = True
    for name in ('start_zoom', 'end_zoom'):
        value = getattr(config, name)
        if value is None:
            errors.append(f"Missing required setting: {name}")
            zooms_valid = False
        elif not _is_int(value) or not MIN_ZOOM <= value <= MAX_ZOOM:
            errors.append(f"{name} must be an integer between {MIN_ZOOM} and {MAX_ZOOM}, got '{value}'")
            zooms_valid = False
    if zooms_valid and config.start_zoom > config.end_zoom:
        errors.append("Start zoom level must be lower than end zoom level")

    if config.force_overwrite and config.check_only:
        errors.append("Can't use both force overwrite and check tiles options")

    # URL is not needed to check tiles
    if config.url is None:
        if not config.check_only:
            errors.append("Missing required setting: url")
    else:
        errors.extend(validate_url_template(config.url))

    # Output directory
    if not config.output_dir:
        errors.append("Missing required setting: output_dir")
    elif not os.path.exists(config.output_dir):
        errors.append(f"Output directory '{config.output_dir}' does not exist")
    elif not os.path.isdir(config.output_dir):
        errors.append(f"Output directory '{config.output_dir}' is not a directory")

    for name in ('delay', 'max_retries', 'retry_delay'):
        value = getattr(config, name)
        if not _is_int(value) or value < 0:
            errors.append(f"{name} must be a non-negative integer, got '{value}'")

    if not _is_number(config.timeout) or config.timeout <= 0:
        errors.append(f"timeout must be a positive number, got '{config.timeout}'")

    return len(errors) == 0, errors


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure logging for the application.

    Args:
        verbose: Log debug messages
        log_file: Optional path to log file. If None, logs only to console.
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )

    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)


def confirm_download(tile_count: int, checking: bool = False,
                     input_func: Callable[[str], str] = input) -> bool:
    """Ask the user whether to proceed with the run.

    Args:
        tile_count: Number of tiles the run will visit
        checking: Whether tiles are only checked
        input_func: Reads the answer, ``input`` by default

    Returns:
        True if the answer is y or yes
    """
    verb = 'checking' if checking else 'downloading'
    try:
        answer = input_func(f"Proceed with {verb} {tile_count} tiles? [yes/no] ")
    except EOFError:
        return False
    return bool(CONFIRM_PATTERN.match(answer.strip()))
