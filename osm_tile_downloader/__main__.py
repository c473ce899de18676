"""
Main entry point for the OSM tile downloader application.
"""
import sys
import logging
import argparse
from typing import Callable, List, Optional

from osm_tile_downloader import __version__
from osm_tile_downloader.config import Config
from osm_tile_downloader.downloader import DownloadPipeline, FetchPolicy
from osm_tile_downloader.exceptions import ConfigurationError, TileDownloaderException
from osm_tile_downloader.storage import TileStore
from osm_tile_downloader.tiles import count_tiles
from osm_tile_downloader.utils import confirm_download, setup_logging, validate_config

logger = logging.getLogger(__name__)


class OSMTileDownloader:
    """Main application class for downloading or checking map tiles."""

    def __init__(self, config: Config):
        """Initialize the tile downloader.

        Args:
            config: Validated run configuration
        """
        self.config = config
        self.policy = FetchPolicy.from_config(config)
        self.store = TileStore(config.output_dir)
        self.total_tiles = count_tiles(config.zoom_range)

    def create_pipeline(self) -> DownloadPipeline:
        """Create the pipeline, opening its HTTP session."""
        return DownloadPipeline(
            url_template=self.config.url,
            zoom_range=self.config.zoom_range,
            store=self.store,
            policy=self.policy
        )

    def log_banner(self):
        config = self.config
        logger.info(f"OSM Tile Downloader v{__version__}")
        logger.info(f"Start zoom level: {config.start_zoom}")
        logger.info(f"End zoom level: {config.end_zoom}")
        if not config.check_only:
            logger.info(f"URL: {config.url}")
        logger.info(f"Output directory: {config.output_dir}")
        logger.debug("Configuration:")
        logger.debug(f"  Verbose mode: {'yes' if config.verbose else 'no'}")
        logger.debug(f"  Check tiles: {'yes' if config.check_only else 'no'}")
        logger.debug(f"  Force overwrite: {'yes' if config.force_overwrite else 'no'}")
        logger.debug(f"  Yes: {'yes' if config.yes else 'no'}")
        logger.debug(f"  Delay: {config.delay} ms")
        logger.debug(f"  Max retries: {config.max_retries}")
        logger.debug(f"  Retry delay: {config.retry_delay} ms")
        logger.debug(f"  Request timeout: {config.timeout} s")
        logger.debug(f"  Retry transport errors: {'yes' if config.retry_transport_errors else 'no'}")

    def run(self, input_func: Callable[[str], str] = input) -> int:
        """Run the tile downloader.

        Returns:
            Process exit code
        """
        self.log_banner()

        if not self.config.yes:
            if not confirm_download(self.total_tiles, self.policy.check_only, input_func):
                logger.info("Cancelled")
                return 0

        stats = self.create_pipeline().run()
        logger.info(f"Finished: {stats}")
        return 0


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments.

    Flags default to None so unset options fall back to the configuration file.
    """
    parser = argparse.ArgumentParser(
        prog='osm-tile-downloader',
        description='Download map tile images from an OSM tile server.'
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('-s', '--start-zoom-level', dest='start_zoom', type=int, help='Zoom level start')
    parser.add_argument('-e', '--end-zoom-level', dest='end_zoom', type=int, help='Zoom level end')
    parser.add_argument('-u', '--url', help='Tile server URL with {z}, {x} and {y} placeholders')
    parser.add_argument('-o', '--output-dir', help='Output directory')
    parser.add_argument('-v', '--verbose', action='store_true', default=None,
                        help='Verbose mode, default is off')
    parser.add_argument('-c', '--check-tiles', dest='check_only', action='store_true', default=None,
                        help='Check if the expected tiles exist in output directory instead of downloading them')
    parser.add_argument('-d', '--delay', type=int, help='Delay in ms between downloads, default is 0')
    parser.add_argument('-m', '--max-retries', type=int,
                        help='Maximum number of retries for download, default is 3')
    parser.add_argument('-r', '--retry-delay', type=int,
                        help='Delay in ms between download retries, default is 2500')
    parser.add_argument('-f', '--force-overwrite', action='store_true', default=None,
                        help='Force overwriting existing tiles (re-downloads all tiles), default is off')
    parser.add_argument('-y', '--yes', action='store_true', default=None,
                        help='Answer yes to prompt confirming downloading of tiles, default is off')
    parser.add_argument('-t', '--timeout', type=float,
                        help='Request timeout in seconds, default is 30')
    parser.add_argument('--retry-transport-errors', action='store_true', default=None,
                        help='Retry connection failures like bad status codes instead of aborting')
    parser.add_argument('--config', type=str, help='Path to a YAML configuration file')
    parser.add_argument('--log-file', type=str, help='Also write the log to this file')
    return parser.parse_args(argv)


def report_errors(errors: List[str]):
    print(file=sys.stderr)
    for error in errors:
        print(f"  error: {error}", file=sys.stderr)
    print(file=sys.stderr)


def main(argv: Optional[List[str]] = None, input_func: Callable[[str], str] = input) -> int:
    """Main entry point."""
    try:
        args = parse_args(argv)
    except SystemExit as e:
        # argparse exits with 2 on bad options, which is the transport error code here
        if e.code in (0, None):
            raise
        return ConfigurationError.exit_code

    try:
        config = Config.from_args(args)
    except ConfigurationError as e:
        report_errors(e.errors)
        return e.exit_code

    is_valid, errors = validate_config(config)
    if not is_valid:
        report_errors(errors)
        return ConfigurationError.exit_code

    setup_logging(config.verbose, config.log_file)
    try:
        app = OSMTileDownloader(config)
        return app.run(input_func)
    except TileDownloaderException as e:
        logger.critical(f"Fatal error: {e}")
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
