"""
Core download pipeline for map tiles.

Tiles are processed strictly one at a time in traversal order. A tile is
skipped when already present, reported when running in check mode, or
fetched with bounded in-place retries for non-200 responses.
"""
import time
import logging
import requests
from dataclasses import dataclass, field
from typing import Callable, Optional

from osm_tile_downloader.exceptions import StreamError, TransportError
from osm_tile_downloader.storage import TileStore
from osm_tile_downloader.tiles import TileAddress, ZoomRange, count_tiles, next_tile
from .policy import FetchPolicy
from .progress import ProgressState, ProgressTracker

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (Windows NT 6.1; Win64; x64; rv:47.0) Gecko/20100101 Firefox/47.0'
CHUNK_SIZE = 8192


@dataclass(frozen=True)
class PipelineState:
    """Position of the pipeline: the tile being processed, its retries so far
    and the progress counters as of that tile."""
    address: Optional[TileAddress]
    retry_count: int = 0
    progress: ProgressState = field(default_factory=ProgressState)

    @property
    def done(self) -> bool:
        return self.address is None


@dataclass
class PipelineStats:
    saved: int = 0
    skipped: int = 0
    missing: int = 0
    given_up: int = 0
    retries: int = 0
    requests: int = 0

    def __str__(self) -> str:
        return (f"saved={self.saved}, skipped={self.skipped}, missing={self.missing}, "
                f"given_up={self.given_up}, retries={self.retries}, requests={self.requests}")


class DownloadPipeline:
    """Walks a tile pyramid and downloads or checks every tile."""

    def __init__(self, url_template: Optional[str], zoom_range: ZoomRange, store: TileStore,
                 policy: FetchPolicy, session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 progress: Optional[ProgressTracker] = None):
        """Initialize the pipeline.

        Args:
            url_template: URL with {z}, {x} and {y} placeholders, may be None in check mode
            zoom_range: Zoom levels to traverse
            store: Destination of the tiles
            policy: Retry, pacing and overwrite settings
            session: HTTP session used for requests, a new one by default
            sleep: Called with a number of seconds to pause the pipeline
            progress: Progress tracker, one sized for the whole range by default
        """
        if url_template is None and not policy.check_only:
            raise ValueError("A URL template is required unless only checking tiles")

        self.url_template = url_template or ''
        self.zoom_range = zoom_range
        self.store = store
        self.policy = policy
        self.sleep = sleep
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.headers = {'User-Agent': USER_AGENT}
        self.total_tiles = count_tiles(zoom_range)
        self.progress = progress or ProgressTracker(self.total_tiles)
        self.stats = PipelineStats()

    def start(self) -> PipelineState:
        """Get the state positioned on the first tile."""
        return PipelineState(address=self._next_address(None), progress=self.progress.snapshot())

    def run(self) -> PipelineStats:
        """Process every tile of the range.

        Raises:
            TransportError: A request could not be issued
            StreamError: A response body could not be saved
        """
        action = 'check' if self.policy.check_only else 'download'
        logger.info(f"Starting to {action} {self.total_tiles} tiles")

        try:
            state = self.start()
            while not state.done:
                state = self.step(state)
        finally:
            if self._owns_session:
                self.session.close()

        logger.info(f"Done {self.policy.verb} tiles")
        logger.debug(f"Run statistics: {self.stats}")
        return self.stats

    def step(self, state: PipelineState) -> PipelineState:
        """Resolve one attempt at the current tile.

        Returns:
            The same tile with an incremented retry count when it must be
            retried, otherwise the state positioned on the next tile
        """
        tile = state.address
        if tile is None:
            return state

        if not self.policy.force_overwrite and self.store.exists(tile):
            if not self.policy.check_only:
                logger.debug(f"Skip downloading {tile.url(self.url_template)}, already downloaded")
            self.stats.skipped += 1
            return self._advance(state)

        if self.policy.check_only:
            logger.info(f"Tile '{self.store.path_for(tile)}' is missing")
            self.stats.missing += 1
            return self._advance(state)

        return self._fetch(state)

    def _next_address(self, current: Optional[TileAddress]) -> Optional[TileAddress]:
        address = next_tile(self.zoom_range, current)
        if address is not None:
            self.progress.advance()
        return address

    def _advance(self, state: PipelineState) -> PipelineState:
        address = self._next_address(state.address)
        return PipelineState(address=address, retry_count=0, progress=self.progress.snapshot())

    def _retry(self, state: PipelineState, url: str) -> PipelineState:
        self.sleep(self.policy.retry_delay)
        logger.info(f"Retrying {url}")
        self.stats.retries += 1
        return PipelineState(address=state.address, retry_count=state.retry_count + 1, progress=state.progress)

    def _give_up(self, state: PipelineState, url: str) -> PipelineState:
        logger.info(f"Skipping tile: {url}")
        self.stats.given_up += 1
        return self._advance(state)

    def _fetch(self, state: PipelineState) -> PipelineState:
        tile = state.address
        url = tile.url(self.url_template)
        can_retry = self.policy.can_retry(state.retry_count)

        logger.debug(f"Download {url}")
        self.stats.requests += 1
        try:
            response = self.session.get(
                url,
                headers=self.headers,
                stream=True,
                timeout=self.policy.request_timeout
            )
        except requests.exceptions.RequestException as e:
            if self.policy.retry_transport_errors and can_retry:
                logger.error(f"Error in request (url: {url}): {e}, retrying in {self.policy.retry_delay_ms} ms")
                return self._retry(state, url)
            logger.error(f"Error in request (url: {url}): {e}")
            raise TransportError(f"Error in request for {url}: {e}", url) from e

        with response:
            if response.status_code != 200:
                if can_retry:
                    logger.error(f"Unexpected status code: {response.status_code} (url: {url}), "
                                 f"retrying in {self.policy.retry_delay_ms} ms")
                    return self._retry(state, url)
                logger.error(f"Unexpected status code: {response.status_code} (url: {url}), "
                             f"giving up after {state.retry_count} retries")
                return self._give_up(state, url)

            self._save(tile, url, response)

        self.stats.saved += 1
        if self.policy.inter_request_delay_ms:
            self.sleep(self.policy.inter_request_delay)
        return self._advance(state)

    def _save(self, tile: TileAddress, url: str, response: requests.Response) -> None:
        file_path = self.store.path_for(tile)
        logger.debug(f"Saving {file_path}")
        try:
            self.store.write_stream(tile, response.iter_content(chunk_size=CHUNK_SIZE))
        except (requests.exceptions.RequestException, OSError) as e:
            logger.error(f"Error in response (url: {url}): {e}")
            raise StreamError(f"Error saving {url} to {file_path}: {e}", url, file_path) from e
        logger.debug(f"Done saving {file_path}")
