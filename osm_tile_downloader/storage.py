"""
Local filesystem storage for map tiles.
Tiles are laid out as <output_dir>/<zoom>/<x>/<y>.png.
"""
import os
import logging
from typing import Iterable

from osm_tile_downloader.tiles import TileAddress

logger = logging.getLogger(__name__)


class TileStore:
    """Reads and writes tiles below an output directory."""

    def __init__(self, base_path: str):
        """Initialize the tile store.

        Args:
            base_path: Existing directory receiving the tiles
        """
        self.base_path = os.path.abspath(base_path)
        logger.debug(f"Initialized tile store at {self.base_path}")

    def path_for(self, tile: TileAddress) -> str:
        return tile.file_path(self.base_path)

    def exists(self, tile: TileAddress) -> bool:
        """Check if the tile has already been saved."""
        return os.path.exists(self.path_for(tile))

    def write_stream(self, tile: TileAddress, chunks: Iterable[bytes]) -> int:
        """Write the chunks of a tile body to its file.

        Parent directories are created as needed. Errors raised by ``chunks``
        propagate to the caller and may leave a truncated file behind.

        Args:
            tile: Tile being saved
            chunks: Body of the tile

        Returns:
            Number of bytes written
        """
        full_path = self.path_for(tile)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)

        written = 0
        with open(full_path, 'wb') as f:
            for chunk in chunks:
                if chunk:
                    f.write(chunk)
                    written += len(chunk)

        logger.debug(f"Saved {written} bytes to {full_path}")
        return written
