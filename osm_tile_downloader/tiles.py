"""
Tile addressing and traversal of the tile pyramid.

Tiles are visited in row-major raster order within a zoom level, and zoom
levels are visited in increasing order.
"""
import os
from dataclasses import dataclass
from typing import Iterator, Optional

MIN_ZOOM = 0
MAX_ZOOM = 19

TILE_EXTENSION = 'png'


@dataclass(frozen=True)
class ZoomRange:
    """Inclusive range of zoom levels to traverse."""
    start: int
    end: int

    def __post_init__(self):
        for name, value in (('start', self.start), ('end', self.end)):
            if not MIN_ZOOM <= value <= MAX_ZOOM:
                raise ValueError(f"Zoom {name} must be between {MIN_ZOOM} and {MAX_ZOOM}, got {value}")
        if self.start > self.end:
            raise ValueError(f"Start zoom {self.start} is greater than end zoom {self.end}")


@dataclass(frozen=True)
class TileAddress:
    """A single tile identified by zoom level and x/y position."""
    zoom: int
    x: int
    y: int

    @property
    def max_index(self) -> int:
        return 2 ** self.zoom - 1

    def file_path(self, output_dir: str) -> str:
        """Get the path of this tile below the output directory."""
        return os.path.join(output_dir, str(self.zoom), str(self.x), str(self.y)) + f".{TILE_EXTENSION}"

    def url(self, url_template: str) -> str:
        """Substitute the {z}, {x} and {y} tokens of a URL template."""
        return (url_template
                .replace('{z}', str(self.zoom))
                .replace('{x}', str(self.x))
                .replace('{y}', str(self.y)))

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


def next_tile(zoom_range: ZoomRange, current: Optional[TileAddress] = None) -> Optional[TileAddress]:
    """Get the tile that follows ``current`` in traversal order.

    Args:
        zoom_range: Zoom levels being traversed
        current: The tile last visited, or None to start the traversal

    Returns:
        The next tile, or None once the last tile of ``zoom_range.end`` has been visited
    """
    if current is None:
        return TileAddress(zoom_range.start, 0, 0)

    max_index = current.max_index
    if current.x == max_index and current.y == max_index:
        if current.zoom == zoom_range.end:
            return None
        return TileAddress(current.zoom + 1, 0, 0)
    if current.y == max_index:
        return TileAddress(current.zoom, current.x + 1, 0)
    return TileAddress(current.zoom, current.x, current.y + 1)


def count_tiles(zoom_range: ZoomRange) -> int:
    """Total number of tiles in the range, sum of 4^z for every zoom."""
    return (4 ** (zoom_range.end + 1) - 4 ** zoom_range.start) // 3


def iter_tiles(zoom_range: ZoomRange) -> Iterator[TileAddress]:
    tile = next_tile(zoom_range)
    while tile is not None:
        yield tile
        tile = next_tile(zoom_range, tile)
