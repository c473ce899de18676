"""
Downloader module for the OSM tile downloader.
Walks the tile pyramid and downloads or checks tiles one at a time.
"""

from .policy import FetchPolicy
from .progress import ProgressState, ProgressTracker
from .core import DownloadPipeline, PipelineState, PipelineStats

__all__ = ['DownloadPipeline', 'PipelineState', 'PipelineStats', 'FetchPolicy', 'ProgressState', 'ProgressTracker']
