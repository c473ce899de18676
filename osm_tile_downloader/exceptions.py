"""
Exceptions raised by the tile downloader.

Each exception carries the process exit code the command line reports for it.
"""


class TileDownloaderException(Exception):
    """Base exception for tile downloader"""
    exit_code = 1


class ConfigurationError(TileDownloaderException):
    """Invalid or missing configuration"""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class DownloadError(TileDownloaderException):
    """Fatal error while fetching a tile"""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class TransportError(DownloadError):
    """The request for a tile could not be issued"""
    exit_code = 2


class StreamError(DownloadError):
    """The response body of a tile could not be saved"""
    exit_code = 3

    def __init__(self, message: str, url: str, file_path: str):
        super().__init__(message, url)
        self.file_path = file_path
