"""
Fetch policy for the tile download pipeline.

Holds the overwrite, retry and pacing settings for a run.
"""
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 2500
DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class FetchPolicy:
    """Retry, pacing and overwrite settings consumed by the pipeline.

    Attributes:
        force_overwrite: Download tiles even when the file already exists
        check_only: Only report missing tiles, never fetch them
        inter_request_delay_ms: Pause after each saved tile
        max_retries: Retries of a tile answered with a non-200 status
        retry_delay_ms: Pause before each retry
        request_timeout: Seconds to wait for the server before giving up on a request
        retry_transport_errors: Retry connection failures like bad statuses instead of aborting
    """
    force_overwrite: bool = False
    check_only: bool = False
    inter_request_delay_ms: int = DEFAULT_DELAY_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_transport_errors: bool = False

    def __post_init__(self):
        if self.force_overwrite and self.check_only:
            raise ValueError("force_overwrite and check_only are mutually exclusive")
        for name in ('inter_request_delay_ms', 'max_retries', 'retry_delay_ms'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @classmethod
    def from_config(cls, config) -> 'FetchPolicy':
        """Build the policy from a validated run configuration."""
        return cls(
            force_overwrite=config.force_overwrite,
            check_only=config.check_only,
            inter_request_delay_ms=config.delay,
            max_retries=config.max_retries,
            retry_delay_ms=config.retry_delay,
            request_timeout=config.timeout,
            retry_transport_errors=config.retry_transport_errors
        )

    @property
    def verb(self) -> str:
        return 'checking' if self.check_only else 'downloading'

    def can_retry(self, retry_count: int) -> bool:
        return retry_count < self.max_retries

    @property
    def inter_request_delay(self) -> float:
        """Pause after a saved tile, in seconds."""
        return self.inter_request_delay_ms / 1000.0

    @property
    def retry_delay(self) -> float:
        """Pause before a retry, in seconds."""
        return self.retry_delay_ms / 1000.0
