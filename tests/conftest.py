import os
from typing import Dict, Iterable, List, Optional, Union

import pytest
import requests

from osm_tile_downloader.storage import TileStore


class DummyResponse:
    def __init__(self, status_code: int, chunks: Iterable[bytes] = (b"png",), error: Optional[Exception] = None):
        self.status_code = status_code
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    def iter_content(self, chunk_size=1):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


Outcome = Union[int, DummyResponse, Exception]


class DummySession:
    """Answers every URL with 200 unless a list of outcomes is queued for it.

    Queued outcomes are consumed in order; the last one repeats.
    """

    def __init__(self, outcomes: Optional[Dict[str, List[Outcome]]] = None, body: bytes = b"\x89PNG tile"):
        self.outcomes = outcomes or {}
        self.body = body
        self.calls = []
        self.closed = False

    @property
    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]

    def get(self, url, headers=None, stream=False, timeout=None):
        self.calls.append({"url": url, "headers": headers, "stream": stream, "timeout": timeout})
        queue = self.outcomes.get(url)
        outcome: Outcome = 200
        if queue:
            outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, DummyResponse):
            return outcome
        return DummyResponse(outcome, [self.body] if outcome == 200 else [])

    def close(self):
        self.closed = True


def list_tile_files(base_path: str) -> List[str]:
    """Saved files relative to the output directory, sorted."""
    result = []
    for root, _, files in os.walk(base_path):
        for name in files:
            result.append(os.path.relpath(os.path.join(root, name), base_path))
    return sorted(result)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def session():
    return DummySession()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def store(tmp_path):
    return TileStore(str(tmp_path))


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("connection refused")
