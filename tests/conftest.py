import os.path
import threading
from typing import Dict, List

import pytest

from hcmlib import NetworkError, PathResolutionError


class FakeFileSystem:
    def __init__(self, files: Dict[str, str]) -> None:
        self.files = {os.path.normpath(path): content for path, content in files.items()}

    def is_file(self, path: str) -> bool:
        return os.path.normpath(path) in self.files

    def read_text(self, path: str) -> str:
        return self.files[os.path.normpath(path)]


class FakeFetcher:
    def __init__(self, bodies: Dict[str, str]) -> None:
        self.bodies = bodies
        self.calls: List[str] = []
        self.failing: Dict[str, str] = {}
        self._lock = threading.Lock()

    def fetch(self, url: str) -> str:
        with self._lock:
            self.calls.append(url)
        if url in self.failing:
            raise NetworkError(url, self.failing[url])
        if url not in self.bodies:
            raise PathResolutionError(url, None, "HTTP_404")
        return self.bodies[url]


@pytest.fixture
def make_fs():
    return FakeFileSystem


@pytest.fixture
def make_fetcher():
    return FakeFetcher
