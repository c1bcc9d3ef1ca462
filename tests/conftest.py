import io

import pytest

from fileserver.handler import LocalHandler, LocalRequest, handler
from fileserver.http.model import HTTPRequest
from fileserver.services.files import FileService
from fileserver.store import Entry, MemoryStore, Store
from fileserver.utils import logging

# A fixed modification time: Tue, 14 Nov 2023 22:13:20 GMT
MODIFIED: float = 1_700_000_000.0

FILES: dict[str, bytes] = {
	"hello.txt": b"Hello, world!",
	"index.html": b"<!DOCTYPE html><html><body>app</body></html>",
	"assets/app.js": b"console.log('app');\n",
	"assets/style.css": b"body{margin:0}\n" * 10,
	"big.txt": b"".join(f"line {i:05d}\n".encode() for i in range(500)),
}


class TrackingStore(Store):
	"""Wraps a store and keeps track of the opened entries."""

	def __init__(self, store: Store):
		self.store = store
		self.opened: list[Entry] = []

	def open(self, path: str) -> Entry:
		entry = self.store.open(path)
		self.opened.append(entry)
		return entry

	@property
	def allClosed(self) -> bool:
		return all(_.data.closed for _ in self.opened)


class FailingStore(Store):
	"""A store that fails every open with the given error."""

	def __init__(self, error: Exception):
		self.error = error
		self.opens: int = 0

	def open(self, path: str) -> Entry:
		self.opens += 1
		raise self.error


@pytest.fixture
def store() -> MemoryStore:
	return MemoryStore(dict(FILES), modified=MODIFIED)


@pytest.fixture
def tracking(store: MemoryStore) -> TrackingStore:
	return TrackingStore(store)


@pytest.fixture
def client(store: MemoryStore):
	"""Returns a factory of local handlers for a file service on the
	store, created with the given options."""

	def make(target: Store | None = None, **options) -> LocalHandler:
		return handler(FileService(target or store, **options))

	return make


@pytest.fixture
def request_():
	"""Returns a factory of requests"""

	def make(
		method: str = "GET", uri: str = "/", headers: dict[str, str] | None = None
	) -> HTTPRequest:
		return LocalRequest.Create(method, uri, headers)

	return make


@pytest.fixture(autouse=True)
def log():
	"""Captures the log output, restoring the level afterwards."""
	stream = io.StringIO()
	previous_stream = logging.ERR
	previous_level = logging.LogThreshold
	logging.setErrorStream(stream)
	yield stream
	logging.setErrorStream(previous_stream)
	logging.setLevel(previous_level)


# EOF
