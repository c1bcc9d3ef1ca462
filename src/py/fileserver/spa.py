from typing import Any

from .core import FileServer
from .errors import FileNotFound, FileServerError, InvalidPath
from .http.model import HTTPRequest, HTTPResponse
from .store import Store
from .utils.logging import debug

# -----------------------------------------------------------------------------
#
# SINGLE PAGE APPLICATION
#
# -----------------------------------------------------------------------------
# --
# Single page applications do their own routing client-side, so any path
# that does not match a file of the store is served the fallback document
# (usually `index.html`) instead of a 404.


class SPAServer:
	"""Wraps a file server so that missing files, directories and invalid
	paths are served the `fallback` file instead."""

	def __init__(self, store: Store, fallback: str, **options: Any):
		self.fallback: str = fallback
		self.server: FileServer = FileServer(store, **options)

	@property
	def store(self) -> Store:
		return self.server.store

	def resolve(self, path: str) -> str:
		"""Returns the path to serve for the requested path, which is either
		the path itself when it is a regular file, or the fallback."""
		target: str = path or self.fallback
		try:
			entry = self.server.open(target)
		except (FileNotFound, InvalidPath):
			return self.fallback
		try:
			is_file: bool = not self.server.stat(entry, target).isDirectory
		finally:
			entry.close()
		return target if is_file else self.fallback

	def serve(
		self, request: HTTPRequest, path: str, headers: dict[str, str] | None = None
	) -> HTTPResponse:
		if request.method not in FileServer.METHODS:
			# The file server rejects the method without using the store
			return self.server.serve(request, path, headers)
		try:
			target: str = self.resolve(path)
		except FileServerError as e:
			return self.server.onError(request, e)
		if target != path:
			debug(f"Serving fallback {target!r} for {path!r}", origin="spa")
		return self.server.serve(request, target, headers)

	def __repr__(self) -> str:
		return f"(SPAServer {self.store} fallback={self.fallback})"


def serveSPA(store: Store, fallback: str, **options: Any) -> SPAServer:
	"""Creates a single page application server for the given store, see
	`FileServer` for the options."""
	return SPAServer(store, fallback, **options)


# EOF
