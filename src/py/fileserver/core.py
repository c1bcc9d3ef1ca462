import io
from pathlib import Path
from typing import Any

from .cache import CacheControlFunction, noCache
from .compress import COMPRESS_MAX, COMPRESS_MIN, acceptsGzip, compress, shouldCompress
from .errors import (
	ErrorHandler,
	FileNotFound,
	FileServerError,
	InvalidMethod,
	InvalidPath,
	ServerFault,
	defaultErrorHandler,
)
from .etag import ETagFunction, calculateETag
from .http.content import serveContent
from .http.model import (
	HTTPBodySeekable,
	HTTPBodyStream,
	HTTPRequest,
	HTTPResponse,
	Seekable,
	headerlist,
	headername,
)
from .store import DirStore, Entry, EntryStat, InvalidPathError, Store

# -----------------------------------------------------------------------------
#
# FILE REQUEST
#
# -----------------------------------------------------------------------------


class FileRequest:
	"""The state of a file request as it goes through the file server."""

	__slots__ = ["request", "path", "encoding", "etag", "headers"]

	def __init__(
		self, request: HTTPRequest, path: str, headers: dict[str, str] | None = None
	):
		self.request: HTTPRequest = request
		self.path: str = path
		self.encoding: str | None = None
		self.etag: str | None = None
		self.headers: dict[str, str] = (
			{headername(k): v for k, v in headers.items()} if headers else {}
		)

	@property
	def method(self) -> str:
		return self.request.method

	def setHeader(self, name: str, value: str) -> "FileRequest":
		self.headers[headername(name)] = value
		return self

	def addHeader(self, name: str, value: str) -> "FileRequest":
		"""Appends the value to the header's list, unless already there."""
		name = headername(name)
		existing: str | None = self.headers.get(name)
		if existing is None:
			self.headers[name] = value
		elif value.lower() not in (_.lower() for _ in headerlist(existing)):
			self.headers[name] = f"{existing}, {value}"
		return self

	def __str__(self) -> str:
		return f"FileRequest({self.method} {self.path})"


# -----------------------------------------------------------------------------
#
# FILE SERVER
#
# -----------------------------------------------------------------------------


class FileServer:
	"""Serves the files of a store, with entity tags, conditional requests,
	ranges, gzip compression and cache directives. A file server holds no
	per-request state and can be shared by concurrent requests."""

	METHODS: tuple[str, ...] = ("GET", "HEAD")

	def __init__(
		self,
		store: Store,
		*,
		etag: ETagFunction | None = calculateETag,
		onError: ErrorHandler = defaultErrorHandler,
		cacheControl: CacheControlFunction | None = noCache,
		compressMin: int = COMPRESS_MIN,
		compressMax: int = COMPRESS_MAX,
	):
		self.store: Store = store
		self.etag: ETagFunction | None = etag
		self.onError: ErrorHandler = onError
		self.cacheControl: CacheControlFunction | None = cacheControl
		self.compressMin: int = compressMin
		self.compressMax: int = compressMax

	def serve(
		self, request: HTTPRequest, path: str, headers: dict[str, str] | None = None
	) -> HTTPResponse:
		"""Responds to the request with the file at `path` in the store, where
		`headers` are response headers already set by the host."""
		try:
			return self.process(FileRequest(request, path, headers))
		except FileServerError as e:
			return self.onError(request, e)

	def open(self, path: str) -> Entry:
		"""Opens the entry at the given path, converting the store's errors
		into file server errors."""
		try:
			return self.store.open(path)
		except InvalidPathError as e:
			raise InvalidPath(path=path) from e
		except (FileNotFoundError, NotADirectoryError) as e:
			raise FileNotFound(path=path) from e
		except Exception as e:
			raise ServerFault(f"Could not open file: {path}", path=path) from e

	def stat(self, entry: Entry, path: str) -> EntryStat:
		try:
			return entry.stat()
		except Exception as e:
			raise ServerFault(f"Could not stat file: {path}", path=path) from e

	def process(self, file: FileRequest) -> HTTPResponse:
		if file.method not in self.METHODS:
			raise InvalidMethod(path=file.path)
		elif not file.path:
			raise FileNotFound(path=file.path)
		entry: Entry = self.open(file.path)
		owned: bool = True
		try:
			info: EntryStat = self.stat(entry, file.path)
			if info.isDirectory:
				raise FileNotFound(path=file.path)
			response = self.respond(file, entry, info)
			# The response body reads from the entry, so the entry is
			# closed once the host is done writing it.
			if isinstance(response.body, (HTTPBodySeekable, HTTPBodyStream)) and (
				file.encoding is None
			):
				owned = False
				response.onClose(lambda _: entry.close())
			return response
		finally:
			if owned:
				entry.close()

	def respond(self, file: FileRequest, entry: Entry, info: EntryStat) -> HTTPResponse:
		path: str = file.path
		if self.etag:
			try:
				file.etag = self.etag(entry)
				entry.seek(0)
			except Exception as e:
				raise ServerFault(
					f"Could not calculate entity tag: {path}", path=path
				) from e
			file.setHeader("ETag", file.etag)
		if self.cacheControl and (value := self.cacheControl(file.request, path)):
			file.setHeader("Cache-Control", value)
		# The response depends on `Accept-Encoding` whether compressed or not
		file.addHeader("Vary", "Accept-Encoding")
		stream: Seekable = entry
		if acceptsGzip(file.request) and shouldCompress(
			info.size, self.compressMin, self.compressMax
		):
			try:
				data: bytes = compress(entry)
			except Exception as e:
				raise ServerFault(f"Could not compress file: {path}", path=path) from e
			file.encoding = "gzip"
			file.setHeader("Content-Encoding", "gzip")
			file.setHeader("Content-Length", str(len(data)))
			stream = io.BytesIO(data)
		try:
			return serveContent(
				file.request, path, info.modified, stream, headers=file.headers
			)
		except Exception as e:
			raise ServerFault(f"Could not serve file: {path}", path=path) from e

	def __repr__(self) -> str:
		return f"(FileServer {self.store})"


def serveFS(store: Store, **options: Any) -> FileServer:
	"""Creates a file server for the given store, see `FileServer` for
	the options."""
	return FileServer(store, **options)


def serve(directory: str | Path, **options: Any) -> FileServer:
	"""Creates a file server for the files in the given local directory."""
	return FileServer(DirStore(directory), **options)


# EOF
