import inspect
from abc import ABC, abstractmethod
from enum import Enum
from functools import lru_cache
from typing import (
	Any,
	Callable,
	Generator,
	Literal,
	NamedTuple,
	Protocol,
	TypeAlias,
	Union,
)

from ..utils.io import DEFAULT_ENCODING, asWritable
from .api import ResponseFactory
from .status import HTTP_STATUS

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


# Maximum number of memoized header names, which are client-provided
HEADERNAME_CACHE: int = 512


@lru_cache(maxsize=HEADERNAME_CACHE)
def headername(name: str) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	# NOTE: Some headers don't follow the capitalization rule
	if name.lower() == "etag":
		return "ETag"
	else:
		return "-".join(_.capitalize() for _ in name.split("-"))


def headerlist(value: str | None) -> list[str]:
	"""Splits a comma-separated header value into its stripped, non-empty
	elements."""
	return [_ for _ in (v.strip() for v in value.split(",")) if _] if value else []


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Processing = 0
	Body = 1
	Complete = 2
	Timeout = 10
	NoData = 11
	BadFormat = 12


# Type alias for what the parser produces
HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class HTTPRequestError(Exception):
	"""To be raised by handlers to generate an error response, 500 by default."""

	def __init__(
		self,
		message: str,
		status: int | None = None,
		contentType: str | None = None,
	):
		super().__init__(message)
		self.message: str = message
		self.status: int | None = status
		self.contentType: str | None = contentType


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class Seekable(Protocol):
	"""A readable and seekable byte stream, like a store entry or `BytesIO`."""

	def read(self, size: int = -1) -> bytes: ...

	def seek(self, offset: int, whence: int = 0) -> int: ...


class HTTPBodyBlob(NamedTuple):
	"""Represents a part (or a whole) body as bytes."""

	payload: bytes = b""
	length: int = 0
	# NOTE: Bytes of the body that were announced but not received yet
	remaining: int | None = None

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))


class HTTPBodySeekable(NamedTuple):
	"""An HTTP body read from a seekable stream, `length` bytes starting
	at `start`."""

	stream: Seekable
	start: int
	length: int

	def iterChunks(self, size: int = 64_000) -> Generator[bytes, Any, None]:
		self.stream.seek(self.start)
		left: int = self.length
		while left > 0:
			chunk = self.stream.read(min(size, left))
			if not chunk:
				raise EOFError(
					f"Stream ended with {left} bytes left to read out of {self.length}"
				)
			left -= len(chunk)
			yield chunk


class HTTPBodyStream(NamedTuple):
	"""An HTTP body that is generated from a stream."""

	stream: Generator[str | bytes, Any, Any]


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodySeekable | HTTPBodyStream


# -----------------------------------------------------------------------------
#
# BODY WRITER
#
# -----------------------------------------------------------------------------


class HTTPBodyWriter(ABC):
	"""A generic writer for the different types of bodies."""

	__slots__ = ["shouldClose"]

	def __init__(self) -> None:
		self.shouldClose: bool = False

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodySeekable):
			for chunk in body.iterChunks():
				await self._writeBytes(chunk, True)
			return True
		elif isinstance(body, HTTPBodyStream):
			try:
				for _ in body.stream:
					await self._writeBytes(asWritable(_), True)
			finally:
				body.stream.close()
			return True
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	@abstractmethod
	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"_headers",
		"_body",
		"_onClose",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None = None,
		headers: HTTPHeaders | None = None,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers or HTTPHeaders({})
		self._body: HTTPBodyBlob | None = body
		self._onClose: Callable[[HTTPRequest], None] | None = None

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def contentType(self) -> str | None:
		return self._headers.contentType

	@property
	def contentLength(self) -> int | None:
		return self._headers.contentLength

	@property
	def body(self) -> HTTPBodyBlob | None:
		return self._body

	@property
	def isComplete(self) -> bool:
		"""Tells if the whole body of the request has been received."""
		return not (self._body and self._body.remaining)

	def onClose(
		self, callback: Callable[["HTTPRequest"], None] | None
	) -> "HTTPRequest":
		self._onClose = callback
		return self

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		res_headers: dict[str, str] = (
			{headername(k): v for k, v in headers.items()} if headers else {}
		)
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			payload: bytes = content.encode(DEFAULT_ENCODING)
			body = HTTPBodyBlob(payload, len(payload))
			contentLength = len(payload)
		elif isinstance(content, bytes):
			body = HTTPBodyBlob(content, len(content))
			contentLength = len(content)
		elif isinstance(content, HTTPBodySeekable):
			body = content
			contentLength = content.length
		elif inspect.isgenerator(content):
			body = HTTPBodyStream(content)
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		if contentType is not None:
			res_headers["Content-Type"] = contentType
		if contentLength is not None:
			res_headers["Content-Length"] = str(contentLength)
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				res_headers,
				contentType=res_headers.get("Content-Type"),
				contentLength=(
					int(res_headers["Content-Length"])
					if "Content-Length" in res_headers
					else None
				),
			),
			body=body,
			protocol=protocol,
			# Without a length, only closing the connection delimits the body
			shouldClose=body is not None and "Content-Length" not in res_headers,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
		"shouldClose",
		"_onClose",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		super().__init__()
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self._onClose: Callable[[HTTPResponse], None] | None = None
		self.shouldClose: bool = shouldClose

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def addHeader(self, name: str, value: str) -> "HTTPResponse":
		"""Appends `value` to the comma-separated list of the header, unless
		it is already listed."""
		existing: str | None = self.getHeader(name)
		if existing is None:
			return self.setHeader(name, value)
		elif value.lower() not in (_.lower() for _ in headerlist(existing)):
			return self.setHeader(name, f"{existing}, {value}")
		else:
			return self

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [
			f"{headername(k)}: {v}" for k, v in self.headers.headers.items()
		]
		lines.insert(0, f"{self.protocol} {self.status} {message}")
		lines.append("")
		lines.append("")
		return "\r\n".join(lines).encode("latin-1")

	def onClose(
		self, callback: Callable[["HTTPResponse"], None] | None
	) -> "HTTPResponse":
		self._onClose = callback
		return self

	def close(self) -> None:
		"""Runs the close callback, once. The host calls this after the body
		has been written (or discarded)."""
		callback, self._onClose = self._onClose, None
		if callback:
			callback(self)

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
