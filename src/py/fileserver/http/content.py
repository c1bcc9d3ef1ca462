import inspect
import io
import re
import secrets
from datetime import timezone
from email.utils import formatdate, parsedate_to_datetime
from enum import Enum
from typing import Any, Generator, NamedTuple, Pattern

from ..utils.files import contentType as guessContentType
from .model import HTTPBodySeekable, HTTPRequest, HTTPResponse, Seekable, headername

# -----------------------------------------------------------------------------
#
# CONDITIONAL CONTENT
#
# -----------------------------------------------------------------------------
# --
# Serves the content of a seekable stream, honoring the conditional request
# headers (`If-Match`, `If-None-Match`, `If-Modified-Since`,
# `If-Unmodified-Since`), byte ranges (`Range`, `If-Range`) and inferring the
# `Content-Type` from the file name.
#
# SEE: https://httpwg.org/specs/rfc9110.html#conditional.requests
# SEE: https://httpwg.org/specs/rfc9110.html#range.requests

RE_ETAG: Pattern[str] = re.compile(r'\*|(?:W/)?"[^"]*"')


class Condition(Enum):
	"""The outcome of evaluating a precondition header."""

	NONE = 0  # The header is absent or could not be evaluated
	TRUE = 1
	FALSE = 2


class ByteRange(NamedTuple):
	start: int
	length: int

	def contentRange(self, size: int) -> str:
		return f"bytes {self.start}-{self.start + self.length - 1}/{size}"


class RangeError(ValueError):
	"""Raised when a `Range` header is malformed or cannot be satisfied."""


def formatHTTPDate(timestamp: float) -> str:
	return formatdate(int(timestamp), usegmt=True)


def parseHTTPDate(value: str | None) -> float | None:
	"""Parses an HTTP date, returning the UNIX timestamp or `None`."""
	if not value:
		return None
	try:
		date = parsedate_to_datetime(value)
	except (TypeError, ValueError, IndexError):
		return None
	if date.tzinfo is None:
		date = date.replace(tzinfo=timezone.utc)
	return date.timestamp()


def parseETags(value: str) -> list[str]:
	"""Extracts the entity tags (or `*`) listed in an `If-Match` or
	`If-None-Match` header."""
	return RE_ETAG.findall(value)


def isWeak(etag: str) -> bool:
	return etag.startswith("W/")


def strongMatch(a: str, b: str) -> bool:
	return a == b and bool(a) and not isWeak(a)


def weakMatch(a: str, b: str) -> bool:
	return bool(a) and a.removeprefix("W/") == b.removeprefix("W/")


def parseRange(header: str, size: int) -> list[ByteRange]:
	"""Parses a `Range` header like `bytes=0-99,-100` against content of the
	given size. Raises a `RangeError` when the header is malformed, or when
	none of the ranges overlap the content."""
	if not header:
		return []
	if not header.startswith("bytes="):
		raise RangeError("invalid range")
	ranges: list[ByteRange] = []
	no_overlap: bool = False
	for part in header[len("bytes=") :].split(","):
		part = part.strip()
		if not part:
			continue
		start, sep, end = (_.strip() for _ in part.partition("-"))
		if not sep:
			raise RangeError("invalid range")
		if not start:
			# A suffix range like `-500`, the last 500 bytes
			if not end.isdigit():
				raise RangeError("invalid range")
			suffix: int = min(int(end), size)
			if suffix == 0:
				no_overlap = True
				continue
			ranges.append(ByteRange(size - suffix, suffix))
		else:
			if not start.isdigit():
				raise RangeError("invalid range")
			first: int = int(start)
			if first >= size:
				no_overlap = True
				continue
			if not end:
				ranges.append(ByteRange(first, size - first))
			elif not end.isdigit() or int(end) < first:
				raise RangeError("invalid range")
			else:
				last: int = min(int(end), size - 1)
				ranges.append(ByteRange(first, last - first + 1))
	if no_overlap and not ranges:
		raise RangeError("invalid range: failed to overlap")
	return ranges


# -----------------------------------------------------------------------------
#
# PRECONDITIONS
#
# -----------------------------------------------------------------------------


def checkIfMatch(request: HTTPRequest, etag: str) -> Condition:
	header = request.header("If-Match")
	if header is None:
		return Condition.NONE
	for tag in parseETags(header):
		if tag == "*" or strongMatch(tag, etag):
			return Condition.TRUE
	return Condition.FALSE


def checkIfUnmodifiedSince(request: HTTPRequest, modified: float) -> Condition:
	since = parseHTTPDate(request.header("If-Unmodified-Since"))
	if since is None or not modified:
		return Condition.NONE
	return Condition.TRUE if int(modified) <= since else Condition.FALSE


def checkIfNoneMatch(request: HTTPRequest, etag: str) -> Condition:
	header = request.header("If-None-Match")
	if header is None:
		return Condition.NONE
	for tag in parseETags(header):
		if tag == "*" or weakMatch(tag, etag):
			return Condition.FALSE
	return Condition.TRUE


def checkIfModifiedSince(request: HTTPRequest, modified: float) -> Condition:
	if request.method not in ("GET", "HEAD") or not modified:
		return Condition.NONE
	since = parseHTTPDate(request.header("If-Modified-Since"))
	if since is None:
		return Condition.NONE
	return Condition.FALSE if int(modified) <= since else Condition.TRUE


def checkIfRange(request: HTTPRequest, etag: str, modified: float) -> Condition:
	if request.method not in ("GET", "HEAD"):
		return Condition.NONE
	header = request.header("If-Range")
	if not header:
		return Condition.NONE
	elif header.startswith('"') or header.startswith("W/"):
		return Condition.TRUE if strongMatch(header, etag) else Condition.FALSE
	elif not modified:
		return Condition.FALSE
	else:
		since = parseHTTPDate(header)
		return (
			Condition.TRUE
			if since is not None and int(modified) == since
			else Condition.FALSE
		)


# -----------------------------------------------------------------------------
#
# RESPONSES
#
# -----------------------------------------------------------------------------


def notModified(request: HTTPRequest, headers: dict[str, str]) -> HTTPResponse:
	# SEE: https://httpwg.org/specs/rfc9110.html#status.304
	for name in ("Content-Type", "Content-Length", "Content-Encoding"):
		headers.pop(name, None)
	if "ETag" in headers:
		headers.pop("Last-Modified", None)
	return request.respond(status=304, headers=headers)


def iterMultipart(
	stream: Seekable, parts: list[tuple[bytes, ByteRange]], closing: bytes
) -> Generator[bytes, Any, None]:
	for head, r in parts:
		yield head
		yield from HTTPBodySeekable(stream, r.start, r.length).iterChunks()
	yield closing


def serveContent(
	request: HTTPRequest,
	name: str,
	modified: float,
	stream: Seekable,
	*,
	headers: dict[str, str] | None = None,
	status: int = 200,
) -> HTTPResponse:
	"""Creates the response serving the content of `stream`, where `name`
	is the logical file name used to infer the content type, `modified` the
	modification timestamp (`0` when unknown), and `headers` the response
	headers already set, including the `ETag` used by the conditional
	headers."""
	res_headers: dict[str, str] = (
		{headername(k): v for k, v in headers.items()} if headers else {}
	)
	etag: str = res_headers.get("ETag", "")
	if modified:
		res_headers["Last-Modified"] = formatHTTPDate(modified)

	# --
	# Preconditions, evaluated in the order given by RFC 9110 §13.2.2
	condition = checkIfMatch(request, etag)
	if condition is Condition.NONE:
		condition = checkIfUnmodifiedSince(request, modified)
	if condition is Condition.FALSE:
		return request.empty(412, headers=res_headers)
	match checkIfNoneMatch(request, etag):
		case Condition.FALSE:
			if request.method in ("GET", "HEAD"):
				return notModified(request, res_headers)
			else:
				return request.empty(412, headers=res_headers)
		case Condition.NONE:
			if checkIfModifiedSince(request, modified) is Condition.FALSE:
				return notModified(request, res_headers)

	content_type: str = res_headers.get("Content-Type") or guessContentType(name)
	res_headers["Content-Type"] = content_type

	size: int = stream.seek(0, io.SEEK_END)
	stream.seek(0)

	range_header: str = request.header("Range") or ""
	if range_header and checkIfRange(request, etag, modified) is Condition.FALSE:
		range_header = ""
	try:
		ranges = parseRange(range_header, size)
	except RangeError as e:
		for header in ("Content-Type", "Content-Length", "Content-Encoding"):
			res_headers.pop(header, None)
		res_headers["Content-Range"] = f"bytes */{size}"
		return request.error(416, str(e), headers=res_headers)
	# NOTE: Ranges asking for more than the content are likely an attack
	# or a confused client, we send the whole content instead.
	if sum(_.length for _ in ranges) > size:
		ranges = []

	res_headers["Accept-Ranges"] = "bytes"
	content: HTTPBodySeekable | Generator[bytes, Any, None]
	if len(ranges) == 1:
		status = 206
		r = ranges[0]
		res_headers["Content-Range"] = r.contentRange(size)
		content = HTTPBodySeekable(stream, r.start, r.length)
		send_size: int = r.length
	elif ranges:
		status = 206
		boundary: str = secrets.token_hex(15)
		parts: list[tuple[bytes, ByteRange]] = [
			(
				(
					("\r\n" if i else "")
					+ f"--{boundary}\r\n"
					+ f"Content-Range: {r.contentRange(size)}\r\n"
					+ f"Content-Type: {content_type}\r\n\r\n"
				).encode("latin-1"),
				r,
			)
			for i, r in enumerate(ranges)
		]
		closing: bytes = f"\r\n--{boundary}--\r\n".encode("latin-1")
		res_headers["Content-Type"] = f"multipart/byteranges; boundary={boundary}"
		content = iterMultipart(stream, parts, closing)
		send_size = sum(len(h) + r.length for h, r in parts) + len(closing)
	else:
		content = HTTPBodySeekable(stream, 0, size)
		send_size = size

	if request.method == "HEAD":
		if inspect.isgenerator(content):
			content.close()
		return request.respond(
			status=status, contentLength=send_size, headers=res_headers
		)
	else:
		return request.respond(
			content, status=status, contentLength=send_size, headers=res_headers
		)


# EOF
