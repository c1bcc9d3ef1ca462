from .http.model import HTTPRequest, Seekable, headerlist
from .utils.codec import GZipEncoder

# Files smaller than this are not worth compressing
COMPRESS_MIN: int = 1024
# Compression happens in memory before the length is known, so larger
# files are served as-is.
COMPRESS_MAX: int = 15 << 20

COMPRESS_READ_SIZE: int = 64_000


def acceptedEncodings(header: str | None) -> dict[str, float]:
	"""Parses an `Accept-Encoding` header into a map of coding to quality
	value."""
	res: dict[str, float] = {}
	for item in headerlist(header):
		coding, *params = (_.strip() for _ in item.split(";"))
		quality: float = 1.0
		for param in params:
			name, _, value = param.partition("=")
			if name.strip().lower() == "q":
				try:
					quality = float(value)
				except ValueError:
					quality = 0.0
		res[coding.lower()] = quality
	return res


def acceptsGzip(request: HTTPRequest) -> bool:
	"""Tells if the request accepts gzip encoded responses."""
	accepted = acceptedEncodings(request.header("Accept-Encoding"))
	quality: float | None = accepted.get("gzip", accepted.get("x-gzip"))
	if quality is None:
		quality = accepted.get("*")
	return bool(quality and quality > 0)


def shouldCompress(
	size: int, minimum: int = COMPRESS_MIN, maximum: int = COMPRESS_MAX
) -> bool:
	"""Tells if content of the given size should be compressed, which is
	when it is within the exclusive `(minimum, maximum)` window."""
	return minimum < size < maximum


def compress(stream: Seekable, level: int = 6) -> bytes:
	"""Reads the whole stream and returns its gzip-compressed bytes."""
	encoder = GZipEncoder(level)
	buffer = bytearray()
	while chunk := stream.read(COMPRESS_READ_SIZE):
		if data := encoder.feed(chunk):
			buffer += data
	if data := encoder.flush():
		buffer += data
	return bytes(buffer)


# EOF
