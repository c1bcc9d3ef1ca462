import hashlib
from typing import Callable, TypeAlias

from .http.model import Seekable

# Computes the entity tag (ETag) value of a file's content. The function
# consumes the stream, the caller is responsible for rewinding it.
ETagFunction: TypeAlias = Callable[[Seekable], str]

ETAG_READ_SIZE: int = 64_000


def calculateETag(stream: Seekable) -> str:
	"""Calculates the entity tag by MD5 hashing the whole stream and quoting
	the hex encoded result, like `"d41d8cd98f00b204e9800998ecf8427e"`."""
	# NOTE: MD5 is used as a content fingerprint, not for security
	hasher = hashlib.md5(usedforsecurity=False)
	while chunk := stream.read(ETAG_READ_SIZE):
		hasher.update(chunk)
	return f'"{hasher.hexdigest()}"'


# EOF
