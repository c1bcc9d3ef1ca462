import zlib
from typing import Literal
from abc import ABC, abstractmethod


class BytesTransform(ABC):
	"""An abstract bytes transform."""

	@abstractmethod
	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		"""Feeds bytes to the transform, may return a value."""

	@abstractmethod
	def flush(self) -> bytes | None | Literal[False]:
		"""Ensures that the transform is flushed, returning any pending bytes."""


class GZipEncoder(BytesTransform):
	"""Encode bytes as Gzip"""

	__slots__ = ["compressor"]

	def __init__(self, compression_level: int = 6) -> None:
		super().__init__()
		# The `16` flag produces a gzip header and trailer instead of zlib's
		self.compressor = zlib.compressobj(
			level=compression_level, wbits=zlib.MAX_WBITS | 16
		)

	def feed(self, chunk: bytes, more: bool = False) -> bytes | None | Literal[False]:
		return self.compressor.compress(chunk)

	def flush(self) -> bytes | None | Literal[False]:
		return self.compressor.flush()


# EOF
