import io
import os
import stat
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, NamedTuple

# -----------------------------------------------------------------------------
#
# STORE
#
# -----------------------------------------------------------------------------
# --
# A store is a read-only, hierarchical namespace of entries addressed by
# slash-separated paths like `assets/app.js`. Stores are supplied by the host:
# the file server only ever opens entries, reads, seeks and closes them.
#
# Missing entries are reported with `FileNotFoundError`, paths that break
# the path rules (see `validPath`) with `InvalidPathError`. Anything else
# raised by a store is considered an I/O fault.


class InvalidPathError(ValueError):
	"""Raised when a path does not follow the store's path rules."""

	def __init__(self, path: str):
		super().__init__(f"Invalid store path: {path!r}")
		self.path: str = path


class EntryStat(NamedTuple):
	size: int
	# Modification time, as a UNIX timestamp, `0` when unknown
	modified: float
	isDirectory: bool = False


def validPath(path: str) -> bool:
	"""Tells if the path is a valid store path: unrooted, slash-separated,
	without empty, `.` or `..` elements. The single path `.` denotes the
	root."""
	if path == ".":
		return True
	elif not path or "\x00" in path:
		return False
	else:
		return all(_ not in ("", ".", "..") for _ in path.split("/"))


class Entry(ABC):
	"""An opened store entry, readable and seekable. Entries are exclusively
	owned by whoever opened them and must be closed."""

	@abstractmethod
	def stat(self) -> EntryStat: ...

	@abstractmethod
	def read(self, size: int = -1) -> bytes: ...

	@abstractmethod
	def seek(self, offset: int, whence: int = io.SEEK_SET) -> int: ...

	def close(self) -> None:
		pass

	def __enter__(self) -> "Entry":
		return self

	def __exit__(self, *args: object) -> None:
		self.close()


class Store(ABC):
	@abstractmethod
	def open(self, path: str) -> Entry:
		"""Opens the entry at the given path, raising `FileNotFoundError`
		when there is none and `InvalidPathError` when the path is invalid."""


# -----------------------------------------------------------------------------
#
# DIRECTORY STORE
#
# -----------------------------------------------------------------------------


class FileEntry(Entry):
	"""A regular file from the local filesystem."""

	def __init__(self, file: BinaryIO):
		self.file: BinaryIO = file

	def stat(self) -> EntryStat:
		st = os.fstat(self.file.fileno())
		return EntryStat(st.st_size, st.st_mtime, stat.S_ISDIR(st.st_mode))

	def read(self, size: int = -1) -> bytes:
		return self.file.read(size)

	def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
		return self.file.seek(offset, whence)

	def close(self) -> None:
		self.file.close()


class DirectoryEntry(Entry):
	"""A directory, which can be stat'ed but not read."""

	def __init__(self, path: Path):
		self.path: Path = path

	def stat(self) -> EntryStat:
		st = self.path.stat()
		return EntryStat(st.st_size, st.st_mtime, True)

	def read(self, size: int = -1) -> bytes:
		raise IsADirectoryError(f"Cannot read directory: {self.path}")

	def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
		raise IsADirectoryError(f"Cannot seek directory: {self.path}")


class DirStore(Store):
	"""A store that serves the files within a local directory."""

	def __init__(self, root: str | Path):
		self.root: Path = (root if isinstance(root, Path) else Path(root)).absolute()

	def open(self, path: str) -> Entry:
		if not validPath(path):
			raise InvalidPathError(path)
		local_path = self.root if path == "." else self.root.joinpath(*path.split("/"))
		if local_path.is_dir():
			return DirectoryEntry(local_path)
		else:
			# Raises `FileNotFoundError` when missing
			return FileEntry(open(local_path, "rb"))

	def __repr__(self) -> str:
		return f"(DirStore {self.root})"


# -----------------------------------------------------------------------------
#
# MEMORY STORE
#
# -----------------------------------------------------------------------------


class MemoryEntry(Entry):
	def __init__(self, data: bytes, modified: float, isDirectory: bool = False):
		self.data: io.BytesIO = io.BytesIO(data)
		self.info: EntryStat = EntryStat(len(data), modified, isDirectory)

	def stat(self) -> EntryStat:
		return self.info

	def read(self, size: int = -1) -> bytes:
		if self.info.isDirectory:
			raise IsADirectoryError("Cannot read a directory entry")
		return self.data.read(size)

	def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
		return self.data.seek(offset, whence)

	def close(self) -> None:
		self.data.close()


class MemoryStore(Store):
	"""A store holding its files in memory. Directories are implied by
	the files' paths, so `assets/app.js` makes `assets` a directory."""

	def __init__(
		self, files: dict[str, bytes | str] | None = None, modified: float | None = None
	):
		self.files: dict[str, bytes] = {}
		self.modified: float = time.time() if modified is None else modified
		for path, data in (files or {}).items():
			self.add(path, data)

	def add(self, path: str, data: bytes | str) -> "MemoryStore":
		if not validPath(path) or path == ".":
			raise InvalidPathError(path)
		self.files[path] = data.encode("utf8") if isinstance(data, str) else data
		return self

	def isDirectory(self, path: str) -> bool:
		prefix: str = "" if path == "." else f"{path}/"
		return any(_.startswith(prefix) for _ in self.files)

	def open(self, path: str) -> Entry:
		if not validPath(path):
			raise InvalidPathError(path)
		elif path in self.files:
			return MemoryEntry(self.files[path], self.modified)
		elif self.isDirectory(path):
			return MemoryEntry(b"", self.modified, True)
		else:
			raise FileNotFoundError(f"No entry in store: {path}")


# EOF
