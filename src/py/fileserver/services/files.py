from pathlib import Path
from typing import Any

from ..core import FileServer
from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service
from ..routing import Dispatcher
from ..spa import SPAServer
from ..store import DirStore, Store


class FileService(Service):
	"""A service to serve the files of a store (or a local directory),
	optionally as a single page application."""

	def __init__(
		self,
		store: Store | str | Path,
		*,
		prefix: str = "",
		spa: bool = False,
		fallback: str = "index.html",
		headers: dict[str, str] | None = None,
		**options: Any,
	):
		super().__init__(prefix=prefix.rstrip("/"))
		self.store: Store = store if isinstance(store, Store) else DirStore(store)
		self.server: FileServer | SPAServer = (
			SPAServer(self.store, fallback, **options)
			if spa
			else FileServer(self.store, **options)
		)
		self.headers: dict[str, str] | None = headers

	@property
	def isSPA(self) -> bool:
		return isinstance(self.server, SPAServer)

	# Every method is routed to the file server, which answers 405 to the
	# ones it does not support.
	@on(priority=-1, **{Dispatcher.ANY: ("/", "/{path:any}")})
	def file(self, request: HTTPRequest, path: str = "") -> HTTPResponse:
		return self.server.serve(request, path, self.headers)

	def __repr__(self) -> str:
		return f"(FileService {self.prefix or '/'} {self.server})"


# EOF
