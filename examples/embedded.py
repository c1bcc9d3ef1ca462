"""
Embedded File Server Example

This uses a file server from within a regular service handler, serving
files from an in-memory store with a custom error page.
Features shown:
- MemoryStore holding the files
- FileServer.serve called from a handler, with the path to serve
- Custom error handler

Usage:
    python embedded.py

Test with:
    curl -i http://localhost:8000/docs/guide.md
    curl -i http://localhost:8000/docs/missing.md
"""

from fileserver import (
	FileNotFound,
	FileServer,
	HTTPRequest,
	HTTPResponse,
	MemoryStore,
	Service,
	defaultErrorHandler,
	on,
	run,
)
from fileserver.utils.logging import info

STORE = MemoryStore(
	{
		"guide.md": "# Guide\n\nRead the docs.\n",
		"reference.md": "# Reference\n",
	}
)


def onError(request: HTTPRequest, error: Exception) -> HTTPResponse:
	if isinstance(error, FileNotFound):
		return request.respond(
			"<h1>No such page</h1>", "text/html; charset=utf-8", status=404
		)
	else:
		return defaultErrorHandler(request, error)


class Docs(Service):
	def init(self) -> None:
		self.files = FileServer(STORE, onError=onError)

	@on(GET_HEAD="/docs/{path:any}")
	def docs(self, request: HTTPRequest, path: str) -> HTTPResponse:
		return self.files.serve(request, path, {"X-Content-Type-Options": "nosniff"})


if __name__ == "__main__":
	info("Serving the in-memory docs")
	run(Docs())

# EOF
