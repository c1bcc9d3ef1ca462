"""
Single Page Application Example

This serves a built single page application from a directory, where the
assets have content-hashed names and can be cached forever.
Features shown:
- FileService in SPA mode, with the `index.html` fallback
- Immutable cache policy, excluding the entry document
- A service mounted next to the files for the application's API

Usage:
    python spa.py dist/

Test with:
    curl -i http://localhost:8000/                  # index.html
    curl -i http://localhost:8000/users/42          # index.html, routed client-side
    curl -i http://localhost:8000/api/status        # API
"""

import sys

from fileserver import FileService, HTTPRequest, HTTPResponse, Service, immutable, on, run
from fileserver.utils.logging import info


class API(Service):
	PREFIX = "/api"

	@on(GET="/status")
	def status(self, request: HTTPRequest) -> HTTPResponse:
		return request.respond('{"status":"ok"}', "application/json")


if __name__ == "__main__":
	directory = sys.argv[1] if len(sys.argv) > 1 else "."
	info(f"Serving {directory} as a single page application")
	run(
		API(),
		FileService(
			directory,
			spa=True,
			cacheControl=immutable("index.html"),
		),
	)

# EOF
