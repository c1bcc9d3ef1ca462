from typing import Any, Coroutine, NamedTuple
from urllib.parse import urlparse, unquote
import asyncio
from io import BytesIO
from .utils.io import asBytes, asWritable
from .utils.logging import exception
from .model import Application, Service, mount
from .http.model import (
    HTTPRequest,
    HTTPHeaders,
    HTTPBodyBlob,
    HTTPBodySeekable,
    HTTPBodyStream,
    HTTPResponse,
    headername,
)
from .http.parser import parseQuery


# --
# ## In-process bridge
#
# Runs requests through an application without any socket, draining the
# response body in memory. This is how an embedding application (or a test)
# exercises the services exactly as the socket server would, including the
# release of the resources held by response bodies.


class LocalResponse(NamedTuple):
    """A fully drained response."""

    status: int
    headers: dict[str, str]
    body: bytes

    def header(self, name: str) -> str | None:
        return self.headers.get(headername(name))

    @property
    def text(self) -> str:
        return self.body.decode("utf8")


class LocalRequest:
    @staticmethod
    def Create(
        method: str,
        uri: str,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> HTTPRequest:
        """Creates a request from the given parameters, as if it had been
        parsed by the server."""
        url = urlparse(uri)
        payload: bytes = asBytes(body)
        req_headers: dict[str, str] = {
            headername(k): v for k, v in (headers or {}).items()
        }
        if payload:
            req_headers.setdefault("Content-Length", str(len(payload)))
        return HTTPRequest(
            method=method.upper(),
            path=unquote(url.path or "/"),
            query=parseQuery(url.query),
            headers=HTTPHeaders(
                req_headers,
                req_headers.get("Content-Type"),
                len(payload) if payload else None,
            ),
            body=HTTPBodyBlob.FromBytes(payload),
        )

    @staticmethod
    def Drain(request: HTTPRequest, response: HTTPResponse) -> LocalResponse:
        """Reads the whole response body and closes the response."""
        buffer = BytesIO()
        try:
            body = response.body if request.method != "HEAD" else None
            if body is None:
                pass
            elif isinstance(body, HTTPBodyBlob):
                buffer.write(body.payload)
            elif isinstance(body, HTTPBodySeekable):
                for chunk in body.iterChunks():
                    buffer.write(chunk)
            elif isinstance(body, HTTPBodyStream):
                try:
                    for chunk in body.stream:
                        buffer.write(asWritable(chunk))
                finally:
                    body.stream.close()
            else:
                raise ValueError(f"Unsupported body format: {body}")
        finally:
            response.close()
        return LocalResponse(
            response.status, dict(response.headers.headers), buffer.getvalue()
        )


class LocalHandler:
    def __init__(self, app: Application):
        self.app: Application = app

    async def handle(
        self,
        method: str,
        uri: str,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> LocalResponse:
        req: HTTPRequest = LocalRequest.Create(method, uri, headers, body)
        r: HTTPResponse | Coroutine[Any, Any, HTTPResponse] = self.app.process(req)
        res: HTTPResponse = r if isinstance(r, HTTPResponse) else await r
        try:
            return LocalRequest.Drain(req, res)
        except Exception as e:
            exception(e, f"Failed to drain response to {method} {uri}")
            raise
        finally:
            if req._onClose:
                req._onClose(req)

    def request(
        self,
        method: str,
        uri: str,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> LocalResponse:
        """Synchronous version of `handle`, which must not be called from
        a running event loop."""
        return asyncio.run(self.handle(method, uri, headers, body))

    def get(self, uri: str, headers: dict[str, str] | None = None) -> LocalResponse:
        return self.request("GET", uri, headers)

    def head(self, uri: str, headers: dict[str, str] | None = None) -> LocalResponse:
        return self.request("HEAD", uri, headers)


def handler(*components: Application | Service) -> LocalHandler:
    """Returns a handler running requests through the given components"""
    return LocalHandler(mount(*components))


# EOF
