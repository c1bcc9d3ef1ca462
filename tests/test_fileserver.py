import pytest

from fileserver.core import FileServer, serve, serveFS
from fileserver.errors import FileNotFound, ServerFault
from fileserver.handler import LocalRequest
from fileserver.http.model import HTTPRequest, HTTPResponse
from fileserver.store import MemoryStore
from conftest import FILES, FailingStore, TrackingStore


def test_get(client):
	res = client().get("/hello.txt")
	assert res.status == 200
	assert res.body == b"Hello, world!"
	assert res.header("Content-Type") == "text/plain"
	assert res.header("Content-Length") == "13"
	assert res.header("Accept-Ranges") == "bytes"
	assert res.header("Last-Modified") == "Tue, 14 Nov 2023 22:13:20 GMT"
	assert res.header("ETag") == '"6cd3556deb0da54bca060b4c39479839"'
	assert res.header("Cache-Control") == "no-cache"
	assert res.header("Vary") == "Accept-Encoding"


def test_head(client):
	res = client().head("/hello.txt")
	assert res.status == 200
	assert res.body == b""
	assert res.header("Content-Length") == "13"
	assert res.header("ETag") == '"6cd3556deb0da54bca060b4c39479839"'


def test_content_types(client):
	http = client()
	assert http.get("/index.html").header("Content-Type") == "text/html"
	assert http.get("/assets/app.js").header("Content-Type") == "text/javascript"
	assert http.get("/assets/style.css").header("Content-Type") == "text/css"


@pytest.mark.parametrize(
	"uri,status,body",
	[
		("/", 404, "file not found"),
		("/missing.txt", 404, "file not found"),
		("/assets", 404, "file not found"),
		("/assets/", 400, "invalid file path"),
		("/../secret.txt", 400, "invalid file path"),
		("/assets//app.js", 400, "invalid file path"),
	],
)
def test_client_errors(client, uri: str, status: int, body: str):
	res = client().get(uri)
	assert res.status == status
	assert res.text == body
	assert res.header("Content-Type") == "text/plain; charset=utf-8"


@pytest.mark.parametrize(
	"method",
	["POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT", "PROPFIND"],
)
def test_invalid_method_does_not_open_store(client, method: str):
	store = FailingStore(PermissionError("denied"))
	res = client(store).request(method, "/hello.txt")
	assert res.status == 405
	assert res.text == "only GET is supported"
	assert res.header("Allow") == "GET, HEAD"
	assert store.opens == 0


def test_vary_is_appended_once(client):
	res = client(headers={"Vary": "Origin"}).get("/hello.txt")
	assert res.header("Vary") == "Origin, Accept-Encoding"
	res = client(headers={"vary": "accept-encoding"}).get("/big.txt")
	assert res.header("Vary") == "accept-encoding"
	res = client(headers={"Vary": "Origin"}).get(
		"/big.txt", {"Accept-Encoding": "gzip"}
	)
	assert res.header("Vary").split(", ").count("Accept-Encoding") == 1


def test_preset_headers_are_kept(client):
	res = client(headers={"X-Frame-Options": "DENY"}).get("/hello.txt")
	assert res.header("X-Frame-Options") == "DENY"


def test_failing_etag_is_a_server_fault(client, log):
	def etag(stream) -> str:
		raise OSError("disk failure")

	res = client(etag=etag).get("/hello.txt")
	assert res.status == 500
	assert res.text == "Internal Server Error"
	assert "FILESERVER_FAULT" in log.getvalue()
	assert "disk failure" in log.getvalue()


def test_open_failure_is_a_server_fault(client):
	res = client(FailingStore(PermissionError("denied"))).get("/hello.txt")
	assert res.status == 500


def test_custom_error_handler(client):
	errors: list[Exception] = []

	def onError(request: HTTPRequest, error: Exception) -> HTTPResponse:
		errors.append(error)
		return request.respond("Nope", "text/plain", status=418)

	res = client(onError=onError).get("/missing.txt")
	assert res.status == 418
	assert res.text == "Nope"
	assert isinstance(errors[0], FileNotFound)
	assert isinstance(errors[0].__cause__, FileNotFoundError)


def test_server_fault_is_chained(store):
	errors: list[Exception] = []

	def etag(stream) -> str:
		raise ValueError("bad tag")

	def onError(request, error):
		errors.append(error)
		return request.error(500)

	server = serveFS(store, etag=etag, onError=onError)
	server.serve(LocalRequest.Create("GET", "/hello.txt"), "hello.txt")
	assert isinstance(errors[0], ServerFault)
	assert isinstance(errors[0].__cause__, ValueError)


@pytest.mark.parametrize(
	"method,uri,headers",
	[
		("GET", "/hello.txt", {}),
		("HEAD", "/hello.txt", {}),
		("GET", "/big.txt", {"Accept-Encoding": "gzip"}),
		("GET", "/hello.txt", {"If-None-Match": '"6cd3556deb0da54bca060b4c39479839"'}),
		("GET", "/hello.txt", {"Range": "bytes=0-1,4-5"}),
		("GET", "/hello.txt", {"Range": "bytes=100-"}),
		("GET", "/assets", {}),
	],
)
def test_entries_are_closed(client, tracking: TrackingStore, method, uri, headers):
	client(tracking).request(method, uri, headers)
	assert tracking.opened
	assert tracking.allClosed


def test_streamed_entry_is_closed_by_response(tracking: TrackingStore):
	server = FileServer(tracking)
	res = server.serve(LocalRequest.Create("GET", "/hello.txt"), "hello.txt")
	assert not tracking.allClosed
	res.close()
	assert tracking.allClosed


def test_serve_directory(tmp_path):
	(tmp_path / "page.html").write_bytes(b"<p>page</p>")
	(tmp_path / "sub").mkdir()
	server = serve(tmp_path)
	res = server.serve(LocalRequest.Create("GET", "/page.html"), "page.html")
	assert res.status == 200
	assert res.getHeader("Content-Length") == "11"
	res.close()
	res = server.serve(LocalRequest.Create("GET", "/sub"), "sub")
	assert res.status == 404
	res = server.serve(LocalRequest.Create("GET", "/x"), "../page.html")
	assert res.status == 400


def test_file_service_on_directory(client, tmp_path):
	(tmp_path / "data.bin").write_bytes(bytes(range(256)) * 10)
	http = client(str(tmp_path), prefix="/files")
	res = http.get("/files/data.bin")
	assert res.status == 200
	assert res.body == bytes(range(256)) * 10
	assert res.header("Content-Type") == "application/octet-stream"
	assert http.get("/data.bin").status == 404


def test_shared_server(store: MemoryStore):
	server = FileServer(store)
	for name, data in FILES.items():
		res = server.serve(LocalRequest.Create("GET", f"/{name}"), name)
		assert res.status == 200
		assert res.getHeader("Content-Length") == str(len(data))
		res.close()


# EOF
