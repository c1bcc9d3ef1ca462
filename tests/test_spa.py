import pytest

from fileserver.handler import LocalRequest
from fileserver.spa import SPAServer, serveSPA
from fileserver.store import MemoryStore
from fileserver.utils.logging import setLevel
from conftest import FILES, FailingStore, TrackingStore


@pytest.mark.parametrize(
	"uri",
	["/", "/bogus", "/app/users/42", "/assets", "/../secret.txt", "/assets//x"],
)
def test_fallback(client, uri: str):
	res = client(spa=True).get(uri)
	assert res.status == 200
	assert res.body == FILES["index.html"]
	assert res.header("Content-Type") == "text/html"


def test_existing_files_are_served(client):
	http = client(spa=True)
	assert http.get("/assets/app.js").body == FILES["assets/app.js"]
	assert http.get("/hello.txt").body == FILES["hello.txt"]


def test_custom_fallback(client):
	res = client(spa=True, fallback="hello.txt").get("/route")
	assert res.body == FILES["hello.txt"]


def test_missing_fallback_is_not_found(client):
	res = client(spa=True, fallback="app.html").get("/route")
	assert res.status == 404
	assert res.text == "file not found"


def test_probe_failure_is_a_server_fault(client):
	store = FailingStore(PermissionError("denied"))
	res = client(store, spa=True).get("/route")
	assert res.status == 500
	assert store.opens == 1


@pytest.mark.parametrize("method", ["POST", "DELETE", "TRACE", "PROPFIND"])
def test_invalid_method_skips_probe(client, method: str):
	store = FailingStore(PermissionError("denied"))
	res = client(store, spa=True).request(method, "/route")
	assert res.status == 405
	assert res.text == "only GET is supported"
	assert store.opens == 0


def test_probe_entries_are_closed(client, tracking: TrackingStore):
	http = client(tracking, spa=True)
	for uri in ("/", "/route", "/assets", "/hello.txt"):
		assert http.get(uri).status == 200
	assert tracking.allClosed


def test_spa_options_are_passed(store: MemoryStore):
	server = serveSPA(store, "index.html", etag=None, cacheControl=None)
	assert isinstance(server, SPAServer)
	res = server.serve(LocalRequest.Create("GET", "/x"), "x")
	assert res.status == 200
	assert res.getHeader("ETag") is None
	assert res.getHeader("Cache-Control") is None
	res.close()


def test_fallback_is_logged(client, log):
	setLevel("debug")
	client(spa=True).get("/route")
	assert "Serving fallback 'index.html' for 'route'" in log.getvalue()


# EOF
