import pytest

from fileserver.decorators import on
from fileserver.handler import handler
from fileserver.model import Application, Service, mount
from fileserver.routing import Dispatcher, Handler, Route


def test_route_match():
	route = Route("/files/{path:any}")
	assert route.match("/files/a/b.txt") == {"path": "a/b.txt"}
	assert route.match("/files/") == {"path": ""}
	assert route.match("/other/a") is None


def test_route_extractors():
	assert Route("/item/{id:int}").match("/item/-42") == {"id": -42}
	assert Route("/user/{name}").match("/user/jane-doe") == {"name": "jane-doe"}
	assert Route("/v{version:[0-9]+}/x").match("/v12/x") == {"version": "12"}


def test_route_text_is_literal():
	assert Route("/a.b").match("/a.b") == {}
	assert Route("/a.b").match("/axb") is None


def test_unknown_route_pattern():
	with pytest.raises(ValueError):
		Route("/{path:unknown}")


class Echo(Service):
	@on(GET="/echo/{word:segment}")
	def echo(self, request, word: str):
		return request.respond(word, "text/plain")

	@on(priority=-1, GET_HEAD="/{path:any}")
	def fallback(self, request, path: str):
		return request.respond(f"fallback:{path}", "text/plain")


def test_dispatcher_priority():
	dispatcher = Dispatcher()
	for h in Echo().handlers:
		dispatcher.register(h)
	route, params = dispatcher.match("GET", "/echo/hi")
	assert route and route.handler and route.handler.functor.__name__ == "echo"
	assert params == {"word": "hi"}
	route, params = dispatcher.match("HEAD", "/echo/hi")
	assert route and route.handler and route.handler.functor.__name__ == "fallback"
	assert dispatcher.match("POST", "/echo/hi") == (None, None)


class Catchall(Service):
	@on(GET="/ping")
	def ping(self, request):
		return request.respond("pong", "text/plain")

	@on(priority=-1, **{Dispatcher.ANY: "/{path:any}"})
	def rest(self, request, path: str):
		return request.respond(f"{request.method}:{path}", "text/plain")


def test_dispatcher_any_method():
	dispatcher = Dispatcher()
	for h in Catchall().handlers:
		dispatcher.register(h)
	for method in ("GET", "TRACE", "PROPFIND", "BREW"):
		route, params = dispatcher.match(method, "/a/b")
		assert route and route.handler and route.handler.functor.__name__ == "rest"
		assert params == {"path": "a/b"}
	route, _ = dispatcher.match("GET", "/ping")
	assert route and route.handler and route.handler.functor.__name__ == "ping"
	http = handler(Catchall())
	assert http.request("TRACE", "/x").text == "TRACE:x"
	assert http.get("/ping").text == "pong"


def test_handler_methods():
	h = Handler.Get(Echo().fallback)
	assert h is not None
	assert h.methods == {"GET": ["/{path:any}"], "HEAD": ["/{path:any}"]}
	assert h.priority == -1


def test_service_prefix():
	http = handler(Echo(prefix="/api"))
	assert http.get("/api/echo/hi").text == "hi"
	assert http.get("/api/other").text == "fallback:other"
	res = http.get("/echo/hi")
	assert res.status == 404
	assert res.text == "Not Found"


def test_mount():
	service = Echo()
	app = mount(service)
	assert isinstance(app, Application)
	assert service.isMounted and service.app is app
	assert mount(app, Echo()) is app
	with pytest.raises(RuntimeError):
		app.mount(service)


# EOF
