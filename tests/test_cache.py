from fileserver.cache import IMMUTABLE, NO_CACHE, immutable, noCache


def test_no_cache(request_):
	assert noCache(request_(), "index.html") == "no-cache"


def test_immutable_excludes_exact_paths(request_):
	policy = immutable("index.html", "manifest.json")
	assert policy(request_(), "index.html") == NO_CACHE
	assert policy(request_(), "manifest.json") == NO_CACHE
	assert policy(request_(), "assets/app.js") == IMMUTABLE
	# Exclusions match the whole path only
	assert policy(request_(), "assets/index.html") == IMMUTABLE


def test_default_cache_control(client):
	assert client().get("/hello.txt").header("Cache-Control") == "no-cache"


def test_immutable_cache_control(client):
	http = client(cacheControl=immutable("index.html"))
	assert (
		http.get("/assets/app.js").header("Cache-Control")
		== "public, max-age=31536000, immutable"
	)
	assert http.get("/index.html").header("Cache-Control") == "no-cache"


def test_empty_cache_control_omits_header(client):
	res = client(cacheControl=lambda request, path: "").get("/hello.txt")
	assert res.status == 200
	assert res.header("Cache-Control") is None


def test_disabled_cache_control_omits_header(client):
	assert client(cacheControl=None).get("/hello.txt").header("Cache-Control") is None


def test_cache_control_receives_resolved_path(client):
	paths: list[str] = []

	def policy(request, path: str) -> str:
		paths.append(path)
		return "private"

	res = client(cacheControl=policy, spa=True).get("/some/route")
	assert res.header("Cache-Control") == "private"
	assert paths == ["index.html"]


# EOF
