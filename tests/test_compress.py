import gzip
import io

import pytest

from fileserver.compress import (
	COMPRESS_MAX,
	COMPRESS_MIN,
	acceptedEncodings,
	acceptsGzip,
	compress,
	shouldCompress,
)
from conftest import FILES


@pytest.mark.parametrize(
	"header,expected",
	[
		("gzip", True),
		("gzip, deflate, br", True),
		("br;q=1.0, gzip;q=0.5", True),
		("x-gzip", True),
		("*", True),
		("gzip;q=0", False),
		("identity", False),
		("br", False),
		("", False),
		(None, False),
	],
)
def test_accepts_gzip(request_, header: str | None, expected: bool):
	headers = {"Accept-Encoding": header} if header is not None else None
	assert acceptsGzip(request_("GET", "/", headers)) is expected


def test_accepted_encodings():
	assert acceptedEncodings("gzip;q=0.5, BR, identity;q=bad") == {
		"gzip": 0.5,
		"br": 1.0,
		"identity": 0.0,
	}


def test_compression_window():
	assert not shouldCompress(0)
	assert not shouldCompress(COMPRESS_MIN)
	assert shouldCompress(COMPRESS_MIN + 1)
	assert shouldCompress(COMPRESS_MAX - 1)
	assert not shouldCompress(COMPRESS_MAX)
	assert COMPRESS_MAX == 15 * 1024 * 1024
	assert shouldCompress(10, 5, 20)


def test_compress_produces_gzip():
	data = b"abcdefgh" * 1000
	assert gzip.decompress(compress(io.BytesIO(data))) == data


def test_compressed_response(client):
	data = FILES["big.txt"]
	assert len(data) > COMPRESS_MIN
	res = client().get("/big.txt", {"Accept-Encoding": "gzip, deflate"})
	assert res.status == 200
	assert res.header("Content-Encoding") == "gzip"
	assert int(res.header("Content-Length")) == len(res.body)
	assert len(res.body) < len(data)
	assert gzip.decompress(res.body) == data
	assert res.header("Vary") == "Accept-Encoding"


def test_uncompressed_without_gzip(client):
	data = FILES["big.txt"]
	res = client().get("/big.txt", {"Accept-Encoding": "br"})
	assert res.header("Content-Encoding") is None
	assert res.body == data
	assert res.header("Content-Length") == str(len(data))
	assert res.header("Vary") == "Accept-Encoding"


def test_small_files_are_not_compressed(client):
	res = client().get("/hello.txt", {"Accept-Encoding": "gzip"})
	assert res.header("Content-Encoding") is None
	assert res.body == b"Hello, world!"


def test_compression_window_is_configurable(client):
	res = client(compressMin=0).get("/hello.txt", {"Accept-Encoding": "gzip"})
	assert res.header("Content-Encoding") == "gzip"
	assert gzip.decompress(res.body) == b"Hello, world!"
	res = client(compressMax=100).get("/big.txt", {"Accept-Encoding": "gzip"})
	assert res.header("Content-Encoding") is None


def test_compressed_range(client):
	res = client().get(
		"/big.txt", {"Accept-Encoding": "gzip", "Range": "bytes=0-9"}
	)
	assert res.status == 206
	assert res.header("Content-Encoding") == "gzip"
	assert res.header("Content-Length") == "10"
	assert res.body == compress(io.BytesIO(FILES["big.txt"]))[:10]


# EOF
