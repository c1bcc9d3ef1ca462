import io

import pytest

from fileserver.handler import LocalRequest
from fileserver.http.content import (
	ByteRange,
	RangeError,
	formatHTTPDate,
	parseETags,
	parseHTTPDate,
	parseRange,
	serveContent,
)
from conftest import MODIFIED

CONTENT: bytes = b"Hello, world!"
ETAG: str = '"6cd3556deb0da54bca060b4c39479839"'


def respond(method: str = "GET", headers: dict[str, str] | None = None, **options):
	request = LocalRequest.Create(method, "/hello.txt", headers)
	response = serveContent(
		request,
		"hello.txt",
		options.pop("modified", MODIFIED),
		io.BytesIO(CONTENT),
		headers=options.pop("responseHeaders", {"ETag": ETAG}),
	)
	return LocalRequest.Drain(request, response)


def test_full_content():
	res = respond()
	assert res.status == 200
	assert res.body == CONTENT
	assert res.header("Content-Length") == "13"
	assert res.header("Accept-Ranges") == "bytes"
	assert res.header("Last-Modified") == formatHTTPDate(MODIFIED)


def test_unknown_modification_time():
	res = respond(modified=0, headers={"If-Modified-Since": formatHTTPDate(MODIFIED)})
	assert res.status == 200
	assert res.header("Last-Modified") is None


@pytest.mark.parametrize(
	"header,status",
	[
		(ETAG, 304),
		(f'"other", {ETAG}', 304),
		(f"W/{ETAG}", 304),
		("*", 304),
		('"other"', 200),
	],
)
def test_if_none_match(header: str, status: int):
	res = respond(headers={"If-None-Match": header})
	assert res.status == status


def test_not_modified_headers():
	res = respond(headers={"If-None-Match": ETAG})
	assert res.status == 304
	assert res.body == b""
	assert res.header("ETag") == ETAG
	assert res.header("Content-Type") is None
	assert res.header("Content-Length") is None
	assert res.header("Last-Modified") is None


def test_if_none_match_other_methods():
	res = respond("POST", {"If-None-Match": ETAG})
	assert res.status == 412


@pytest.mark.parametrize(
	"since,status",
	[
		(MODIFIED, 304),
		(MODIFIED + 60, 304),
		(MODIFIED - 60, 200),
	],
)
def test_if_modified_since(since: float, status: int):
	res = respond(headers={"If-Modified-Since": formatHTTPDate(since)})
	assert res.status == status


def test_if_none_match_takes_precedence():
	res = respond(
		headers={"If-None-Match": '"other"', "If-Modified-Since": formatHTTPDate(MODIFIED)}
	)
	assert res.status == 200


@pytest.mark.parametrize(
	"header,status",
	[(ETAG, 200), ("*", 200), ('"other"', 412), (f"W/{ETAG}", 412)],
)
def test_if_match(header: str, status: int):
	assert respond(headers={"If-Match": header}).status == status


@pytest.mark.parametrize(
	"since,status",
	[(MODIFIED, 200), (MODIFIED - 60, 412), ("not a date", 200)],
)
def test_if_unmodified_since(since, status: int):
	value = formatHTTPDate(since) if isinstance(since, float) else since
	assert respond(headers={"If-Unmodified-Since": value}).status == status


def test_single_range():
	res = respond(headers={"Range": "bytes=0-4"})
	assert res.status == 206
	assert res.body == b"Hello"
	assert res.header("Content-Range") == "bytes 0-4/13"
	assert res.header("Content-Length") == "5"


@pytest.mark.parametrize(
	"header,body",
	[
		("bytes=7-", b"world!"),
		("bytes=-6", b"world!"),
		("bytes=7-100", b"world!"),
		("bytes=-100", CONTENT),
	],
)
def test_range_forms(header: str, body: bytes):
	res = respond(headers={"Range": header})
	assert res.status == 206
	assert res.body == body


def test_multipart_ranges():
	res = respond(headers={"Range": "bytes=0-4, 7-11"})
	assert res.status == 206
	content_type = res.header("Content-Type")
	assert content_type.startswith("multipart/byteranges; boundary=")
	boundary = content_type.split("boundary=", 1)[1]
	assert res.header("Content-Length") == str(len(res.body))
	assert res.body.startswith(f"--{boundary}\r\n".encode())
	assert res.body.endswith(f"\r\n--{boundary}--\r\n".encode())
	assert b"Content-Range: bytes 0-4/13\r\nContent-Type: text/plain\r\n\r\nHello\r\n" in res.body
	assert b"Content-Range: bytes 7-11/13\r\nContent-Type: text/plain\r\n\r\nworld\r\n" in res.body


def test_unsatisfiable_range():
	res = respond(headers={"Range": "bytes=20-30"})
	assert res.status == 416
	assert res.header("Content-Range") == "bytes */13"


def test_malformed_range():
	assert respond(headers={"Range": "lines=1-2"}).status == 416
	assert respond(headers={"Range": "bytes=5-1"}).status == 416


def test_overlong_ranges_are_ignored():
	res = respond(headers={"Range": "bytes=0-12,0-12"})
	assert res.status == 200
	assert res.body == CONTENT


@pytest.mark.parametrize(
	"value,status",
	[(ETAG, 206), ('"other"', 200), (formatHTTPDate(MODIFIED), 206)],
)
def test_if_range(value: str, status: int):
	res = respond(headers={"Range": "bytes=0-4", "If-Range": value})
	assert res.status == status


def test_head_has_no_body():
	res = respond("HEAD", {"Range": "bytes=0-4,7-8"})
	assert res.status == 206
	assert res.body == b""


def test_parse_range():
	assert parseRange("", 10) == []
	assert parseRange("bytes=0-0", 10) == [ByteRange(0, 1)]
	assert parseRange("bytes=2-,-3", 10) == [ByteRange(2, 8), ByteRange(7, 3)]
	assert parseRange("bytes=5-20, 30-", 10) == [ByteRange(5, 5)]
	with pytest.raises(RangeError):
		parseRange("bytes=10-", 10)
	with pytest.raises(RangeError):
		parseRange("bytes=x-y", 10)


def test_parse_etags():
	assert parseETags('"a", W/"b",  "c"') == ['"a"', 'W/"b"', '"c"']
	assert parseETags("*") == ["*"]


def test_parse_http_date():
	assert parseHTTPDate(formatHTTPDate(MODIFIED)) == MODIFIED
	assert parseHTTPDate("yesterday") is None
	assert parseHTTPDate(None) is None


# EOF
