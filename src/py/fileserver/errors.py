from typing import Callable, ClassVar, TypeAlias

from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import debug, error, exception, logged

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class FileServerError(HTTPRequestError):
	"""Base class of the conditions that end a file request."""

	STATUS: ClassVar[int] = 500
	MESSAGE: ClassVar[str] = "Internal Server Error"

	def __init__(self, message: str | None = None, *, path: str | None = None):
		super().__init__(message or self.MESSAGE, self.STATUS, "text/plain")
		self.path: str | None = path


class InvalidMethod(FileServerError):
	"""The file server only supports GET and HEAD requests."""

	STATUS = 405
	MESSAGE = "only GET is supported"


class FileNotFound(FileServerError):
	"""The path is empty, absent from the store, or is a directory."""

	STATUS = 404
	MESSAGE = "file not found"


class InvalidPath(FileServerError):
	"""The store rejected the path, see `store.validPath` for the rules."""

	STATUS = 400
	MESSAGE = "invalid file path"


class ServerFault(FileServerError):
	"""Any other failure (open, stat, read, tag or compression). The
	underlying exception is available as `__cause__`."""


# Renders the response for a failed request
ErrorHandler: TypeAlias = Callable[[HTTPRequest, Exception], HTTPResponse]

ALLOWED_METHODS: str = "GET, HEAD"


def defaultErrorHandler(request: HTTPRequest, err: Exception) -> HTTPResponse:
	"""Responds with a plain text error, the status depending on the
	type of error. Anything that is not a client error is logged and
	answered with a 500."""
	if isinstance(err, InvalidMethod):
		return request.error(
			err.STATUS, InvalidMethod.MESSAGE, headers={"Allow": ALLOWED_METHODS}
		)
	elif isinstance(err, (FileNotFound, InvalidPath)):
		return request.error(err.STATUS, err.MESSAGE)
	else:
		cause: BaseException = err.__cause__ or err
		if logged(error):
			error(
				str(err),
				"FILESERVER_FAULT",
				Method=request.method,
				Path=getattr(err, "path", None) or request.path,
				Reason=f"[{cause.__class__.__name__}] {cause}",
			)
		# The traceback is only relevant when debugging
		if logged(debug) and cause is not err:
			exception(cause)
		return request.error(500)


# EOF
