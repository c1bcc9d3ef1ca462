from .http.model import (
	HTTPRequest,
	HTTPResponse,
	HTTPRequestError,
)  # NOQA: F401
from .store import Store, Entry, EntryStat, DirStore, MemoryStore  # NOQA: F401
from .store import InvalidPathError, validPath  # NOQA: F401
from .etag import calculateETag  # NOQA: F401
from .cache import noCache, immutable  # NOQA: F401
from .errors import (
	FileServerError,
	InvalidMethod,
	FileNotFound,
	InvalidPath,
	ServerFault,
	defaultErrorHandler,
)  # NOQA: F401
from .core import FileServer, serveFS, serve  # NOQA: F401
from .spa import SPAServer, serveSPA  # NOQA: F401
from .services.files import FileService  # NOQA: F401
from .decorators import on  # NOQA: F401
from .model import Service, Application, mount  # NOQA: F401
from .server import run  # NOQA: F401

__version__: str = "0.1.0"

# EOF
