from os import getenv
from .compress import COMPRESS_MAX as DEFAULT_COMPRESS_MAX
from .compress import COMPRESS_MIN as DEFAULT_COMPRESS_MIN

PORT: int = int(getenv("PORT", 8000))

# The file server is meant to be reachable from other hosts by default
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

LOG_REQUESTS: bool = getenv("FILESERVER_LOG_REQUESTS", "1") == "1"

LOG_LEVEL: str = getenv("FILESERVER_LOG_LEVEL", "info")

COMPRESS_MIN: int = int(getenv("FILESERVER_COMPRESS_MIN", DEFAULT_COMPRESS_MIN))
COMPRESS_MAX: int = int(getenv("FILESERVER_COMPRESS_MAX", DEFAULT_COMPRESS_MAX))

# EOF
