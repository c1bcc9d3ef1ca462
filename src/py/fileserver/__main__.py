import argparse
import sys
from pathlib import Path

from . import config
from .cache import immutable, noCache
from .server import run
from .services.files import FileService
from .utils.logging import LogLevel, error, info, setLevel


def parser() -> argparse.ArgumentParser:
	res = argparse.ArgumentParser(
		prog="fileserver",
		description="Serves the files of a local directory over HTTP",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	res.add_argument(
		"-H",
		"--host",
		action="store",
		dest="host",
		help="Specifies the host to listen on",
		default=config.HOST,
	)
	res.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		help="Specifies the port",
		default=config.PORT,
	)
	res.add_argument(
		"--spa",
		action="store_true",
		dest="spa",
		help="Serves the directory as a single page application",
	)
	res.add_argument(
		"--fallback",
		action="store",
		dest="fallback",
		help="The file served in SPA mode when the path does not match a file",
		default="index.html",
	)
	res.add_argument(
		"--silent",
		action="store_true",
		dest="silent",
		help="Disables request logging and informational messages",
	)
	res.add_argument(
		"--immutable",
		action="store_true",
		dest="immutable",
		help="Marks the files as immutable, except the excluded ones",
	)
	res.add_argument(
		"--exclude",
		action="store",
		dest="exclude",
		nargs="*",
		default=[],
		help="Paths revalidated on every request when using --immutable",
	)
	res.add_argument(
		"directory",
		nargs="?",
		help="The directory to serve",
	)
	return res


def main(args: list[str] | None = None) -> int:
	options = parser().parse_args(args)
	if not options.directory:
		error("please provide a target", "NO_TARGET")
		return 1
	directory = Path(options.directory)
	if not directory.is_dir():
		error(f"Target is not a directory: {directory}", "BAD_TARGET")
		return 1
	setLevel(LogLevel.Error if options.silent else config.LOG_LEVEL)
	service = FileService(
		directory,
		spa=options.spa,
		fallback=options.fallback,
		cacheControl=(immutable(*options.exclude) if options.immutable else noCache),
		compressMin=config.COMPRESS_MIN,
		compressMax=config.COMPRESS_MAX,
	)
	if options.spa:
		info(
			f"Serving {str(directory)!r} on {options.host}:{options.port} in SPA mode",
			Fallback=options.fallback,
		)
	else:
		info(f"Serving {str(directory)!r} on {options.host}:{options.port}")
	run(
		service,
		host=options.host,
		port=options.port,
		logRequests=config.LOG_REQUESTS and not options.silent,
	)
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
