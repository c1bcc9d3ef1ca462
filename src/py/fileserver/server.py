import asyncio
import resource
import socket
import threading
import time
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Coroutine, Literal, NamedTuple

from .config import HOST, LOG_REQUESTS, PORT
from .http.model import (
	HTTPBodyWriter,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.logging import debug, error, event, exception, info, logged, warning


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if e:
			exception(e)


class ServerOptions(NamedTuple):
	host: str = "0.0.0.0"  # nosec: B104
	port: int = 8000
	backlog: int = 10_000
	# This is the polling timeout for accepting new connections
	polling: float = 1.0
	readsize: int = 4_096
	keepalive: float = 3_600
	logRequests: bool = True
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()

SERVER_NOCONTENT: bytes = b"HTTP/1.1 204 No Content\r\nConnection: close\r\n\r\n"
SERVER_BADREQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad Request"
)
SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal Server Error"
)

# Serving files keeps one descriptor open per response being sent
MAX_OPEN_FILES: int = 10 * 10240


def unlimitFiles(maximum: int = MAX_OPEN_FILES) -> int | bool:
	"""Raises the soft limit of open files up to the hard limit, capped
	to `maximum`."""
	soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
	target: int = maximum if hard == resource.RLIM_INFINITY else min(maximum, hard)
	if target <= soft:
		return soft
	try:
		resource.setrlimit(resource.RLIMIT_NOFILE, (target, hard))
		return target
	except (ValueError, OSError):
		return False


class AIOSocketBodyWriter(HTTPBodyWriter):
	"""Specialized body writer to work with AIO sockets."""

	def __init__(
		self,
		client: "socket.socket",
		loop: asyncio.AbstractEventLoop,
	) -> None:
		super().__init__()
		self.client: socket.socket = client
		self.loop: asyncio.AbstractEventLoop = loop

	async def _writeBytes(
		self, chunk: bytes | None | Literal[False], more: bool = False
	) -> bool:
		if chunk is None or chunk is False:
			pass
		else:
			await self.loop.sock_sendall(self.client, chunk)
		return True


class AIOSocketServer:
	"""AsyncIO backend using sockets directly."""

	@classmethod
	async def OnRequest(
		cls,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> None:
		"""Asynchronous worker, processing the requests of a client socket in
		the context of an application, until the connection closes."""
		size: int = options.readsize
		buffer = bytearray(size)
		keep_alive: bool = True
		status: HTTPProcessingStatus = HTTPProcessingStatus.Processing
		req_count: int = 0
		res_count: int = 0
		try:
			parser: HTTPParser = HTTPParser()
			writer: AIOSocketBodyWriter = AIOSocketBodyWriter(client, loop)
			while keep_alive and not writer.shouldClose:
				try:
					n = await asyncio.wait_for(
						loop.sock_recv_into(client, buffer),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					status = HTTPProcessingStatus.Timeout
					break
				if not n:
					# A no-data means a close
					status = HTTPProcessingStatus.NoData
					break
				# NOTE: With HTTP pipelining, we may receive more than one
				# request in the same payload.
				for atom in parser.feed(bytes(buffer[:n])):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=f"{id(client):x}")
						await writer.write(SERVER_BADREQUEST)
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						if (
							atom.protocol == "HTTP/1.0"
							or (atom.header("Connection") or "").lower() == "close"
							or not atom.isComplete
						):
							keep_alive = False
						res, sent = await cls.SendResponse(atom, app, writer, options)
						if res:
							res_count += 1
							if res.shouldClose:
								keep_alive = False
						if not sent:
							keep_alive = False
						if not keep_alive:
							break
			if res_count != req_count:
				warning("Incomplete responses", Requests=req_count, Responses=res_count)
			elif status is HTTPProcessingStatus.Timeout and not req_count:
				warning("Client timed out", Status=status.name)
		except (BrokenPipeError, ConnectionResetError):
			debug("Client closed the connection", Client=f"{id(client):x}")
		except Exception as e:
			exception(e)
		finally:
			client.close()

	@staticmethod
	async def SendResponse(
		request: HTTPRequest,
		app: Application,
		writer: HTTPBodyWriter,
		options: ServerOptions = OPTIONS,
	) -> tuple[HTTPResponse | None, bool]:
		"""Processes the request within the application and sends a response
		using the given writer. Returns the response and whether it was
		completely sent."""
		req: HTTPRequest = request
		res: HTTPResponse | None = None
		started: float = time.monotonic()
		head_sent: bool = False
		sent: bool = False
		try:
			r: HTTPResponse | Coroutine[Any, Any, HTTPResponse] = app.process(req)
			res = r if isinstance(r, HTTPResponse) else await r
			if res is None:
				warning(
					"Application did not return a response",
					Method=req.method,
					Path=req.path,
				)
				await writer.write(SERVER_NOCONTENT)
				head_sent = sent = True
			else:
				await writer.write(res.head())
				head_sent = True
				# Responses to HEAD requests have no body
				if req.method != "HEAD":
					await writer.write(res.body)
				sent = True
		except (BrokenPipeError, ConnectionResetError):
			# Client did an early close
			head_sent = True
		except Exception as e:
			# NOTE: Once the head is sent, the only way to signal the failure
			# is to close the connection.
			error(
				f"Failed to {'send' if head_sent else 'create'} response: {e}",
				"SERVER_RESPONSE",
				Method=req.method,
				Path=req.path,
			)
			exception(e)
		if req._onClose:
			try:
				req._onClose(req)
			except Exception as e:
				exception(e)
		if res:
			# Releases the resources held by the body, like opened files
			try:
				res.close()
			except Exception as e:
				exception(e)
		if not head_sent:
			try:
				await writer.write(SERVER_ERROR)
			except Exception as e:
				exception(e)
		if options.logRequests:
			event(
				req.method,
				req.path,
				Status=res.status if res else 500,
				Duration=f"{(time.monotonic() - started) * 1000:0.1f}ms",
			)
		return res, sent

	@classmethod
	async def Serve(
		cls,
		app: Application,
		options: ServerOptions = ServerOptions(),
	) -> None:
		"""Main server coroutine."""
		server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		server.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			server.bind((options.host, options.port))
		except OSError as e:
			error(
				f"Unable to bind to {options.host}:{options.port}, aborting.",
				"HOSTPORTERR",
			)
			raise e

		# The argument is the backlog of connections that will be accepted before
		# they are refused.
		server.listen(options.backlog)
		server.setblocking(False)

		tasks: set[asyncio.Task[None]] = set()
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be set from the main thread
		if (
			options.stopSignals
			and threading.current_thread() is threading.main_thread()
		):
			loop.add_signal_handler(SIGINT, lambda: state.stop())
			loop.add_signal_handler(SIGTERM, lambda: state.stop())
		loop.set_exception_handler(state.onException)

		await app.start()
		info(
			"File server listening",
			Host=options.host,
			Port=options.port,
		)
		try:
			while state.isRunning:
				if options.condition and not options.condition():
					break
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling or 1.0
					)
					task = loop.create_task(
						cls.OnRequest(app, client, loop=loop, options=options)
					)
					tasks.add(task)
					task.add_done_callback(tasks.discard)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					# This can be: [OSError] [Errno 24] Too many open files
					if e.errno == 24:
						await asyncio.sleep(0.1)
					else:
						exception(e)
		finally:
			server.close()
			for task in tasks:
				task.cancel()
			await asyncio.gather(*tasks, return_exceptions=True)
			await app.stop()


def run(
	*components: Application | Service,
	host: str = HOST,
	port: int = PORT,
	backlog: int = OPTIONS.backlog,
	condition: Callable[[], bool] | None = None,
	polling: float = OPTIONS.polling,
	logRequests: bool = LOG_REQUESTS,
	keepalive: float = OPTIONS.keepalive,
) -> None:
	"""High level function to run the server."""
	limit = unlimitFiles()
	if logged(debug):
		debug("Open files limit", Limit=limit)
	options = ServerOptions(
		host=host,
		port=port,
		backlog=backlog,
		condition=condition,
		polling=polling,
		logRequests=logRequests,
		keepalive=keepalive,
	)
	app = mount(*components)
	try:
		asyncio.run(AIOSocketServer.Serve(app, options))
	except KeyboardInterrupt:
		event("ManualShutdown")


# EOF
