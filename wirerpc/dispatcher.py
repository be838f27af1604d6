"""
Request multiplexing over one client connection

The Dispatcher owns the only read loop on its Client. Responses are routed
to the caller waiting on the matching request id. When the connection
fails or closes, every call still waiting receives the error.

Requests and notifications initiated by the peer are passed to a small
answering hook: one handler per method name, run on a worker pool so a
handler may itself make calls. It is not a server-side router; there is
no middleware, batching or method discovery.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, Optional, Tuple

from wirerpc.client import Client
from wirerpc.config import ClientConfig
from wirerpc.errors import (
    ConnectionClosedError,
    DecodeError,
    EncodeError,
    RemoteError,
    ResultDecodeError,
    TransportError,
    TransportTimeoutError,
)
from wirerpc.messages import Notification, Request, ResError, Response
from wirerpc.telemetry.metrics import count_error
from wirerpc.telemetry.tracer import create_span
from wirerpc.utils.serialization import ConversionError, convert_value

logger = logging.getLogger(__name__)

# Standard JSON-RPC error codes used when answering peer requests
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class Dispatcher:
    """Concurrent calls over one Client, correlated by request id"""

    def __init__(self, client: Client, call_timeout: Optional[float] = None, max_workers: int = 4):
        """
        Args:
            client: Client whose reads and writes are owned by the dispatcher
            call_timeout: Default seconds a call waits for its response
            max_workers: Threads running peer request handlers and
                notification callbacks
        """
        self.client = client
        self.call_timeout = call_timeout
        self.methods: Dict[str, Callable[[Any], Any]] = {}
        self.subscriptions: Dict[str, Callable[[Any], None]] = {}

        self._pending: Dict[str, Future] = {}
        self._pending_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._terminal_error: Optional[TransportError] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="wirerpc-handler")

    @classmethod
    def from_config(cls, config: ClientConfig) -> "Dispatcher":
        """Connect using a ClientConfig; calls wait call_timeout_seconds by default"""
        return cls(Client.from_config(config), call_timeout=config.call_timeout_seconds)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *_):
        self.close()

    def register_method(self, name: str, handler: Callable[[Any], Any]):
        """Answer peer requests for `name` with handler(params)

        Handlers run on the worker pool and may call back into the
        dispatcher. Raising RemoteError from the handler sends its error
        object; any other exception is reported as an internal error.
        """
        self.methods[name] = handler
        logger.debug(f"registered method: {name}")

    def subscribe(self, method: str, callback: Callable[[Any], None]):
        """Call callback(params) for every notification named `method`

        Callbacks run on the worker pool, so their order is not guaranteed.
        """
        self.subscriptions[method] = callback
        logger.debug(f"subscribed to notification: {method}")

    def start(self):
        """Start the read loop in a background thread"""
        if self._reader_thread is not None:
            return
        # The read loop blocks until a frame arrives or the connection closes
        self.client.set_read_deadline(None)
        self._reader_thread = threading.Thread(target=self._read_loop, name="wirerpc-reader", daemon=True)
        self._reader_thread.start()
        logger.info("dispatcher read loop started")

    def close(self):
        """Close the connection and fail all pending calls"""
        self.client.close()
        if self._reader_thread is not None and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=1.0)
        self._fail_pending(ConnectionClosedError("connection closed"))
        # may run on a handler thread, so never wait for the pool here
        self._executor.shutdown(wait=False, cancel_futures=True)

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def call(self, method: str, params: Any = None,
             timeout: Optional[float] = None, result_type: Any = None) -> Any:
        """Send a request and wait for its response

        Args:
            method: Method name
            params: Request params
            timeout: Seconds to wait, defaults to call_timeout
            result_type: Optional target type for the result

        Returns:
            The response result

        Raises:
            RemoteError: the peer answered with an error
            TransportTimeoutError: no response within the timeout
            TransportError: the connection failed before the response arrived
            ResultDecodeError: the result does not fit result_type
            ErrorDecodeError: the response carried a malformed error object
        """
        if timeout is None:
            timeout = self.call_timeout

        with create_span("wirerpc.call", {"rpc.method": method}):
            request_id, future = self._send_request(method, params)

            try:
                response: Response = future.result(timeout=timeout)
            except FutureTimeoutError:
                self._discard(request_id)
                count_error("timeout", method=method)
                raise TransportTimeoutError(f"no response to {method} ({request_id}) within {timeout}s") from None

            if response.error is not None:
                raise RemoteError(response.error)
            try:
                return convert_value(response.result, result_type)
            except ConversionError as e:
                raise ResultDecodeError(f"cannot decode result of {method}: {e}") from e

    def notify(self, method: str, params: Any = None) -> None:
        """Send a notification"""
        with self._write_lock:
            self.client.write_notification(method, params)

    def _send_request(self, method: str, params: Any) -> Tuple[str, Future]:
        request_id = self.client.next_id()
        future = Future()
        with self._pending_lock:
            if self._terminal_error is not None:
                raise ConnectionClosedError(f"connection failed: {self._terminal_error}") from self._terminal_error
            # register before writing so a fast response is never missed
            self._pending[request_id] = future
        try:
            with self._write_lock:
                self.client.write_message(Request(id=request_id, method=method, params=params))
        except Exception:
            self._discard(request_id)
            raise
        return request_id, future

    def _discard(self, request_id: str):
        with self._pending_lock:
            self._pending.pop(request_id, None)

    def _fail_pending(self, error: Exception):
        with self._pending_lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)
        if pending:
            logger.warning(f"failed {len(pending)} pending call(s): {error}")

    def _read_loop(self):
        while True:
            try:
                message = self.client.read_message()
            except DecodeError as e:
                # already logged by the client; the connection stays usable
                if e.response_id:
                    self._fail_call(e.response_id, e)
                continue
            except TransportError as e:
                if not self.client.closed:
                    logger.error(f"read loop stopped: {e}")
                with self._pending_lock:
                    self._terminal_error = e
                self._fail_pending(e)
                return

            if isinstance(message, Response):
                self._deliver(message)
            elif isinstance(message, Request):
                self._submit(self._handle_request, message)
            elif isinstance(message, Notification):
                self._submit(self._handle_notification, message)

    def _submit(self, handler: Callable[[Any], None], message: Any):
        try:
            self._executor.submit(handler, message)
        except RuntimeError:
            # pool already shut down by close()
            logger.debug(f"dropped {type(message).__name__.lower()} received while closing")

    def _fail_call(self, request_id: str, error: Exception):
        with self._pending_lock:
            future = self._pending.pop(request_id, None)
        if future is not None:
            future.set_exception(error)

    def _deliver(self, response: Response):
        with self._pending_lock:
            future = self._pending.pop(response.id, None)
        if future is None:
            logger.warning(f"response for unknown request id: {response.id}")
            count_error("unknown_response_id")
            return
        future.set_result(response)

    def _handle_request(self, request: Request):
        handler = self.methods.get(request.method)
        if handler is None:
            logger.warning(f"peer called unknown method: {request.method}")
            self._respond(request.id, error=ResError(METHOD_NOT_FOUND, f"method not found: {request.method}"))
            return

        try:
            result = handler(request.params)
        except RemoteError as e:
            self._respond(request.id, error=e.error)
        except Exception as e:
            logger.error(f"handler for {request.method} failed: {e}")
            self._respond(request.id, error=ResError(INTERNAL_ERROR, str(e)))
        else:
            self._respond(request.id, result=result)

    def _respond(self, request_id: str, result: Any = None, error: Optional[ResError] = None):
        try:
            with self._write_lock:
                self.client.write_response(request_id, result, error)
        except EncodeError as e:
            logger.error(f"result for request {request_id} is not serializable: {e}")
            if error is None:
                self._respond(request_id, error=ResError(INTERNAL_ERROR, f"result not serializable: {e}"))
        except TransportError as e:
            logger.error(f"failed to answer request {request_id}: {e}")

    def _handle_notification(self, notification: Notification):
        callback = self.subscriptions.get(notification.method)
        if callback is None:
            logger.debug(f"no subscriber for notification: {notification.method}")
            return
        try:
            callback(notification.params)
        except Exception as e:
            logger.error(f"notification callback for {notification.method} failed: {e}")
