"""Client for evaluating code on a running nREPL server.

Usage:
    client = NReplClient(port=7888)
    if client.is_server_reachable():
        result = client.evaluate("(+ 1 2)")
        print(result.out, result.value)

Each ``evaluate`` call opens its own TCP connection, sends one ``eval``
request and reads responses until the server reports ``done`` or closes the
connection. The socket is closed on every exit path.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Any, Optional

from nrepleval.core.configs import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    ClientConfig,
)
from nrepleval.errors import (
    ConnectionFailed,
    MalformedFrame,
    NReplError,
    ResponseTooLarge,
    Timeout,
)
from nrepleval.protocol.bencode import encode, read_value
from nrepleval.protocol.messages import (
    DONE,
    EvalResult,
    SessionState,
    build_eval_request,
    status_tokens,
)

logger = logging.getLogger(__name__)

# Keys, status tokens and short values always fit under an output limit
MIN_STRING_CEILING = 64 * 1024


@dataclass
class ResponseLimits:
    """Optional ceilings on a response stream. None means unbounded."""

    max_messages: Optional[int] = None
    max_output_bytes: Optional[int] = None


def _fragment_size(value: Any) -> int:
    if isinstance(value, (bytes, str)):
        return len(value)
    return 0


class NReplSession:
    """
    One evaluation round-trip over an already connected socket.

    A session is single use: it moves from IDLE through REQUEST_SENT and
    RECEIVING to one of DONE, DISCONNECTED or FAILED.
    """

    def __init__(self, sock: socket.socket, limits: Optional[ResponseLimits] = None):
        """
        Initialize session.

        Args:
            sock: Connected stream socket, owned by the caller
            limits: Optional response ceilings
        """
        self.sock = sock
        self.limits = limits or ResponseLimits()
        self.state = SessionState.IDLE
        self._output_bytes = 0

    def evaluate(self, code: str, timeout: Optional[float] = None, **extra: Any) -> EvalResult:
        """
        Send an ``eval`` request and accumulate the responses.

        Args:
            code: Source text to evaluate
            timeout: Per-read timeout in seconds (keeps the socket's own if None)
            **extra: Extra request fields, e.g. ``ns``

        Returns:
            EvalResult with ``state`` DONE, or DISCONNECTED when the server
            closed the connection before sending ``done``

        Raises:
            ConnectionFailed: If the request could not be written
            Timeout: If a read timed out before ``done``
            MalformedFrame: If the server sent invalid bencode
            ResponseTooLarge: If a configured limit was exceeded
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session already used (state: {self.state.value})")

        if timeout is not None:
            self.sock.settimeout(timeout)

        frame = encode(build_eval_request(code, **extra))
        try:
            self.sock.sendall(frame)
        except OSError as exc:
            self.state = SessionState.FAILED
            raise ConnectionFailed(f"Could not send request: {exc}") from exc

        self.state = SessionState.REQUEST_SENT
        logger.debug("Sent eval request (%d bytes)", len(frame))

        stream = self.sock.makefile("rb")
        try:
            return self._receive(stream)
        except NReplError:
            self.state = SessionState.FAILED
            raise
        finally:
            stream.close()

    def _receive(self, stream) -> EvalResult:
        result = EvalResult(state=self.state)

        while True:
            try:
                message = read_value(stream, max_string=self._string_ceiling())
            except socket.timeout as exc:
                raise Timeout(
                    f"No response within {self.sock.gettimeout()}s "
                    f"(after {result.messages} message(s))"
                ) from exc
            except ConnectionResetError:
                # only reaches here at a frame boundary; mid-frame resets are MalformedFrame
                logger.warning("Connection reset by server after %d message(s)", result.messages)
                message = None
            except OSError as exc:
                raise ConnectionFailed(
                    f"Connection lost after {result.messages} message(s): {exc}"
                ) from exc

            if message is None:
                self.state = result.state = SessionState.DISCONNECTED
                logger.warning(
                    "Server closed the connection before 'done' (%d message(s) received)",
                    result.messages,
                )
                return result

            if not isinstance(message, dict):
                raise MalformedFrame(
                    f"Expected a message dictionary, got {type(message).__name__}"
                )

            self.state = result.state = SessionState.RECEIVING
            self._check_limits(message, result)
            result.fold(message)
            logger.debug("Received message %d: keys=%s", result.messages, sorted(message))

            if DONE in status_tokens(message):
                self.state = result.state = SessionState.DONE
                return result

    def _string_ceiling(self) -> Optional[int]:
        """Longest string the next frame may carry, checked before it is read."""
        if self.limits.max_output_bytes is None:
            return None
        remaining = self.limits.max_output_bytes - self._output_bytes
        return max(remaining, MIN_STRING_CEILING)

    def _check_limits(self, message: dict, result: EvalResult) -> None:
        max_messages = self.limits.max_messages
        if max_messages is not None and result.messages + 1 > max_messages:
            raise ResponseTooLarge(f"Response exceeded {max_messages} messages")

        self._output_bytes += _fragment_size(message.get("out"))
        self._output_bytes += _fragment_size(message.get("err"))
        max_bytes = self.limits.max_output_bytes
        if max_bytes is not None and self._output_bytes > max_bytes:
            raise ResponseTooLarge(f"Response output exceeded {max_bytes} bytes")


class NReplClient:
    """
    Connects to an nREPL server and runs one session per evaluation.

    Not safe to share a single evaluation across threads; concurrent callers
    each get their own connection by calling ``evaluate`` independently.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        limits: Optional[ResponseLimits] = None,
    ):
        """
        Initialize client.

        Args:
            host: Server host name or address
            port: Server TCP port
            timeout: Connect and per-read timeout in seconds
            limits: Optional response ceilings
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.limits = limits or ResponseLimits()

    @classmethod
    def from_config(cls, config: ClientConfig) -> "NReplClient":
        return cls(
            host=config.host,
            port=config.port,
            timeout=config.timeout,
            limits=ResponseLimits(
                max_messages=config.max_messages,
                max_output_bytes=config.max_output_bytes,
            ),
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def connect(self, timeout: Optional[float] = None) -> socket.socket:
        """
        Open a TCP connection to the server.

        Raises:
            ConnectionFailed: If the server refused, was unreachable, or the
                connect attempt timed out
        """
        logger.debug("Connecting to nREPL at %s", self.address)
        try:
            return socket.create_connection(
                (self.host, self.port), timeout=timeout or self.timeout
            )
        except OSError as exc:
            raise ConnectionFailed(f"nREPL not reachable at {self.address}: {exc}") from exc

    def evaluate(self, code: str, **extra: Any) -> EvalResult:
        """
        Evaluate code on the server over a fresh connection.

        Args:
            code: Source text to evaluate
            **extra: Extra request fields, e.g. ``ns="user"``

        Returns:
            Accumulated EvalResult

        Raises:
            ConnectionFailed, Timeout, MalformedFrame, ResponseTooLarge
        """
        sock = self.connect()
        with sock:
            session = NReplSession(sock, self.limits)
            result = session.evaluate(code, timeout=self.timeout, **extra)
        logger.debug(
            "Evaluation finished: state=%s messages=%d", result.state.value, result.messages
        )
        return result

    def is_server_reachable(self, timeout: float = 2.0) -> bool:
        """Check whether a TCP connection to the server can be opened."""
        try:
            sock = self.connect(timeout=timeout)
        except ConnectionFailed:
            return False
        sock.close()
        return True
