"""nREPL request construction and response accumulation.

The server answers one ``eval`` request with any number of messages. Output
may be split across several of them, and the final value may arrive before
the ``done`` status does. ``EvalResult.fold`` merges one message at a time:

- ``value``: the most recent non-empty value wins
- ``out`` / ``err``: non-empty fragments are concatenated in arrival order
- ``status``: tokens are collected in arrival order without duplicates
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

EVAL_OP = "eval"
DONE = "done"
EVAL_ERROR = "eval-error"


class SessionState(Enum):
    """Lifecycle of one evaluation round-trip."""

    IDLE = "idle"
    REQUEST_SENT = "request-sent"
    RECEIVING = "receiving"
    DONE = "done"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


def build_eval_request(code: str, **extra: Any) -> Dict[str, Any]:
    """
    Build an ``eval`` request message.

    Args:
        code: Source text to evaluate
        **extra: Optional nREPL fields such as ``ns``, ``id`` or ``session``.
            Entries whose value is None are dropped.

    Returns:
        Ordered request dict, ``op`` and ``code`` first
    """
    request: Dict[str, Any] = {"op": EVAL_OP, "code": code}
    for key, value in extra.items():
        if key in request:
            raise ValueError(f"Request field '{key}' cannot be overridden")
        if value is not None:
            request[key] = value
    return request


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def status_tokens(message: Mapping[str, Any]) -> List[str]:
    """Return the ``status`` tokens of a message as text."""
    status = message.get("status")
    if status is None:
        return []
    if isinstance(status, (bytes, str)):
        return [_text(status)]
    if isinstance(status, list):
        return [_text(token) for token in status]
    return []


@dataclass
class EvalResult:
    """Accumulated outcome of one evaluation."""

    value: Optional[str] = None
    out: str = ""
    err: str = ""
    ns: Optional[str] = None
    ex: Optional[str] = None
    root_ex: Optional[str] = None
    status: List[str] = field(default_factory=list)
    messages: int = 0
    state: SessionState = SessionState.IDLE

    @property
    def done(self) -> bool:
        return DONE in self.status

    @property
    def has_error(self) -> bool:
        """True when the server reported an evaluation error."""
        return bool(self.err) or self.ex is not None or EVAL_ERROR in self.status

    def fold(self, message: Mapping[str, Any]) -> None:
        """Merge one response message into the result."""
        self.messages += 1

        value = message.get("value")
        if value is not None and value != b"" and value != "":
            self.value = _text(value)

        out = message.get("out")
        if out:
            self.out += _text(out)

        err = message.get("err")
        if err:
            self.err += _text(err)

        for key, attr in (("ns", "ns"), ("ex", "ex"), ("root-ex", "root_ex")):
            if message.get(key):
                setattr(self, attr, _text(message[key]))

        for token in status_tokens(message):
            if token not in self.status:
                self.status.append(token)
