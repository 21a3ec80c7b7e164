"""nrepleval - minimal nREPL evaluation client.

Sends one ``eval`` request over bencode and folds the server's responses
into an EvalResult (value, captured output, captured errors).
"""

from nrepleval.client import NReplClient, NReplSession, ResponseLimits
from nrepleval.errors import (
    ConnectionFailed,
    MalformedFrame,
    NReplError,
    ResponseTooLarge,
    Timeout,
)
from nrepleval.protocol.messages import EvalResult, SessionState

__all__ = [
    "NReplClient",
    "NReplSession",
    "ResponseLimits",
    "EvalResult",
    "SessionState",
    "NReplError",
    "ConnectionFailed",
    "Timeout",
    "MalformedFrame",
    "ResponseTooLarge",
]
