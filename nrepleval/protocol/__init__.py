"""Wire protocol for nREPL: bencode codec plus request/response helpers."""

from nrepleval.protocol.bencode import decode, encode, read_value, write_value
from nrepleval.protocol.messages import (
    EvalResult,
    SessionState,
    build_eval_request,
    status_tokens,
)

__all__ = [
    "decode",
    "encode",
    "read_value",
    "write_value",
    "EvalResult",
    "SessionState",
    "build_eval_request",
    "status_tokens",
]
