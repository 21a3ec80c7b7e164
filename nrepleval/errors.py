"""Failure taxonomy for nREPL evaluation.

Library code raises these; only the CLI turns them into messages and
exit statuses. An evaluation that reports an error through ``err`` is not
an exception, see ``EvalResult.has_error``.
"""


class NReplError(Exception):
    """Base class for all client failures."""


class ConnectionFailed(NReplError):
    """The server could not be reached or the request could not be written."""


class Timeout(NReplError):
    """A read exceeded the configured timeout before ``done`` was seen."""


class MalformedFrame(NReplError):
    """Bytes on the wire do not follow the bencode grammar."""


class ResponseTooLarge(NReplError):
    """The response stream exceeded a configured message or size limit."""
