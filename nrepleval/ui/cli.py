"""Main CLI entry point - evaluate code on a running nREPL server."""

import logging
import sys
from enum import IntEnum
from typing import Optional

import typer

from nrepleval.client import NReplClient
from nrepleval.core.configs import ClientConfig, get_client_config, load_raw_config
from nrepleval.errors import ConnectionFailed, MalformedFrame, ResponseTooLarge, Timeout
from nrepleval.protocol.messages import EvalResult
from nrepleval.ui.output import UIManager

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="nrepleval - evaluate code on a running nREPL server.",
)


class ExitCode(IntEnum):
    OK = 0
    EVAL_ERROR = 1
    USAGE = 2
    CONNECTION_FAILED = 3
    TIMEOUT = 4
    MALFORMED_FRAME = 5
    RESPONSE_TOO_LARGE = 6


# ============================================================================
# Shared Setup
# ============================================================================

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _load_config(
    host: Optional[str] = None,
    port: Optional[int] = None,
    timeout: Optional[float] = None,
    max_messages: Optional[int] = None,
    max_output_bytes: Optional[int] = None,
) -> ClientConfig:
    """
    Resolve configuration from files and environment, then apply CLI options.
    Exits with USAGE on invalid values.
    """
    raw = load_raw_config()
    overrides = {
        "host": host,
        "port": port,
        "timeout": timeout,
        "max_messages": max_messages,
        "max_output_bytes": max_output_bytes,
    }
    raw.update({key: str(value) for key, value in overrides.items() if value is not None})

    try:
        return get_client_config(raw)
    except ValueError as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(ExitCode.USAGE)


def _read_code(code: Optional[str]) -> str:
    if code is not None:
        return code
    source = sys.stdin.read()
    if not source.strip():
        typer.echo("Error: no code given (pass CODE or pipe it on stdin)", err=True)
        raise typer.Exit(ExitCode.USAGE)
    return source


def _print_result(result: EvalResult) -> None:
    if result.out:
        typer.echo(result.out, nl=False)
    if result.err:
        typer.echo(result.err, err=True, nl=False)
    if result.value is not None:
        if result.out and not result.out.endswith("\n"):
            typer.echo()
        typer.echo(result.value)
    elif result.done:
        typer.echo("done")
    else:
        typer.echo("No response", err=True)


# ============================================================================
# Commands
# ============================================================================

@app.command("eval")
def eval_code(
    code: Optional[str] = typer.Argument(None, help="Code to evaluate (read from stdin if omitted)"),
    host: Optional[str] = typer.Option(None, "--host", "-H", help="nREPL host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="nREPL port"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Read timeout in seconds"),
    ns: Optional[str] = typer.Option(None, "--ns", help="Namespace to evaluate in"),
    max_messages: Optional[int] = typer.Option(None, "--max-messages", help="Fail after this many responses"),
    max_output_bytes: Optional[int] = typer.Option(None, "--max-output-bytes", help="Fail after this much output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log protocol details to stderr"),
) -> None:
    """
    Evaluate code and print its output followed by the final value.

    Example: nrepleval eval "(+ 1 2)"
    """
    _configure_logging(verbose)
    config = _load_config(host, port, timeout, max_messages, max_output_bytes)
    source = _read_code(code)
    client = NReplClient.from_config(config)

    try:
        result = client.evaluate(source, ns=ns)
    except ConnectionFailed as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(ExitCode.CONNECTION_FAILED)
    except Timeout as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(ExitCode.TIMEOUT)
    except MalformedFrame as e:
        typer.echo(f"Error: malformed response from {client.address}: {e}", err=True)
        raise typer.Exit(ExitCode.MALFORMED_FRAME)
    except ResponseTooLarge as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(ExitCode.RESPONSE_TOO_LARGE)

    _print_result(result)

    if result.has_error:
        raise typer.Exit(ExitCode.EVAL_ERROR)


@app.command()
def check(
    host: Optional[str] = typer.Option(None, "--host", "-H", help="nREPL host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="nREPL port"),
) -> None:
    """Check that the nREPL server accepts connections."""
    config = _load_config(host, port)
    client = NReplClient.from_config(config)
    ui = UIManager()

    if client.is_server_reachable():
        ui.success(f"nREPL reachable at {client.address}")
        return

    ui.error(f"nREPL not reachable at {client.address}")
    raise typer.Exit(ExitCode.CONNECTION_FAILED)


@app.command()
def settings(
    action: str = typer.Argument("show", help="Action: show or path"),
) -> None:
    """
    Inspect nrepleval configuration.

    Actions:
        show - Display the resolved configuration and its sources
        path - Print the config file location
    """
    from nrepleval.ui.config_commands import handle_config
    handle_config(action)


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
