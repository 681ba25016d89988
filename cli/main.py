"""
Command-line interface for grpcc.

Loads the given proto files, connects to the address and either evaluates
a script (--eval / --exec) or starts an interactive session.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

import click
import grpc
import typer

from application.dto import ClientOptions
from application.services.client_service import start
from application.utils.formatting import error_to_data, to_json
from core.config import settings
from core.logging_config import get_logger
from domain.common.exceptions import GrpccError, SessionTerminated

logger = get_logger(__name__)

app = typer.Typer(
    name="grpcc",
    help="Interactive and scriptable client for any gRPC service.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"grpcc {settings.VERSION}")
        raise typer.Exit(code=0)


def choose_service(fqns: Sequence[str]) -> str:
    """Single-choice prompt over the offered services."""
    typer.echo("What service would you like to connect to?")
    for index, fqn in enumerate(fqns, start=1):
        typer.echo(f"  {index}) {fqn}")
    picked = typer.prompt("Service", type=click.IntRange(1, len(fqns)), default=1)
    return fqns[picked - 1]


def _fail(exc: GrpccError) -> None:
    logger.error("grpcc_failed", error_type=exc.error_type, message=exc.message, details=exc.details)
    typer.secho(f"{exc.error_type}: {exc.message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(exc.exit_code)


@app.command()
def main(
    proto: List[str] = typer.Option(..., "--proto", "-p", help="Proto file (.proto) or descriptor set (.pb); repeatable, first listed wins"),
    address: Optional[str] = typer.Option(None, "--address", "-a", help="<host>:<port> or unix:<path>"),
    import_path: Optional[List[str]] = typer.Option(None, "--import-path", "-I", help="Extra proto import directory"),
    service: Optional[str] = typer.Option(None, "--service", "-s", help="Case-insensitive service name pattern"),
    manual: bool = typer.Option(False, "--manual", "-m", help="Do not bind a default client"),
    insecure: bool = typer.Option(False, "--insecure", "-i", help="Use an insecure channel"),
    root_cert: Optional[str] = typer.Option(None, "--root-cert", "--root_cert", help="Root certificate path"),
    private_key: Optional[str] = typer.Option(None, "--private-key", "--private_key", help="Private key path"),
    cert_chain: Optional[str] = typer.Option(None, "--cert-chain", "--cert_chain", help="Certificate chain path"),
    eval_source: Optional[str] = typer.Option(None, "--eval", "-e", help="Python code to run instead of the REPL"),
    exec_path: Optional[str] = typer.Option(None, "--exec", "-x", help="Python file to run instead of the REPL"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    """Connect to a gRPC service described by proto files."""
    del version
    options = ClientOptions(
        address=address,
        protos=proto,
        import_paths=import_path or [],
        service=service,
        manual=manual,
        insecure=insecure,
        root_cert=root_cert,
        private_key=private_key,
        cert_chain=cert_chain,
        eval=eval_source,
        exec=exec_path,
    )
    try:
        start(options, chooser=choose_service, history_path=settings.history_path)
    except GrpccError as exc:
        _fail(exc)
    except SessionTerminated as exc:
        _fail(exc.error)
    except grpc.RpcError as exc:
        typer.secho(f"Error: {to_json(error_to_data(exc))}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
