"""Session builder: the runtime namespace and its two execution modes."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

import click
import grpc

from core.logging_config import get_logger
from domain.common.exceptions import (
    ConfigurationError,
    EvalCompileError,
    GrpccError,
    SessionTerminated,
    UnknownServiceError,
)
from domain.schema import ServiceDescriptor
from application.utils.formatting import error_to_data, reply_to_data, to_json
from infrastructure.console import GrpccConsole, load_history, save_history
from infrastructure.transport import (
    Credentials,
    ServiceClient,
    UnixSocketBridge,
    create_metadata,
    credentials_from_options,
    flatten_metadata,
    method_accessor,
)

logger = get_logger(__name__)

DEFAULT_PROMPT = "grpcc> "
EVAL_FILENAME = "eval-arg"


def _noop() -> None:
    return None


class ConsolePrinter:
    """Print helpers exposed in the namespace.

    Each helper writes its JSON to stdout and then calls ``display_prompt``
    so the prompt is redrawn in interactive mode.
    """

    def __init__(
        self,
        display_prompt: Callable[[], None] = _noop,
        newline: Callable[[], None] = _noop,
    ) -> None:
        self.display_prompt = display_prompt
        self.newline = newline

    def print_reply(self, error: Any = None, reply: Any = None) -> None:
        """Print a unary reply; accepts ``(error, reply)`` or a single reply."""
        if reply is None and error is not None and not isinstance(error, BaseException):
            error, reply = None, error
        self.newline()
        if error is not None:
            click.echo(f"{click.style('Error:', fg='red')} {to_json(error_to_data(error))}")
        else:
            click.echo(to_json(reply_to_data(reply)))
        self.display_prompt()

    def stream_reply(self, reply: Any) -> None:
        self.newline()
        click.echo(to_json(reply_to_data(reply)))
        self.display_prompt()

    def print_metadata(self, metadata: Any) -> None:
        self.newline()
        if isinstance(metadata, Mapping):
            flat = dict(metadata)
        else:
            flat = flatten_metadata(metadata)
        click.echo(to_json({"Metadata": flat}))
        self.display_prompt()

    def print_error(self, error: BaseException) -> None:
        self.print_reply(error, None)


@dataclass
class Session:
    """Runtime namespace plus the resources it owns."""

    services: list[ServiceDescriptor]
    address: str
    credentials: Credentials
    selected_fqn: Optional[str] = None
    bridge: Optional[UnixSocketBridge] = None
    printer: ConsolePrinter = field(default_factory=ConsolePrinter)
    namespace: dict[str, Any] = field(default_factory=dict)
    clients: list[ServiceClient] = field(default_factory=list)

    @property
    def manual(self) -> bool:
        return self.selected_fqn is None

    @property
    def catalog(self) -> list[str]:
        return [s.fqn for s in self.services]

    @property
    def selected(self) -> Optional[ServiceDescriptor]:
        return self.find(self.selected_fqn) if self.selected_fqn else None

    def find(self, fqn: str) -> Optional[ServiceDescriptor]:
        return next((s for s in self.services if s.fqn == fqn), None)

    def create_client(
        self,
        service_name: Any = None,
        address: Optional[str] = None,
        credentials: Any = None,
    ) -> ServiceClient:
        """Build a client for ``service_name`` (an fqn from ``services``).

        ``credentials`` may be a ``Credentials`` value or a mapping with the
        CLI option names (insecure, root_cert, private_key, cert_chain).
        A certificate that cannot be read ends the session.
        """
        if not service_name or not isinstance(service_name, str):
            raise ConfigurationError("first argument must be service name")

        if credentials is None:
            creds = self.credentials
        elif isinstance(credentials, Credentials):
            creds = credentials
        elif isinstance(credentials, Mapping):
            try:
                creds = credentials_from_options(credentials)
            except GrpccError as exc:
                if exc.fatal:
                    raise SessionTerminated(exc) from exc
                raise
        else:
            raise ConfigurationError("credentials must be Credentials or a mapping of options")

        service = self.find(service_name)
        if service is None:
            raise UnknownServiceError(service_name)
        client = service.definition(address or self.address, creds)
        self.clients.append(client)
        return client

    def close(self) -> None:
        for client in self.clients:
            client.close()
        self.clients.clear()
        if self.bridge is not None:
            self.bridge.close()
            self.bridge = None


def load_vars(session: Session) -> dict[str, Any]:
    """Populate the session namespace; binds ``client`` unless manual."""
    table = session.namespace
    printer = session.printer
    table["grpc"] = grpc
    table["services"] = session.catalog
    table["Client"] = session.create_client
    if not session.manual:
        table["client"] = session.create_client(session.selected_fqn)
    table["print_reply"] = table["pr"] = printer.print_reply
    table["stream_reply"] = table["sr"] = printer.stream_reply
    table["create_metadata"] = table["cm"] = create_metadata
    table["print_metadata"] = table["pm"] = printer.print_metadata
    return table


def build_session(
    services: Sequence[ServiceDescriptor],
    selected_fqn: Optional[str],
    address: str,
    credentials: Credentials,
    bridge: Optional[UnixSocketBridge] = None,
    printer: Optional[ConsolePrinter] = None,
) -> Session:
    session = Session(
        services=list(services),
        address=address,
        credentials=credentials,
        selected_fqn=selected_fqn,
        bridge=bridge,
        printer=printer or ConsolePrinter(),
    )
    load_vars(session)
    return session


def load_script(eval_source: Optional[str], exec_path: Optional[str]) -> Optional[tuple[str, str]]:
    """Return ``(source, filename)`` for one-shot mode, or None for the REPL."""
    if eval_source and exec_path:
        raise ConfigurationError("--eval and --exec are mutually exclusive")
    if eval_source:
        return eval_source, EVAL_FILENAME
    if exec_path:
        try:
            return Path(exec_path).expanduser().read_text(encoding="utf-8"), exec_path
        except OSError as exc:
            raise ConfigurationError(f"Unable to read script {exec_path}: {exc.strerror or exc}") from exc
    return None


def run_script(session: Session, source: str, filename: str = EVAL_FILENAME) -> None:
    """Compile first for a clean diagnostic, then run in the session namespace."""
    try:
        compiled = compile(source, filename, "exec")
    except SyntaxError as exc:
        raise EvalCompileError(filename, exc) from exc
    session.namespace.setdefault("__name__", "__grpcc__")
    exec(compiled, session.namespace)


def get_prompt(service_name: str, address: str) -> str:
    return f"{click.style(service_name, fg='blue')}@{address}> "


def usage_banner(session: Session) -> str:
    service = session.selected
    if service is None:
        lines = ["", "Manual mode. Available services:", ""]
        lines += [f"  {fqn}" for fqn in session.catalog]
        lines += ["", f"  {click.style('Client', fg='red')}(service_name, address=None, credentials=None) - create a client"]
    else:
        lines = [
            "",
            f"Connecting to {service.fqn} on {session.address}. Available globals:",
            "",
            f"  {click.style('client', fg='red')} - the client connection to {service.name}",
        ]
        lines += [f"    {click.style(method_accessor(name), fg='green')}" for name in service.service.methods]
        lines.append("")

    def cmd(name: str, desc: str, alias: str) -> str:
        return f"  {click.style(name, fg='red')} - {desc} (alias: {click.style(alias, fg='red')})"

    lines += [
        cmd("print_reply", "function to easily print a unary call reply", "pr"),
        cmd("stream_reply", "function to easily print stream call replies", "sr"),
        cmd("create_metadata", "convert dicts into grpc metadata", "cm"),
        cmd("print_metadata", "function to easily print a unary call's metadata", "pm"),
        "",
    ]
    return "\n".join(lines)


def run_interactive(session: Session, history_path: Optional[Path] = None) -> None:
    """Read-eval-print loop over the session; closes the session on exit."""
    if session.manual:
        prompt = click.style(DEFAULT_PROMPT, fg="green")
    else:
        prompt = get_prompt(session.selected.name, session.address)

    printer = session.printer
    console = GrpccConsole(session.namespace, prompt, on_rpc_error=printer.print_error)
    printer.display_prompt = console.display_prompt
    printer.newline = console.newline
    console.enable_completion()
    load_history(history_path)
    try:
        console.run(banner=usage_banner(session))
    finally:
        save_history(history_path)
        session.close()
        click.echo()
