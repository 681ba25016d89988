"""Startup pipeline: options -> catalog -> selection -> credentials -> session."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from application.dto import ClientOptions
from application.services.resolver import Chooser, resolve, select_service
from application.services.session import (
    Session,
    build_session,
    load_script,
    run_interactive,
    run_script,
)
from core.logging_config import get_logger
from domain.common.exceptions import ConfigurationError
from domain.schema import SchemaSource
from infrastructure.schema import load_catalog
from infrastructure.transport import bridge_address, build_credentials

logger = get_logger(__name__)


def prepare_session(
    options: ClientOptions,
    chooser: Optional[Chooser] = None,
) -> tuple[Session, Optional[tuple[str, str]]]:
    """Run every startup step and return the session and the one-shot script.

    Each step fails fast; nothing is left running when one of them raises.
    """
    if not options.address:
        raise ConfigurationError("Address should be valid")
    if not options.protos:
        raise ConfigurationError("At least one proto file is required")
    script = load_script(options.eval, options.exec)

    sources = [SchemaSource.from_path(p) for p in options.protos]
    tree = load_catalog(sources, options.import_paths)
    services = resolve(tree)
    selected = select_service(services, options.service, options.manual, chooser)

    credentials = build_credentials(**options.credential_options().model_dump())

    address, bridge = bridge_address(options.address)
    try:
        session = build_session(services, selected, address, credentials, bridge=bridge)
    except BaseException:
        if bridge is not None:
            bridge.close()
        raise
    logger.info(
        "session_ready",
        address=address,
        service=selected,
        services=len(services),
        bridged=bridge is not None,
    )
    return session, script


def start(
    options: ClientOptions,
    chooser: Optional[Chooser] = None,
    history_path: Optional[Path] = None,
) -> None:
    session, script = prepare_session(options, chooser)
    if script is None:
        run_interactive(session, history_path)
        return
    try:
        run_script(session, *script)
    finally:
        session.close()
