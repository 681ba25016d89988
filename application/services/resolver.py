"""Resolve a schema tree into service descriptors and pick the default one."""
from __future__ import annotations

import functools
import re
from typing import Callable, Optional, Sequence

from core.logging_config import get_logger
from domain.common.exceptions import (
    ConfigurationError,
    NoServiceFoundError,
    ServiceSelectionError,
)
from domain.schema import Namespace, ServiceDefinition, ServiceDescriptor
from infrastructure.transport.client import ServiceClient

logger = get_logger(__name__)

# Namespaces deeper than this below the root are skipped
MAX_DEPTH = 5

Chooser = Callable[[Sequence[str]], str]


def _descriptor(package: list[str], name: str, service: ServiceDefinition) -> ServiceDescriptor:
    return ServiceDescriptor(
        package=".".join(package),
        name=name,
        definition=functools.partial(ServiceClient, service.descriptor),
        service=service,
    )


def _walk(node: Namespace, path: list[str], depth: int) -> list[ServiceDescriptor]:
    if depth > MAX_DEPTH:
        return []
    found: list[ServiceDescriptor] = []
    for key, child in node.children.items():
        if isinstance(child, Namespace):
            found.extend(_walk(child, [*path, key], depth + 1))
        elif isinstance(child, ServiceDefinition):
            found.append(_descriptor(path, key, child))
    return found


def resolve(tree: Namespace) -> list[ServiceDescriptor]:
    """Depth-first walk returning every reachable service.

    Trees deeper than ``MAX_DEPTH`` (or cyclic ones) yield a finite,
    possibly incomplete list.
    """
    services = _walk(tree, [], 0)
    logger.debug("services_resolved", count=len(services))
    return services


def filter_services(services: Sequence[ServiceDescriptor], pattern: str) -> list[ServiceDescriptor]:
    """Case-insensitive regex match against both short name and fqn."""
    try:
        matcher = re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise ConfigurationError(f"Invalid service pattern {pattern!r}: {exc}") from exc
    return [s for s in services if matcher.search(s.name) or matcher.search(s.fqn)]


def select_service(
    services: Sequence[ServiceDescriptor],
    pattern: Optional[str] = None,
    manual: bool = False,
    chooser: Optional[Chooser] = None,
) -> Optional[str]:
    """Return the fqn of the default service, or None in manual mode.

    Raises:
        NoServiceFoundError: The catalog is empty
        ServiceSelectionError: The pattern matches nothing, is combined with
            manual mode, or the choice is not one of the offered services
    """
    if not services:
        raise NoServiceFoundError()

    if manual:
        if pattern:
            raise ServiceSelectionError("--service cannot be combined with manual mode", pattern=pattern)
        return None

    candidates = list(services)
    if pattern:
        candidates = filter_services(services, pattern)
        if not candidates:
            raise ServiceSelectionError(f"No service matches {pattern!r}", pattern=pattern)

    if len(candidates) == 1:
        return candidates[0].fqn

    if chooser is None:
        raise ServiceSelectionError(
            f"{len(candidates)} services available, pick one with --service",
            pattern=pattern,
        )
    fqns = [s.fqn for s in candidates]
    choice = chooser(fqns)
    if choice not in fqns:
        raise ServiceSelectionError(f"{choice!r} is not one of the offered services", pattern=pattern)
    return choice
