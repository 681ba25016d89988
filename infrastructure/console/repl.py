"""Interactive console with readline history and completion."""
from __future__ import annotations

import code
import re
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import click
import grpc

from core.logging_config import get_logger
from domain.common.exceptions import GrpccError, SessionTerminated

try:
    import readline  # type: ignore
except ImportError:  # pragma: no cover - platform dependent
    readline = None  # type: ignore

logger = get_logger(__name__)

HISTORY_LENGTH = 1000
_ANSI = re.compile(r"(\x1b\[[0-9;]*m)")


def readline_safe(prompt: str) -> str:
    """Mark colour escapes as zero-width so readline measures the prompt right."""
    if readline is None:
        return prompt
    return _ANSI.sub("\001\\1\002", prompt)


def load_history(path: Optional[Path]) -> None:
    if readline is None or path is None:
        return
    readline.set_history_length(HISTORY_LENGTH)
    try:
        readline.read_history_file(str(path))
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("history_load_failed", path=str(path), error=str(exc))


def save_history(path: Optional[Path]) -> None:
    if readline is None or path is None:
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        readline.write_history_file(str(path))
    except OSError as exc:
        logger.warning("history_save_failed", path=str(path), error=str(exc))


class GrpccConsole(code.InteractiveConsole):
    """``InteractiveConsole`` over an explicit session namespace.

    Fatal client errors escape the console; RPC and other client errors
    are reported without a traceback and the loop continues.
    """

    def __init__(
        self,
        namespace: dict[str, Any],
        prompt: str,
        on_rpc_error: Optional[Callable[[grpc.RpcError], None]] = None,
    ) -> None:
        super().__init__(locals=namespace, filename="<grpcc>")
        self.prompt = prompt
        self._on_rpc_error = on_rpc_error

    def runcode(self, code_obj: Any) -> None:
        try:
            exec(code_obj, self.locals)
        except (SystemExit, SessionTerminated):
            raise
        except GrpccError as exc:
            if exc.fatal:
                raise SessionTerminated(exc) from exc
            self.write(f"{click.style(exc.error_type + ':', fg='red')} {exc.message}\n")
        except grpc.RpcError as exc:
            if self._on_rpc_error is None:
                self.showtraceback()
            else:
                self._on_rpc_error(exc)
        except BaseException:
            self.showtraceback()

    def display_prompt(self) -> None:
        """Redraw the prompt after output printed from another thread."""
        if threading.current_thread() is threading.main_thread():
            return
        sys.stdout.write(self.prompt)
        sys.stdout.flush()

    def newline(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            sys.stdout.write("\n")

    def enable_completion(self) -> None:
        if readline is None:
            return
        import rlcompleter

        readline.set_completer(rlcompleter.Completer(self.locals).complete)
        readline.parse_and_bind("tab: complete")

    def run(self, banner: str = "") -> None:
        saved = getattr(sys, "ps1", None), getattr(sys, "ps2", None)
        sys.ps1, sys.ps2 = readline_safe(self.prompt), "... "
        try:
            self.interact(banner=banner, exitmsg="")
        except SystemExit:
            pass
        finally:
            if saved[0] is None:
                del sys.ps1
            else:
                sys.ps1 = saved[0]
            if saved[1] is None:
                del sys.ps2
            else:
                sys.ps2 = saved[1]
