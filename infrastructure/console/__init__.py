"""Interactive console glue."""
from .repl import GrpccConsole, load_history, readline_safe, save_history

__all__ = ["GrpccConsole", "load_history", "readline_safe", "save_history"]
