"""Runtime state containers."""

from .context import DaemonContext, create_daemon_context

__all__ = ["DaemonContext", "create_daemon_context"]
