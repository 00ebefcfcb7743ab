"""GPIO D-Bus daemon package initialisation."""

__version__ = "0.1.0"

import logging

logger = logging.getLogger(__name__)


def _check_dependencies() -> None:
    """Verify the gpiod bindings expose the v2 request API."""
    try:
        import gpiod
    except ImportError:
        # Missing bindings surface naturally when the backend is imported.
        return

    # The v1 bindings (python3-libgpiod in older distro feeds) share the
    # module name but lack LineSettings/request_lines entirely.
    if not hasattr(gpiod, "LineSettings") or not hasattr(gpiod, "request_lines"):
        logger.critical(
            "FATAL: Incompatible gpiod bindings detected. "
            "This daemon requires the libgpiod v2 Python API (gpiod >= 2.0)."
        )
        raise ImportError("gpiod >= 2.0 is required")


_check_dependencies()
