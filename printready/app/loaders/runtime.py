"""
Runtime environment detection.

"Browser" is a Pyodide/Emscripten runtime; everything else is native.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class RuntimeEnvironment(str, Enum):
    BROWSER = "browser"
    NATIVE = "native"


def detect_runtime() -> RuntimeEnvironment:
    if sys.platform == "emscripten":
        return RuntimeEnvironment.BROWSER
    return RuntimeEnvironment.NATIVE


def browser_origin() -> Optional[str]:
    """Return the hosting page's origin, or None outside a browser."""
    if detect_runtime() is not RuntimeEnvironment.BROWSER:
        return None

    try:
        # Pyodide's bridge to the page's global scope.
        from js import location  # type: ignore[import-not-found]
    except ImportError:
        logger.debug("Pyodide js bridge unavailable; no page origin")
        return None

    return str(location.origin) or None
