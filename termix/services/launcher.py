from __future__ import annotations

import logging
import os
import subprocess
import sys

from result import Err, Ok, Result

logger = logging.getLogger(__name__)


def open_with_default_app(path: str) -> Result[None, str]:
    """Hand *path* to the OS default handler without waiting for it."""
    try:
        if sys.platform == "win32":
            os.startfile(path)  # type: ignore[attr-defined]
        else:
            cmd = ["open", path] if sys.platform == "darwin" else ["xdg-open", path]
            subprocess.Popen(  # noqa: S603
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
    except OSError as exc:
        logger.warning("Could not open %s: %s", path, exc)
        return Err(f"Error opening file: {exc}")
    return Ok(None)
