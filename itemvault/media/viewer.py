"""
Hands materialized files to the platform's native file viewer.
"""

import logging
from pathlib import Path

import typer

log = logging.getLogger(__name__)


def open_in_file_viewer(path: Path) -> bool:
    """
    Reveals ``path`` in the system file manager.

    Returns:
        True if the launcher reported success.
    """
    if not path.exists():
        log.warning(f"Cannot open '{path}' in the file viewer: file does not exist.")
        return False
    exit_code = typer.launch(str(path), locate=True)
    if exit_code != 0:
        log.warning(f"File viewer exited with code {exit_code} for '{path}'.")
        return False
    return True
