"""Utility functions for palfix."""

import os
import logging
import shutil
import tempfile
from typing import Optional

from .exceptions import FileSystemError, WorkspaceError

logger = logging.getLogger(__name__)

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def default_temp_root() -> str:
    """$TMPDIR if set, else /var/tmp (intermediate files are movie-sized), else the system default."""
    env_dir = os.environ.get("TMPDIR")
    if env_dir:
        return env_dir
    if os.path.isdir("/var/tmp"):
        return "/var/tmp"
    return tempfile.gettempdir()

def create_workspace(temp_root: Optional[str] = None) -> str:
    """Creates a private pal-XXXXXXXX directory under temp_root."""
    root = temp_root or default_temp_root()
    try:
        workspace = tempfile.mkdtemp(prefix="pal-", dir=root)
    except OSError as e:
        raise WorkspaceError(f"Could not create a temporary workspace in {root}: {e}") from e
    logger.debug(f"Created workspace: {workspace}")
    return workspace

def remove_workspace(workspace: Optional[str]) -> None:
    """Removes the workspace tree. Missing directories are ignored."""
    if not workspace or not os.path.exists(workspace):
        return
    logger.info("Cleaning up temp files...")
    try:
        shutil.rmtree(workspace)
    except OSError as e:
        raise WorkspaceError(f"Could not remove temporary workspace {workspace}: {e}") from e

def confirm_prompt(output_path: str) -> bool:
    """Asks on the terminal whether an existing output may be overwritten."""
    try:
        answer = input(f"Output file `{output_path}` already exists.\n"
                       f"Do you want to overwrite it? [y|N] ")
    except EOFError:
        return False
    return answer.strip().lower().startswith("y")
