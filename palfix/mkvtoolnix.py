"""Thin wrappers around the MKVToolNix command line tools (mkvmerge, mkvextract)."""

import json
import logging
import subprocess
from typing import List, Optional, Sequence

from .exceptions import ExternalToolFailure
from .models import SyncPlan
from .sync_plan import sync_arguments

logger = logging.getLogger(__name__)


class MkvToolNix:
    """Runs mkvmerge and mkvextract as subprocesses."""

    def __init__(self, mkvmerge_path: Optional[str] = None, mkvextract_path: Optional[str] = None):
        """
        Initializes the wrapper.

        Args:
            mkvmerge_path: Optional path to mkvmerge. If None, assumes it is on PATH.
            mkvextract_path: Optional path to mkvextract. If None, assumes it is on PATH.
        """
        self.mkvmerge_cmd = mkvmerge_path or "mkvmerge"
        self.mkvextract_cmd = mkvextract_path or "mkvextract"
        logger.info(f"Using mkvmerge command: {self.mkvmerge_cmd}, mkvextract command: {self.mkvextract_cmd}")

    def _run(self, tool: str, command: Sequence[str]) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(list(command), capture_output=True, text=True)
        except OSError as e:
            raise ExternalToolFailure(tool, f"could not be started: {e}") from e
        # MKVToolNix exit codes: 0 ok, 1 finished with warnings, 2 error
        if result.returncode == 1:
            logger.warning(f"{tool} reported warnings: {(result.stdout or '').strip()}")
        elif result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            logger.error(f"{tool} exited with code {result.returncode}: {output}")
            raise ExternalToolFailure(tool, f"exit code {result.returncode}: {output}",
                                      returncode=result.returncode, stderr=output)
        return result

    def identify(self, container_path: str) -> dict:
        """Returns mkvmerge's JSON identification of the container."""
        result = self._run("mkvmerge", [self.mkvmerge_cmd, "-J", container_path])
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ExternalToolFailure("mkvmerge", f"identification output was not valid JSON: {e}") from e

    def extract_chapters(self, container_path: str, chapter_path: str) -> str:
        """Writes the container's chapters as XML to chapter_path."""
        logger.info(f"Extracting chapters from {container_path} to {chapter_path}")
        self._run("mkvextract", [self.mkvextract_cmd, container_path, "chapters", chapter_path])
        return chapter_path

    def remux(self, container_path: str, output_path: str, sync_plan: SyncPlan,
              chapter_path: Optional[str] = None) -> str:
        """
        Remuxes without re-encoding, retiming every track named in the sync plan.

        The original chapters are dropped; rescaled ones are added when given.
        """
        command: List[str] = [self.mkvmerge_cmd, "--output", output_path]
        command += sync_arguments(sync_plan)
        command.append("--no-chapters")
        if chapter_path:
            command += ["--chapters", chapter_path]
        command.append(container_path)
        logger.info(f"Remuxing {container_path} into {output_path} with {len(sync_plan)} sync directive(s)")
        self._run("mkvmerge", command)
        return output_path
