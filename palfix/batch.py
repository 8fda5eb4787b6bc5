"""Runs the correction over every file of a directory."""

import logging
import os
import time
from typing import List, Sequence

from tqdm import tqdm

from .exceptions import OverwriteDeclined, PalFixError
from .models import BatchSummary, ConversionOutcome, OutcomeStatus, PipelineRun
from .pal_fixer import PalFixer
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)


def find_inputs(input_dir: str, extensions: Sequence[str] = ()) -> List[str]:
    """
    Lists the files of a directory to convert, sorted by name.

    Args:
        input_dir: The directory to scan (not recursive).
        extensions: Lower-case extensions to accept, e.g. ['.mkv'].
                    Empty means every regular file.

    Returns:
        Full paths of the matching, non-hidden regular files.

    Raises:
        FileNotFoundError: If the input directory doesn't exist.
        ValueError: If the input path is not a directory.
    """
    if not os.path.exists(input_dir):
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not os.path.isdir(input_dir):
        raise ValueError(f"Input path is not a directory: {input_dir}")

    inputs = []
    for filename in sorted(os.listdir(input_dir)):
        if filename.startswith("."):
            continue
        if extensions and os.path.splitext(filename)[1].lower() not in extensions:
            continue
        filepath = os.path.join(input_dir, filename)
        if os.path.isfile(filepath):
            inputs.append(filepath)
    logger.info(f"Found {len(inputs)} file(s) to convert in {input_dir}.")
    return inputs


def output_path_for(input_path: str, output_subdir: str = "Fixed") -> str:
    """<dir>/Fixed/<name> for <dir>/<name>."""
    return os.path.join(os.path.dirname(input_path), output_subdir, os.path.basename(input_path))


def run_batch(fixer: PalFixer, input_dir: str) -> BatchSummary:
    """
    Converts every input of the directory, each in its own workspace.

    A failing file is recorded and the batch moves on to the next one.
    KeyboardInterrupt stops the whole batch.
    """
    settings = fixer.settings
    inputs = find_inputs(input_dir, settings.batch_extensions)
    summary = BatchSummary()
    if not inputs:
        logger.warning(f"No files to convert in {input_dir}.")
        return summary

    ensure_dir_exists(os.path.join(input_dir, settings.output_subdir))
    batch_start_time = time.time()
    logger.info(f"--- Starting batch PAL correction for {len(inputs)} file(s) ---")

    with tqdm(total=len(inputs), unit="file", desc="Starting Batch") as pbar:
        for input_path in inputs:
            filename = os.path.basename(input_path)
            pbar.set_description(f"Processing: {filename[:30]}")
            output_path = output_path_for(input_path, settings.output_subdir)
            run = PipelineRun(input_path=input_path, output_path=output_path)
            try:
                fixer.fix(input_path, output_path, run=run)
                summary.outcomes.append(ConversionOutcome(input_path, output_path, OutcomeStatus.SUCCEEDED, run.state))
            except OverwriteDeclined as e:
                summary.outcomes.append(ConversionOutcome(input_path, output_path, OutcomeStatus.DECLINED, run.state, str(e)))
            except (PalFixError, FileNotFoundError) as e:
                logger.error(f"Conversion failed for '{filename}': {e}")
                summary.outcomes.append(ConversionOutcome(input_path, output_path, OutcomeStatus.FAILED, run.failed_stage, str(e)))
            finally:
                pbar.update(1)

    logger.info("--- Batch PAL correction finished ---")
    logger.info(f"Total time: {time.time() - batch_start_time:.2f} seconds")
    logger.info(f"Succeeded: {summary.count(OutcomeStatus.SUCCEEDED)}/{len(inputs)}, "
                f"declined: {summary.count(OutcomeStatus.DECLINED)}, failed: {summary.failed}")
    for outcome in summary.outcomes:
        if outcome.status == OutcomeStatus.FAILED:
            stage = outcome.stage.value if outcome.stage else "unknown"
            logger.info(f"  FAILED {outcome.input_path} ({stage}): {outcome.message}")
    return summary
