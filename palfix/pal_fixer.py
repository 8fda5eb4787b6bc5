"""Orchestrates the PAL speedup correction pipeline for one file."""

import logging
import os
import shutil
import time
from typing import Callable, Optional

from .audio_resampler import AudioResampler
from .config_loader import Settings
from .exceptions import FileSystemError, OverwriteDeclined, PalFixError, WorkspaceError
from .mkvtoolnix import MkvToolNix
from .models import PipelineRun, PipelineState
from .sync_plan import build_sync_plan
from .timing_rescaler import rescale_file
from .track_classifier import TrackClassifier, select_streams
from .utils import create_workspace, ensure_dir_exists, remove_workspace

logger = logging.getLogger(__name__)

ConfirmOverwrite = Callable[[str], bool]


class PalFixer:
    """
    Slows a Matroska file down by the configured correction factor.

    Video and subtitle tracks are retimed at mux time, chapters are rewritten,
    and audio is resampled; only audio is re-encoded.
    """

    def __init__(
        self,
        settings: Settings,
        mkvtoolnix: MkvToolNix,
        classifier: TrackClassifier,
        resampler: AudioResampler,
        confirm_overwrite: ConfirmOverwrite,
    ):
        """
        Initializes the PalFixer.

        Args:
            settings: Read-only configuration (factor, language filter, paths).
            mkvtoolnix: Wrapper used for chapter extraction and remuxing.
            classifier: Track inspector; shares its id space with the remux.
            resampler: Audio transcoder producing the final file.
            confirm_overwrite: Called with the output path when it already
                               exists; must return True to proceed.
        """
        self.settings = settings
        self.mkvtoolnix = mkvtoolnix
        self.classifier = classifier
        self.resampler = resampler
        self.confirm_overwrite = confirm_overwrite

    def _enter(self, run: PipelineRun, state: PipelineState) -> None:
        logger.debug(f"{run.input_path}: {run.state.value} -> {state.value}")
        run.state = state

    def fix(self, input_path: str, output_path: str, run: Optional[PipelineRun] = None) -> PipelineRun:
        """
        Runs the full pipeline for a single file.

        Args:
            input_path: The PAL-sped-up source container.
            output_path: Where the corrected container is written.
            run: Optional pre-built run record, updated in place.

        Returns:
            The finished PipelineRun (state DONE).

        Raises:
            OverwriteDeclined: If the output exists and overwriting was refused.
            PalFixError: For any failure in a pipeline stage; the run's state
                         records the stage that failed.
            WorkspaceError: If the workspace cannot be removed after an
                            otherwise successful run. After a failed run
                            this is only logged.
            FileNotFoundError: If the input file does not exist.
        """
        run = run or PipelineRun(input_path=input_path, output_path=output_path)
        start_time = time.time()
        logger.info(f"--- Input: {input_path}")
        logger.info(f"--- Output: {output_path}")

        if not os.path.isfile(input_path):
            run.failed_stage, run.state = PipelineState.INIT, PipelineState.FAILED
            raise FileNotFoundError(f"Input file not found: {input_path}")

        succeeded = False
        try:
            run.workspace = create_workspace(self.settings.temp_dir)
            self._run_stages(run)
            succeeded = True
        except OverwriteDeclined:
            run.state = PipelineState.ABORTED
            logger.info(f"Keeping existing output: {output_path}")
            raise
        except PalFixError as e:
            failed_stage = run.failed_stage = run.state
            run.state = PipelineState.FAILED
            logger.error(f"{input_path}: failed during '{failed_stage.value}': {e}")
            raise
        except KeyboardInterrupt:
            logger.warning(f"{input_path}: interrupted during '{run.state.value}'.")
            run.state = PipelineState.ABORTED
            raise
        except Exception as e:
            failed_stage = run.failed_stage = run.state
            run.state = PipelineState.FAILED
            logger.critical(f"{input_path}: unexpected error during '{failed_stage.value}': {e}", exc_info=True)
            raise PalFixError(f"Unexpected error during '{failed_stage.value}': {e}") from e
        finally:
            try:
                remove_workspace(run.workspace)
            except WorkspaceError as e:
                if succeeded:
                    run.failed_stage = run.state
                    raise
                # The pipeline error already propagating is the one to report.
                logger.error(f"{input_path}: {e}")

        logger.info(f"--- Finished {os.path.basename(input_path)} in {time.time() - start_time:.2f} seconds ---")
        return run

    def _run_stages(self, run: PipelineRun) -> None:
        settings = self.settings
        factor = settings.correction_factor

        self._enter(run, PipelineState.CONFIRM_OVERWRITE)
        if os.path.exists(run.output_path) and not self.confirm_overwrite(run.output_path):
            raise OverwriteDeclined(f"Not overwriting existing output: {run.output_path}")

        self._enter(run, PipelineState.EXTRACT_CHAPTERS)
        logger.info("Adjusting chapters...")
        info = self.classifier.inspect(run.input_path)
        run.has_chapters = info.has_chapters
        if info.has_chapters:
            old_chapter_file = os.path.join(run.workspace, "oldChapters.xml")
            self.mkvtoolnix.extract_chapters(run.input_path, old_chapter_file)

            self._enter(run, PipelineState.RESCALE_CHAPTERS)
            run.chapter_file = rescale_file(
                old_chapter_file, os.path.join(run.workspace, "newChapters.xml"), factor, settings.rounding
            )
        else:
            logger.info("No chapters found.")

        self._enter(run, PipelineState.COMPUTE_SYNC_PLAN)
        run.sync_plan = build_sync_plan(info.tracks, factor)
        run.audio_sample_rate = self.classifier.primary_sample_rate(info, run.input_path)
        run.selection = select_streams(info.tracks, settings.language)

        self._enter(run, PipelineState.REMUX)
        run.intermediate_path = self.mkvtoolnix.remux(
            run.input_path, os.path.join(run.workspace, "temp.mkv"), run.sync_plan, run.chapter_file
        )

        self._enter(run, PipelineState.RESAMPLE_AUDIO)
        # Keep the destination's extension so ffmpeg picks the same muxer.
        staged_output = os.path.join(run.workspace, "output" + (os.path.splitext(run.output_path)[1] or ".mkv"))
        self.resampler.resample(run.intermediate_path, staged_output, run.audio_sample_rate, factor, run.selection)

        output_dir = os.path.dirname(os.path.abspath(run.output_path))
        ensure_dir_exists(output_dir)
        try:
            shutil.move(staged_output, run.output_path)
        except OSError as e:
            raise FileSystemError(f"Could not move result to {run.output_path}: {e}") from e
        self._enter(run, PipelineState.DONE)
