"""Slows audio down to the corrected timeline using ffmpeg."""

import logging
import os
from fractions import Fraction
from typing import List, Optional

import ffmpeg

from .exceptions import ExternalToolFailure
from .models import CorrectionFactor, StreamSelection

logger = logging.getLogger(__name__)


def target_sample_rate(source_rate: float, factor: CorrectionFactor) -> int:
    """Source rate times the audio factor, rounded to whole Hz."""
    return round(Fraction(str(source_rate)) * factor.audio_factor)


def stream_selectors(selection: StreamSelection) -> Optional[List[str]]:
    """
    Stream selectors on the remuxed input for a stream selection.

    None means every stream of the input is kept.
    """
    if selection.map_all:
        return None
    selectors = ["v"]
    if selection.audio_language:
        selectors.append(f"a:m:language:{selection.audio_language}")
    else:
        selectors.append("a")
    if selection.subtitle_language:
        selectors.append(f"s:m:language:{selection.subtitle_language}")
    else:
        selectors.append("s?")
    return selectors


class AudioResampler:
    """Re-encodes only the audio of a container, copying every other stream."""

    def __init__(self, ffmpeg_path: Optional[str] = None, audio_codec: str = "libvorbis",
                 audio_quality: float = 6, resample_to_source_rate: bool = False):
        """
        Initializes the AudioResampler.

        Args:
            ffmpeg_path: Optional path to the ffmpeg executable.
                         If None, assumes ffmpeg is in the system PATH.
            audio_codec: Encoder used for the slowed-down audio.
            audio_quality: Value passed as -q:a to the encoder.
            resample_to_source_rate: Convert the lowered rate back to the
                                     source rate after slowing down.
        """
        self.ffmpeg_cmd = ffmpeg_path or "ffmpeg"
        self.audio_codec = audio_codec
        self.audio_quality = audio_quality
        self.resample_to_source_rate = resample_to_source_rate
        logger.info(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def build_command(self, input_path: str, output_path: str, source_rate: float,
                      factor: CorrectionFactor, selection: StreamSelection):
        """Returns the ffmpeg-python output stream; call .get_args() to inspect it."""
        new_rate = target_sample_rate(source_rate, factor)
        audio_filter = f"asetrate={new_rate}"
        if self.resample_to_source_rate:
            audio_filter += f",aresample={int(round(source_rate))}"

        output_options = {
            "filter:a": audio_filter,
            "c:v": "copy",
            "c:s": "copy",
            "c:a": self.audio_codec,
            "q:a": self.audio_quality,
            "max_interleave_delta": 0,
        }
        source = ffmpeg.input(input_path)
        selectors = stream_selectors(selection)
        if selectors is None:
            # a lone input stream gets no -map from ffmpeg-python
            streams = [source]
            output_options["map"] = "0"
        else:
            streams = [source[selector] for selector in selectors]
        return (
            ffmpeg
            .output(*streams, output_path, **output_options)
            .overwrite_output()
        )

    def resample(self, input_path: str, output_path: str, source_rate: float,
                 factor: CorrectionFactor, selection: StreamSelection) -> str:
        """
        Writes output_path with audio slowed by the factor's inverse.

        ffmpeg is killed if the wait is interrupted, so it never outlives the run.

        Raises:
            FileNotFoundError: If the input container does not exist.
            ExternalToolFailure: If ffmpeg fails.
        """
        if not os.path.exists(input_path):
            raise FileNotFoundError(f"Input container not found: {input_path}")

        stream = self.build_command(input_path, output_path, source_rate, factor, selection)
        logger.info(f"Running ffmpeg: audio {source_rate:g} Hz -> {target_sample_rate(source_rate, factor)} Hz, "
                    f"writing {output_path}...")
        try:
            process = stream.run_async(cmd=self.ffmpeg_cmd, pipe_stdout=True, pipe_stderr=True)
        except OSError as e:
            raise ExternalToolFailure("ffmpeg", f"could not be started: {e}") from e

        try:
            _, stderr = process.communicate()
        except BaseException:
            logger.warning("Stopping ffmpeg...")
            process.kill()
            process.wait()
            self._discard_partial(output_path)
            raise

        if process.returncode != 0:
            stderr_output = stderr.decode("utf-8", errors="replace") if stderr else "No stderr output"
            logger.error(f"ffmpeg exited with code {process.returncode}, stderr: {stderr_output}")
            self._discard_partial(output_path)
            last_line = stderr_output.strip().splitlines()[-1] if stderr_output.strip() else "unknown error"
            raise ExternalToolFailure("ffmpeg", last_line, returncode=process.returncode, stderr=stderr_output)
        logger.info(f"Successfully wrote: {output_path}")
        return output_path

    def _discard_partial(self, output_path: str) -> None:
        if os.path.exists(output_path):
            try:
                os.remove(output_path)
            except OSError:
                logger.warning(f"Could not clean up partially written file: {output_path}")
