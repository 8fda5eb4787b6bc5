"""Rescales every embedded timecode in a line-oriented timed-text document."""

import logging
import os
import re
import tempfile
from typing import Iterable, Iterator

from . import timecode
from .exceptions import FileSystemError, MalformedTimecode
from .models import CorrectionFactor, RoundingMode

logger = logging.getLogger(__name__)

# A digit directly in front would mean we are inside a longer number.
_SEARCH_RE = re.compile(r"(?<!\d)" + timecode.TIMECODE_PATTERN)


def rescale_line(line: str, factor: CorrectionFactor,
                 rounding: RoundingMode = RoundingMode.HALF_UP) -> str:
    """
    Rewrites each timecode on the line, leaving every other character as is.

    Raises:
        MalformedTimecode: If a matched timecode has out-of-range fields.
    """
    def _replace(match):
        text = match.group(0)
        separator = text[8]
        new_ms = timecode.rescale_ms(timecode.parse(text), factor, rounding)
        return timecode.format_timecode(new_ms, separator)

    return _SEARCH_RE.sub(_replace, line)


def rescale_lines(lines: Iterable[str], factor: CorrectionFactor,
                  rounding: RoundingMode = RoundingMode.HALF_UP) -> Iterator[str]:
    """Lazily rescales a stream of lines, in order."""
    for line_number, line in enumerate(lines, start=1):
        try:
            yield rescale_line(line, factor, rounding)
        except MalformedTimecode as e:
            raise MalformedTimecode(f"Line {line_number}: {e}") from e


def rescale_file(source_path: str, target_path: str, factor: CorrectionFactor,
                 rounding: RoundingMode = RoundingMode.HALF_UP) -> str:
    """
    Streams a timed-text file into a rescaled copy.

    The copy is written next to the target and moved into place only once the
    whole document was rescaled, so a malformed timecode leaves no target file.

    Args:
        source_path: The document to read (chapter XML, SRT, ASS...).
        target_path: Where the rescaled document is written.
        factor: The correction factor applied to every timecode.
        rounding: How fractional milliseconds are resolved.

    Returns:
        The target path.

    Raises:
        MalformedTimecode: If any embedded timecode cannot be parsed.
        FileSystemError: If the files cannot be read or written.
    """
    logger.info(f"Rescaling timings in {source_path} by {factor}")
    target_dir = os.path.dirname(os.path.abspath(target_path))
    try:
        fd, partial_path = tempfile.mkstemp(prefix=".rescale-", dir=target_dir)
    except OSError as e:
        raise FileSystemError(f"Could not create a file in {target_dir}: {e}") from e

    try:
        # surrogateescape + newline='' keep undecodable bytes and line endings intact
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as dst, \
                open(source_path, "r", encoding="utf-8", errors="surrogateescape", newline="") as src:
            for line in rescale_lines(src, factor, rounding):
                dst.write(line)
        os.replace(partial_path, target_path)
    except MalformedTimecode:
        logger.error(f"Malformed timecode in {source_path}; no output written.")
        _discard(partial_path)
        raise
    except OSError as e:
        _discard(partial_path)
        raise FileSystemError(f"Could not rescale {source_path} into {target_path}: {e}") from e
    except BaseException:
        _discard(partial_path)
        raise

    logger.info(f"Rescaled document written to: {target_path}")
    return target_path


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")
