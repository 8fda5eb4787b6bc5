"""Parsing, formatting and rescaling of HH:MM:SS.mmm timecodes."""

import re

from .exceptions import MalformedTimecode, NegativeDuration
from .models import CorrectionFactor, RoundingMode

TIMECODE_PATTERN = r"\d{2}:\d{2}:\d{2}[.,]\d{3}"

_STRICT_RE = re.compile(r"(\d{2}):(\d{2}):(\d{2})([.,])(\d{3})")


def parse(text: str) -> int:
    """
    Converts a timecode such as '01:02:03.456' into milliseconds.

    Args:
        text: The timecode. A comma may replace the dot (SRT style).

    Returns:
        The non-negative millisecond count.

    Raises:
        MalformedTimecode: If the text is not a well-formed timecode or
                           minutes/seconds are out of range.
    """
    match = _STRICT_RE.fullmatch(text)
    if match is None:
        raise MalformedTimecode(f"Not a timecode: {text!r}")
    hrs, mins, secs, _, ms = match.groups()
    if int(mins) >= 60 or int(secs) >= 60:
        raise MalformedTimecode(f"Timecode field out of range: {text!r}")
    return int(hrs) * 3600000 + int(mins) * 60000 + int(secs) * 1000 + int(ms)


def format_timecode(milliseconds: int, separator: str = ".") -> str:
    """Formats milliseconds as HH:MM:SS.mmm. Hours grow past two digits if needed."""
    if milliseconds < 0:
        raise NegativeDuration(f"Cannot format a negative duration: {milliseconds}")
    hrs, rest = divmod(milliseconds, 3600000)
    mins, rest = divmod(rest, 60000)
    secs, ms = divmod(rest, 1000)
    return f"{hrs:02d}:{mins:02d}:{secs:02d}{separator}{ms:03d}"


def rescale_ms(milliseconds: int, factor: CorrectionFactor,
               rounding: RoundingMode = RoundingMode.HALF_UP) -> int:
    """Multiplies milliseconds by the factor using exact integer arithmetic."""
    quotient, remainder = divmod(milliseconds * factor.numerator, factor.denominator)
    if rounding == RoundingMode.HALF_UP and 2 * remainder >= factor.denominator:
        quotient += 1
    return quotient
