"""Data models for palfix."""

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import List, Optional

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class CorrectionFactor:
    """
    Ratio of the encoded frame rate to the true frame rate.

    Timestamps are multiplied by this ratio; audio rates by its inverse.
    """
    numerator: int = 25025
    denominator: int = 24000

    def __post_init__(self):
        if not isinstance(self.numerator, int) or not isinstance(self.denominator, int):
            raise ConfigurationError(f"Correction factor terms must be integers: {self.numerator!r}/{self.denominator!r}")
        if self.denominator <= 0 or self.numerator <= 0:
            raise ConfigurationError(f"Correction factor terms must be positive: {self}")
        if self.numerator <= self.denominator:
            raise ConfigurationError(f"Correction factor must slow playback down (numerator > denominator): {self}")

    @classmethod
    def parse(cls, text: str) -> "CorrectionFactor":
        """Parses a factor written as 'N/D', e.g. '25025/24000'."""
        parts = str(text).strip().split("/")
        if len(parts) != 2:
            raise ConfigurationError(f"Correction factor must look like 'N/D', got: {text!r}")
        try:
            numerator, denominator = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise ConfigurationError(f"Correction factor terms must be integers, got: {text!r}") from e
        return cls(numerator, denominator)

    @property
    def ratio(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    @property
    def audio_factor(self) -> Fraction:
        """Inverse of the timing ratio, applied to audio sample rates."""
        return Fraction(self.denominator, self.numerator)

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


class RoundingMode(str, Enum):
    HALF_UP = "half_up"
    TRUNCATE = "truncate"


class TrackKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitles"


@dataclass(frozen=True)
class TrackDescriptor:
    """A single track as reported by the container inspector."""
    track_id: int
    kind: TrackKind
    language: Optional[str] = None
    sample_rate: Optional[float] = None
    codec: Optional[str] = None


@dataclass(frozen=True)
class ContainerInfo:
    tracks: List[TrackDescriptor] = field(default_factory=list)
    has_chapters: bool = False

    def tracks_of(self, kind: TrackKind) -> List[TrackDescriptor]:
        return [track for track in self.tracks if track.kind == kind]


@dataclass(frozen=True)
class SyncDirective:
    """Retimes one track's clock at mux time without touching its payload."""
    track_id: int
    factor: CorrectionFactor

    def as_argument(self) -> str:
        # mkvmerge --sync TID:d,o/p  (delay 0, linear factor o/p)
        return f"{self.track_id}:0,{self.factor.numerator}/{self.factor.denominator}"


SyncPlan = List[SyncDirective]


@dataclass(frozen=True)
class StreamSelection:
    """Which streams of the intermediate container end up in the final output."""
    map_all: bool = True
    audio_language: Optional[str] = None
    subtitle_language: Optional[str] = None


class PipelineState(str, Enum):
    INIT = "init"
    CONFIRM_OVERWRITE = "confirm_overwrite"
    EXTRACT_CHAPTERS = "extract_chapters"
    RESCALE_CHAPTERS = "rescale_chapters"
    COMPUTE_SYNC_PLAN = "compute_sync_plan"
    REMUX = "remux"
    RESAMPLE_AUDIO = "resample_audio"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class PipelineRun:
    """Mutable state of one input -> output conversion."""
    input_path: str
    output_path: str
    workspace: Optional[str] = None
    state: PipelineState = PipelineState.INIT
    has_chapters: bool = False
    chapter_file: Optional[str] = None
    sync_plan: SyncPlan = field(default_factory=list)
    audio_sample_rate: Optional[float] = None
    selection: Optional[StreamSelection] = None
    intermediate_path: Optional[str] = None
    failed_stage: Optional[PipelineState] = None


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass
class ConversionOutcome:
    input_path: str
    output_path: str
    status: OutcomeStatus
    stage: Optional[PipelineState] = None
    message: str = ""


@dataclass
class BatchSummary:
    outcomes: List[ConversionOutcome] = field(default_factory=list)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)
