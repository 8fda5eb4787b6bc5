"""Builds the per-track mkvmerge --sync directives."""

from typing import Iterable, List

from .models import CorrectionFactor, SyncDirective, SyncPlan, TrackDescriptor, TrackKind


def build_sync_plan(tracks: Iterable[TrackDescriptor], factor: CorrectionFactor) -> SyncPlan:
    """
    Emits one directive per non-audio track.

    Audio is left alone here: it needs real resampling, which happens in the
    transcode step. Track ids are used exactly as the classifier reported them.
    """
    return [SyncDirective(track.track_id, factor) for track in tracks if track.kind != TrackKind.AUDIO]


def sync_arguments(plan: SyncPlan) -> List[str]:
    args: List[str] = []
    for directive in plan:
        args += ["--sync", directive.as_argument()]
    return args
