"""Classifies container tracks and reads the attributes the pipeline needs."""

import logging
from typing import Iterable, List, Optional

import ffmpeg

from .exceptions import ExternalToolFailure, MissingTrackAttribute
from .mkvtoolnix import MkvToolNix
from .models import ContainerInfo, StreamSelection, TrackDescriptor, TrackKind

logger = logging.getLogger(__name__)

_KINDS = {kind.value: kind for kind in TrackKind}


class TrackClassifier:
    """Enumerates tracks via mkvmerge, whose ids are also the ones --sync expects."""

    def __init__(self, mkvtoolnix: MkvToolNix, ffprobe_path: Optional[str] = None):
        self.mkvtoolnix = mkvtoolnix
        self.ffprobe_cmd = ffprobe_path or "ffprobe"

    def inspect(self, container_path: str) -> ContainerInfo:
        """
        Lists the video, audio and subtitle tracks of a container.

        Args:
            container_path: Path to the Matroska file.

        Returns:
            A ContainerInfo with the tracks in container order and whether
            any chapter entries exist.

        Raises:
            ExternalToolFailure: If mkvmerge cannot identify the file.
        """
        identification = self.mkvtoolnix.identify(container_path)
        tracks = []
        for raw in identification.get("tracks") or []:
            kind = _KINDS.get(raw.get("type"))
            if kind is None:
                logger.debug(f"Ignoring track {raw.get('id')} of type {raw.get('type')!r}")
                continue
            properties = raw.get("properties") or {}
            sample_rate = properties.get("audio_sampling_frequency")
            tracks.append(TrackDescriptor(
                track_id=int(raw["id"]),
                kind=kind,
                language=properties.get("language"),
                sample_rate=float(sample_rate) if sample_rate else None,
                codec=raw.get("codec"),
            ))

        has_chapters = any((entry or {}).get("num_entries", 1) > 0
                           for entry in identification.get("chapters") or [])
        logger.info(f"{container_path}: {len(tracks)} track(s), chapters {'present' if has_chapters else 'absent'}")
        return ContainerInfo(tracks=tracks, has_chapters=has_chapters)

    def primary_sample_rate(self, info: ContainerInfo, container_path: str) -> float:
        """
        Returns the sampling frequency of the first audio track.

        Falls back to ffprobe when mkvmerge does not report one.

        Raises:
            MissingTrackAttribute: If no audio track or no sample rate is found.
        """
        audio_tracks = info.tracks_of(TrackKind.AUDIO)
        if not audio_tracks:
            raise MissingTrackAttribute(f"No audio track found in {container_path}")

        rates = {track.sample_rate for track in audio_tracks if track.sample_rate}
        if len(rates) > 1:
            logger.warning(f"Audio tracks have different sample rates {sorted(rates)}; using the first track's.")

        rate = audio_tracks[0].sample_rate or self._probe_sample_rate(container_path)
        if not rate:
            raise MissingTrackAttribute(f"Could not determine the audio sample rate of {container_path}")
        logger.info(f"Audio sample rate: {rate:g} Hz")
        return rate

    def _probe_sample_rate(self, container_path: str) -> Optional[float]:
        logger.info(f"mkvmerge reported no sample rate; probing {container_path} with ffprobe")
        try:
            probe = ffmpeg.probe(container_path, cmd=self.ffprobe_cmd, select_streams="a")
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode("utf-8", errors="replace") if e.stderr else "No stderr output"
            raise ExternalToolFailure("ffprobe", stderr_output, stderr=stderr_output) from e
        for stream in probe.get("streams") or []:
            if stream.get("sample_rate"):
                return float(stream["sample_rate"])
        return None


def _matching(tracks: Iterable[TrackDescriptor], language: str) -> List[TrackDescriptor]:
    return [track for track in tracks if track.language == language]


def select_streams(tracks: List[TrackDescriptor], language: Optional[str]) -> StreamSelection:
    """
    Decides which audio and subtitle streams to keep for a language filter.

    A kind with no track in the requested language keeps all of its tracks,
    so a filter that matches nothing never empties a stream type.
    """
    if not language:
        return StreamSelection(map_all=True)

    audio = [track for track in tracks if track.kind == TrackKind.AUDIO]
    subtitles = [track for track in tracks if track.kind == TrackKind.SUBTITLE]
    audio_language = language if _matching(audio, language) else None
    subtitle_language = language if _matching(subtitles, language) else None
    if audio and audio_language is None:
        logger.warning(f"No audio track in language '{language}'; keeping all audio tracks.")
    if subtitles and subtitle_language is None:
        logger.warning(f"No subtitle track in language '{language}'; keeping all subtitle tracks.")
    return StreamSelection(map_all=False, audio_language=audio_language, subtitle_language=subtitle_language)
