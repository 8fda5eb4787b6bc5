"""
Shared fixtures for the palfix tests.

External tools (mkvmerge, mkvextract, ffmpeg) are replaced by in-process fakes
that record their calls and create the files the real tools would.
"""

import os
import signal

import pytest

from palfix.config_loader import Settings
from palfix.models import CorrectionFactor
from palfix.pal_fixer import PalFixer
from palfix.track_classifier import TrackClassifier

CHAPTERS_XML = """<?xml version="1.0"?>
<!-- <!DOCTYPE Chapters SYSTEM "matroskachapters.dtd"> -->
<Chapters>
  <EditionEntry>
    <ChapterAtom>
      <ChapterTimeStart>00:00:00.000000000</ChapterTimeStart>
      <ChapterDisplay>
        <ChapterString>Chapter 01</ChapterString>
      </ChapterDisplay>
    </ChapterAtom>
    <ChapterAtom>
      <ChapterTimeStart>00:10:00.000000000</ChapterTimeStart>
      <ChapterDisplay>
        <ChapterString>Chapter 02</ChapterString>
      </ChapterDisplay>
    </ChapterAtom>
  </EditionEntry>
</Chapters>
"""


def identification(chapters=True, sample_rate=48000):
    """A trimmed-down `mkvmerge -J` result."""
    audio_properties = {"language": "eng"}
    if sample_rate is not None:
        audio_properties["audio_sampling_frequency"] = sample_rate
    return {
        "chapters": [{"num_entries": 2}] if chapters else [],
        "tracks": [
            {"id": 0, "type": "video", "codec": "AVC/H.264/MPEG-4p10", "properties": {"language": "und"}},
            {"id": 1, "type": "audio", "codec": "AC-3", "properties": audio_properties},
            {"id": 2, "type": "audio", "codec": "AC-3",
             "properties": {"language": "ger", "audio_sampling_frequency": 48000}},
            {"id": 3, "type": "subtitles", "codec": "SubRip/SRT", "properties": {"language": "eng"}},
        ],
    }


class FakeMkvToolNix:
    def __init__(self, identify_result=None, chapters_xml=CHAPTERS_XML, fail_on=None):
        self.identify_result = identify_result if identify_result is not None else identification()
        self.chapters_xml = chapters_xml
        self.fail_on = fail_on
        self.calls = []
        self.workspaces = []

    def _maybe_fail(self, name):
        if self.fail_on == name:
            from palfix.exceptions import ExternalToolFailure
            raise ExternalToolFailure("mkvmerge", "simulated failure", returncode=2)
        if self.fail_on == name + ":interrupt":
            raise KeyboardInterrupt()
        if self.fail_on == name + ":sigterm":
            os.kill(os.getpid(), signal.SIGTERM)

    def identify(self, container_path):
        self.calls.append(("identify", container_path))
        self._maybe_fail("identify")
        return self.identify_result

    def extract_chapters(self, container_path, chapter_path):
        self.calls.append(("extract_chapters", container_path, chapter_path))
        self.workspaces.append(os.path.dirname(chapter_path))
        self._maybe_fail("extract_chapters")
        with open(chapter_path, "w", encoding="utf-8", newline="") as f:
            f.write(self.chapters_xml)
        return chapter_path

    def remux(self, container_path, output_path, sync_plan, chapter_path=None):
        self.calls.append(("remux", container_path, output_path, list(sync_plan), chapter_path))
        self.workspaces.append(os.path.dirname(output_path))
        self._maybe_fail("remux")
        with open(output_path, "wb") as f:
            f.write(b"remuxed")
        return output_path


class FakeResampler:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def resample(self, input_path, output_path, source_rate, factor, selection):
        self.calls.append((input_path, output_path, source_rate, factor, selection))
        if self.fail:
            from palfix.exceptions import ExternalToolFailure
            raise ExternalToolFailure("ffmpeg", "simulated failure")
        with open(input_path, "rb") as src, open(output_path, "wb") as dst:
            dst.write(b"fixed:" + src.read())
        return output_path


@pytest.fixture
def factor():
    return CorrectionFactor(25025, 24000)


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def settings(workspace_root):
    return Settings(temp_dir=str(workspace_root), language="eng")


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "movie.mkv"
    path.write_bytes(b"pal movie")
    return path


@pytest.fixture
def make_fixer(settings):
    """Factory building a PalFixer around fake tools."""

    def _make(mkvtoolnix=None, resampler=None, confirm=True, fixer_settings=None):
        mkvtoolnix = mkvtoolnix or FakeMkvToolNix()
        resampler = resampler or FakeResampler()
        answers = []

        def _confirm(path):
            answers.append(path)
            return confirm

        fixer = PalFixer(
            settings=fixer_settings or settings,
            mkvtoolnix=mkvtoolnix,
            classifier=TrackClassifier(mkvtoolnix),
            resampler=resampler,
            confirm_overwrite=_confirm,
        )
        fixer.confirm_calls = answers
        return fixer

    return _make
