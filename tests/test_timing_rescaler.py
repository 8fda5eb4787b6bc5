import pytest

from palfix.exceptions import MalformedTimecode
from palfix.models import RoundingMode
from palfix.timing_rescaler import rescale_file, rescale_line, rescale_lines

from conftest import CHAPTERS_XML


def test_line_without_timecode_is_unchanged(factor):
    line = "  <ChapterString>Intro 12:30</ChapterString>\n"
    assert rescale_line(line, factor) == line


def test_each_timecode_on_a_line_is_rescaled(factor):
    assert rescale_line("00:00:01.000 --> 00:00:02.000\n", factor) == "00:00:01.043 --> 00:00:02.085\n"


def test_truncating_mode(factor):
    assert rescale_line("00:00:01.000 --> 00:00:02.000", factor, RoundingMode.TRUNCATE) == "00:00:01.042 --> 00:00:02.085"


def test_surrounding_markup_is_preserved(factor):
    line = '<ChapterTimeStart attr="x">00:10:00.000000000</ChapterTimeStart>\r\n'
    # 600000 ms * 25025/24000 = 625625 ms; sub-millisecond digits stay as they were
    assert rescale_line(line, factor) == '<ChapterTimeStart attr="x">00:10:25.625000000</ChapterTimeStart>\r\n'


def test_srt_separator_is_kept(factor):
    assert rescale_line("00:00:01,000 --> 00:00:02,000", factor) == "00:00:01,043 --> 00:00:02,085"


def test_timecode_inside_longer_number_is_ignored(factor):
    line = "id 100:00:00.000"
    assert rescale_line(line, factor) == line


def test_invalid_field_values_raise(factor):
    with pytest.raises(MalformedTimecode):
        rescale_line("<ChapterTimeStart>99:99:99.999</ChapterTimeStart>", factor)


def test_rescale_lines_streams_in_order(factor):
    lines = iter(["a\n", "00:00:00.000\n", "\n", "b"])
    assert list(rescale_lines(lines, factor)) == ["a\n", "00:00:00.000\n", "\n", "b"]


def test_rescale_lines_reports_line_number(factor):
    with pytest.raises(MalformedTimecode, match="Line 2"):
        list(rescale_lines(["ok\n", "00:61:00.000\n"], factor))


def test_rescale_file(tmp_path, factor):
    source = tmp_path / "old.xml"
    target = tmp_path / "new.xml"
    source.write_text(CHAPTERS_XML, encoding="utf-8")

    assert rescale_file(str(source), str(target), factor) == str(target)

    result = target.read_text(encoding="utf-8")
    assert "<ChapterTimeStart>00:00:00.000000000</ChapterTimeStart>" in result
    assert "<ChapterTimeStart>00:10:25.625000000</ChapterTimeStart>" in result
    assert result.replace("00:10:25.625", "00:10:00.000") == CHAPTERS_XML


def test_rescale_file_preserves_bytes(tmp_path, factor):
    source = tmp_path / "old.srt"
    target = tmp_path / "new.srt"
    source.write_bytes(b"1\r\n00:00:01,000 --> 00:00:02,000\r\ncaf\xe9 \xff\r\n")

    rescale_file(str(source), str(target), factor)

    assert target.read_bytes() == b"1\r\n00:00:01,043 --> 00:00:02,085\r\ncaf\xe9 \xff\r\n"


def test_empty_document(tmp_path, factor):
    source = tmp_path / "empty.xml"
    target = tmp_path / "out.xml"
    source.write_bytes(b"")

    rescale_file(str(source), str(target), factor)

    assert target.read_bytes() == b""


def test_malformed_document_leaves_no_output(tmp_path, factor):
    source = tmp_path / "bad.xml"
    target = tmp_path / "out.xml"
    source.write_text("00:00:01.000\n99:99:99.999\n", encoding="utf-8")

    with pytest.raises(MalformedTimecode):
        rescale_file(str(source), str(target), factor)

    assert not target.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["bad.xml"]
