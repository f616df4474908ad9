"""Tests for transcript.py - caption parsing and range lookup."""

import pytest

from framenote.transcript import TranscriptIndex, parse_timestamp, parse_vtt, srt_to_vtt


class TestTimestamps:
    """Tests for cue timestamp parsing."""

    def test_formats(self):
        assert parse_timestamp("01:02:03.500") == pytest.approx(3723.5)
        assert parse_timestamp("02:03.250") == pytest.approx(123.25)
        assert parse_timestamp("7.5") == pytest.approx(7.5)

    def test_cue_settings_ignored(self):
        assert parse_timestamp(" 00:00:04.500 align:start position:10%") == pytest.approx(4.5)

    def test_srt_comma(self):
        assert parse_timestamp("00:00:01,250") == pytest.approx(1.25)


class TestParsing:
    """Tests for cue extraction."""

    def test_vtt(self, sample_vtt):
        """Markup is stripped and empty cues dropped."""
        cues = parse_vtt(sample_vtt)
        assert [c.text for c in cues] == [
            "Welcome to the demo.",
            "Today we look at timelines.",
            "Thanks for watching!",
        ]
        assert cues[2].start == pytest.approx(65.25)

    def test_srt_conversion(self, sample_srt):
        converted = srt_to_vtt(sample_srt)
        assert converted.startswith("WEBVTT")
        assert "00:00:01.000 --> 00:00:04.000" in converted

    def test_from_file_by_suffix(self, temp_dir, sample_srt, sample_vtt):
        srt_path = temp_dir / "talk.srt"
        srt_path.write_text(sample_srt, encoding="utf-8")
        vtt_path = temp_dir / "talk.vtt"
        vtt_path.write_text(sample_vtt, encoding="utf-8")

        assert len(TranscriptIndex.from_file(srt_path)) == 2
        assert len(TranscriptIndex.from_file(vtt_path)) == 3


class TestQueries:
    """Tests for time-range lookups."""

    def test_text_for_range_overlap(self, sample_vtt):
        index = TranscriptIndex.from_text(sample_vtt)
        assert index.text_for_range(3.0, 5.0) == "Welcome to the demo. Today we look at timelines."
        assert index.text_for_range(20.0, 30.0) == ""

    def test_full_text(self, sample_vtt):
        index = TranscriptIndex.from_text(sample_vtt)
        assert index.full_text().endswith("Thanks for watching!")

    def test_cue_at(self, sample_vtt):
        index = TranscriptIndex.from_text(sample_vtt)
        assert index.cue_at(5.0).text == "Today we look at timelines."
        assert index.cue_at(30.0) is None
