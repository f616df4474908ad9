"""Caption track parsing and time-range lookup (WebVTT, SRT)."""

import bisect
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .logging import get_logger

logger = get_logger(__name__)

TAG_RE = re.compile(r"<[^>]*>")
SRT_TIME_RE = re.compile(r"(\d{2}:\d{2}:\d{2}),(\d{3})")


@dataclass(frozen=True)
class TranscriptCue:
    start: float
    end: float
    text: str


def parse_timestamp(timestamp: str) -> float:
    """
    Parse a cue timestamp to seconds.

    Supports HH:MM:SS.mmm, MM:SS.mmm and SS.mmm. Cue settings after the
    timestamp (``align:start`` etc.) are ignored.
    """
    timestamp = timestamp.strip().split()[0] if timestamp.strip() else "0"
    parts = timestamp.split(":")
    hours = minutes = 0
    if len(parts) == 3:
        hours = int(parts[0])
        minutes = int(parts[1])
    elif len(parts) == 2:
        minutes = int(parts[0])
    seconds = float(parts[-1].replace(",", "."))
    return hours * 3600 + minutes * 60 + seconds


def srt_to_vtt(content: str) -> str:
    """Convert SubRip content to WebVTT by fixing the millisecond separator."""
    return "WEBVTT\n\n" + SRT_TIME_RE.sub(r"\1.\2", content)


def parse_vtt(content: str) -> List[TranscriptCue]:
    """Parse WebVTT content into cues, dropping blocks without text."""
    cues = []
    content = content.replace("\r\n", "\n")

    for block in re.split(r"\n\s*\n", content):
        lines = block.strip().split("\n")
        if len(lines) < 2 or "WEBVTT" in lines[0]:
            continue

        timing_idx = next((i for i, line in enumerate(lines) if "-->" in line), None)
        if timing_idx is None:
            continue

        start_str, end_str = lines[timing_idx].split("-->", 1)
        try:
            start = parse_timestamp(start_str)
            end = parse_timestamp(end_str)
        except ValueError:
            logger.debug("Skipping cue with bad timing: %s", lines[timing_idx])
            continue

        text = TAG_RE.sub("", " ".join(lines[timing_idx + 1:])).strip()
        if text:
            cues.append(TranscriptCue(start, end, text))

    return cues


class TranscriptIndex:
    """Time-ordered cues with overlap queries."""

    def __init__(self, cues: List[TranscriptCue]):
        self.cues = sorted(cues, key=lambda c: (c.start, c.end))
        self._starts = [c.start for c in self.cues]

    def __len__(self) -> int:
        return len(self.cues)

    @classmethod
    def from_text(cls, content: str, srt: bool = False) -> "TranscriptIndex":
        if srt:
            content = srt_to_vtt(content)
        return cls(parse_vtt(content))

    @classmethod
    def from_file(cls, path: Path) -> "TranscriptIndex":
        """Load a .vtt file, or an .srt file converted on the fly."""
        path = Path(path)
        content = path.read_text(encoding="utf-8-sig")
        index = cls.from_text(content, srt=path.suffix.lower() != ".vtt")
        logger.info("Loaded %d caption cues from %s", len(index), path.name)
        return index

    def cues_for_range(self, start: float, end: float) -> List[TranscriptCue]:
        """Cues overlapping ``[start, end]`` at all."""
        hi = bisect.bisect_left(self._starts, end)
        return [c for c in self.cues[:hi] if c.end > start]

    def text_for_range(self, start: float, end: float) -> str:
        return " ".join(c.text for c in self.cues_for_range(start, end)).strip()

    def full_text(self) -> str:
        return " ".join(c.text for c in self.cues).strip()

    def cue_at(self, t: float) -> Optional[TranscriptCue]:
        """Latest-starting cue active at ``t``."""
        hi = bisect.bisect_right(self._starts, t)
        for cue in reversed(self.cues[:hi]):
            if cue.end >= t:
                return cue
        return None
