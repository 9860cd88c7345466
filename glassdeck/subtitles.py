import logging
import re
from pathlib import Path
from typing import Dict, List, Optional
from .errors import ValidationFailure
from .models import SubtitleEntry

logger = logging.getLogger(__name__)

_TIMECODE = re.compile(
    r"(\d{2}):(\d{2}):(\d{2}),(\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2}),(\d{3})"
)
_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")


def _seconds(h: str, m: str, s: str, ms: str) -> float:
    return int(h) * 3600 + int(m) * 60 + int(s) + int(ms) / 1000


def parse_srt(content: str) -> List[SubtitleEntry]:
    """Parse SRT text. Malformed blocks are skipped; output is sorted by start time."""
    entries: List[SubtitleEntry] = []
    content = content.replace("\r\n", "\n").lstrip("\ufeff")

    for block in _BLOCK_SEPARATOR.split(content.strip()):
        lines = block.strip().split("\n")
        if len(lines) < 3:
            continue
        try:
            index = int(lines[0].strip())
        except ValueError:
            continue
        match = _TIMECODE.search(lines[1])
        if not match:
            continue

        text = " ".join(lines[2:]).strip()
        if text:
            entries.append(SubtitleEntry(
                index=index,
                start_time=_seconds(*match.groups()[:4]),
                end_time=_seconds(*match.groups()[4:]),
                text=text,
            ))

    return sorted(entries, key=lambda e: e.start_time)


class SubtitleCache:
    """Parsed tracks keyed by media item id; parsed once per process."""

    def __init__(self):
        self._tracks: Dict[str, List[SubtitleEntry]] = {}

    def get(self, media_id: str) -> Optional[List[SubtitleEntry]]:
        return self._tracks.get(media_id)

    def put(self, media_id: str, track: List[SubtitleEntry]):
        self._tracks[media_id] = track

    def load(self, media_id: str, srt_path: Path) -> List[SubtitleEntry]:
        track = self._tracks.get(media_id)
        if track is not None:
            logger.debug(f"Subtitles for {media_id} served from cache ({len(track)} entries)")
            return track

        try:
            content = srt_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ValidationFailure(f"Subtitle file {srt_path.name} is not valid UTF-8") from e
        track = parse_srt(content)
        self._tracks[media_id] = track
        logger.info(f"Parsed {len(track)} subtitles for {media_id}")
        return track

    def __len__(self):
        return len(self._tracks)
