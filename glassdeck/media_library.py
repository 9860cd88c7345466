import logging
import re
from pathlib import Path
from typing import List
from .errors import ResourceNotFound
from .models import AudioFile

logger = logging.getLogger(__name__)

_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")
# Media ids are file stems; they must never walk out of the source directory
_SAFE_ID = re.compile(r"^[^/\\\x00]+$")


class MediaLibrary:
    """Read-only view of AUDIO_SOURCE_DIR: .wav files that have a companion .srt."""

    def __init__(self, source_dir: str):
        self.root = Path(source_dir) if source_dir else None

    @property
    def available(self) -> bool:
        return self.root is not None and self.root.is_dir()

    def list_files(self) -> List[AudioFile]:
        if not self.available:
            logger.info("AUDIO_SOURCE_DIR is not set or missing, no audio files listed")
            return []

        files = []
        for wav in self.root.iterdir():
            if wav.suffix.lower() != ".wav" or not wav.with_suffix(".srt").exists():
                continue
            match = _DATE_PREFIX.match(wav.stem)
            date = match.group(1) if match else ""
            title = wav.stem[len(date):].strip(" _-") if date else wav.stem
            files.append(AudioFile(id=wav.stem, name=wav.name, date=date, month=date[:7], title=title))

        # Newest first, undated last
        files.sort(key=lambda f: (f.date, f.name), reverse=True)
        return files

    def months(self, files: List[AudioFile]) -> List[str]:
        return sorted({f.month for f in files if f.month}, reverse=True)

    def _resolve(self, media_id: str, suffix: str) -> Path:
        if not self.available:
            raise ResourceNotFound("AUDIO_SOURCE_DIR is not configured")
        if not _SAFE_ID.match(media_id) or media_id in (".", ".."):
            raise ResourceNotFound(f"Unknown media item: {media_id}")
        path = self.root / f"{media_id}{suffix}"
        if not path.is_file():
            raise ResourceNotFound(f"Media file not found: {path.name}")
        return path

    def audio_path(self, media_id: str) -> Path:
        return self._resolve(media_id, ".wav")

    def subtitle_path(self, media_id: str) -> Path:
        return self._resolve(media_id, ".srt")
