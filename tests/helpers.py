from glassdeck.models import SubtitleEntry


class RecordingDisplay:
    """Stands in for the glasses bridge and keeps every text wall pushed."""

    def __init__(self):
        self.walls = []

    async def show_text_wall(self, session_id, text, view="main", duration_ms=None):
        self.walls.append((session_id, text, view))

    def texts(self, view=None):
        return [text for _, text, v in self.walls if view is None or v == view]


def make_track(*starts):
    return [
        SubtitleEntry(index=i + 1, start_time=start, end_time=start + 4.0, text=f"line {i + 1}")
        for i, start in enumerate(starts)
    ]
