import re
from typing import List

# The glasses font covers printable ASCII, kana and CJK ideographs only
_UNDISPLAYABLE = re.compile(r"[^\x20-\x7E\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF\n]")


def clean_for_display(text: str) -> str:
    return _UNDISPLAYABLE.sub("", text).strip()


class TextPager:
    """Greedy paragraph pagination for the glasses text wall."""

    def __init__(self, text: str, max_chars: int = 150):
        self.max_chars = max_chars
        self.current = 0
        self.pages = self._split(text)

    def _split(self, text: str) -> List[str]:
        if not text or not text.strip():
            return [""]

        pages: List[str] = []
        current = ""
        clean = text.replace("\r\n", "\n").replace("\r", "\n").strip()

        for raw in clean.split("\n"):
            paragraph = raw.strip()
            if not paragraph:
                if current:
                    current += "\n"
                continue

            if len(current + paragraph) <= self.max_chars:
                if current:
                    current += "\n"
                current += paragraph
                continue

            if current:
                pages.append(current.strip())
                current = ""

            remaining = paragraph
            while remaining:
                if len(remaining) <= self.max_chars:
                    current = remaining
                    remaining = ""
                else:
                    split_at = self.max_chars
                    # Prefer a word boundary unless it would leave a short page
                    last_space = remaining.rfind(" ", 0, self.max_chars + 1)
                    if last_space > self.max_chars * 0.7:
                        split_at = last_space
                    pages.append(remaining[:split_at].strip())
                    remaining = remaining[split_at:].strip()

        if current:
            pages.append(current.strip())
        return pages or [""]

    def current_page(self) -> str:
        return self.pages[self.current]

    def next_page(self) -> bool:
        if self.current < len(self.pages) - 1:
            self.current += 1
            return True
        return False

    def prev_page(self) -> bool:
        if self.current > 0:
            self.current -= 1
            return True
        return False

    @property
    def page_number(self) -> int:
        return self.current + 1

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def page_info(self) -> str:
        return f"{self.page_number}/{self.total_pages}"

    def display_text(self) -> str:
        return f"{clean_for_display(self.current_page())}\n\n{self.page_info}"


_HEADING_RULES = {1: "=" * 23, 2: "-" * 23}


def format_markdown(text: str) -> str:
    """Flatten markdown into plain text that reads well on the glasses."""
    stash: List[str] = []

    def keep(match):
        stash.append(match.group(0))
        return f"\x00{len(stash) - 1}\x00"

    # Code is left untouched
    out = re.sub(r"```[\s\S]*?```", keep, text)
    out = re.sub(r"`[^`]+`", keep, out)

    def heading(match):
        rule = _HEADING_RULES.get(len(match.group(1)), "~" * 23)
        return f"\n{rule}\n{match.group(2).strip()}\n{rule}\n"

    out = re.sub(r"^(#{1,6})\s+(.+)$", heading, out, flags=re.M)
    out = re.sub(r"!\[([^\]]*)\]\([^)]+\)", r"[image: \1]", out)
    out = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r"\1 (\2)", out)
    out = re.sub(r"^[-*]{3,}$", "", out, flags=re.M)
    out = re.sub(r"^(\s*)[-*]\s+(.+)$", r"\1- \2", out, flags=re.M)
    out = re.sub(r"^(\s*)\d+\.\s+(.+)$", r"\1\2", out, flags=re.M)
    out = re.sub(r"\*\*(.+?)\*\*|__(.+?)__", lambda m: m.group(1) or m.group(2), out)
    out = re.sub(r"(?<![\w*])\*(?!\s)(.+?)\*|(?<!\w)_(?!\s)(.+?)_(?!\w)", lambda m: m.group(1) or m.group(2), out)
    out = re.sub(r"~~(.+?)~~", r"\1", out)
    out = re.sub(r"^>\s+(.+)$", r'"\1"', out, flags=re.M)

    def table_row(match):
        content = match.group(1)
        if re.fullmatch(r"[\s|:-]+", content):
            return ""
        return " | ".join(cell.strip() for cell in content.split("|") if cell.strip())

    out = re.sub(r"^\|(.+)\|$", table_row, out, flags=re.M)
    out = re.sub(r"\x00(\d+)\x00", lambda m: stash[int(m.group(1))], out)
    out = re.sub(r"\n{4,}", "\n\n\n", out)
    return out.strip()
