import re
from typing import Iterable

from .base import BaseParser, RawBlock

FENCE_RE = re.compile(r"^```[ \t]*([\w-]+)[ \t]*\r?\n(.*?)^```", re.MULTILINE | re.DOTALL)


class MarkdownParser(BaseParser):
    """Finds triple-backtick fenced blocks in Markdown documents."""

    def iter_blocks(self, text: str) -> Iterable[RawBlock]:
        for match in FENCE_RE.finditer(text):
            yield RawBlock(
                label=match.group(1).lower(),
                body=match.group(2).replace("\r\n", "\n"),
                start=match.start(),
                end=match.end(),
            )
