import re
import textwrap
from typing import Iterable, List, Tuple

from .base import BaseParser, RawBlock

DIRECTIVE_RE = re.compile(r"^([ \t]*)\.\.\s+(?:code-block|code|sourcecode)::\s*([\w-]+)\s*$")
OPTION_RE = re.compile(r"^\s+:[\w-]+:")


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


class RstParser(BaseParser):
    """Finds `.. code-block::` style directives in reStructuredText documents.

    The directive body is every following line indented deeper than the
    directive itself (blank lines included). Option lines such as
    `:linenos:` are skipped and the body is dedented.
    """

    def iter_blocks(self, text: str) -> Iterable[RawBlock]:
        lines = self._lines_with_offsets(text)
        index = 0
        while index < len(lines):
            offset, line = lines[index]
            match = DIRECTIVE_RE.match(line.rstrip("\r\n"))
            if not match:
                index += 1
                continue

            directive_indent = len(match.group(1))
            label = match.group(2).lower()
            index += 1

            body_lines = []
            end = offset + len(line.rstrip("\r\n"))
            options_done = False
            while index < len(lines):
                line_offset, body_line = lines[index]
                content = body_line.rstrip("\r\n")
                if content.strip() and _indent_of(content) <= directive_indent:
                    break
                if not options_done and OPTION_RE.match(content):
                    index += 1
                    continue
                if content.strip():
                    options_done = True
                    end = line_offset + len(content)
                body_lines.append(content)
                index += 1

            while body_lines and not body_lines[-1].strip():
                body_lines.pop()

            yield RawBlock(
                label=label,
                body=textwrap.dedent("\n".join(body_lines)).strip("\n"),
                start=offset + directive_indent,
                end=end,
            )

    @staticmethod
    def _lines_with_offsets(text: str) -> List[Tuple[int, str]]:
        result = []
        offset = 0
        for line in text.splitlines(keepends=True):
            result.append((offset, line))
            offset += len(line)
        return result
