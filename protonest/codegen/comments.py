"""Doc comment sanitization.

rustdoc compiles and runs every fenced block in a doc comment that is
unlabeled or labeled ``rust``, and every Markdown indented code block. Doc
comments copied out of protobuf definitions routinely contain such blocks
(sample payloads, snippets in other languages, ASCII art), so left as they are
they break ``cargo test``. The functions here rewrite those comments so that
nothing is run unless it looks like a complete program.

Heuristic for "looks like a complete program": the block is unlabeled or
labeled with rustdoc test attributes only, contains ``fn main``, has balanced
brackets and contains no ``...`` placeholder. This keeps false negatives rare
(a snippet that would compile but has no ``main`` is still hidden, which is
harmless) and false positives limited to complete programs that reference
items that are not in scope.

Everything in this module is a pure function over text. Sanitization never
raises and re-sanitizing its own output changes nothing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace

from protonest.codegen.units import GeneratedUnit, RawComment, join_doc_lines

__all__ = (
    'comment_disabled',
    'sanitize_comment',
    'sanitize_unit',
)

logger = logging.getLogger(__name__)

INERT_LANGUAGE = 'text'

# Info string tokens under which rustdoc still compiles the block as Rust.
RUSTDOC_TEST_TOKENS = frozenset(
    {
        '',
        'rust',
        'no_run',
        'should_panic',
        'compile_fail',
        'test_harness',
        'standalone_crate',
        'edition2015',
        'edition2018',
        'edition2021',
        'edition2024',
    }
)

_FENCE_RE = re.compile(r'^(?P<indent>[ \t]*)(?P<marker>`{3,}|~{3,})(?P<info>.*)$')
_HEADING_RE = re.compile(r'#{1,6}(?:[ \t]|$)')
_BREAK_RE = re.compile(r'([-*_])(?:[ \t]*\1){2,}[ \t]*')
_SETEXT_RE = re.compile(r'=+[ \t]*')
_BRACKETS = {')': '(', ']': '[', '}': '{'}


@dataclass(frozen=True)
class _Fence:
    indent: str
    marker: str
    info: str

    def closes(self, line: str, base: int) -> bool:
        # Four or more columns past the base is content, not a fence.
        if _indent_width(line) - base >= 4:
            return False
        stripped = line.strip()
        char = self.marker[0]
        run = len(stripped) - len(stripped.lstrip(char))
        return run >= len(self.marker) and not stripped[run:].strip()


def _indent_width(line: str) -> int:
    width = 0
    for char in line:
        if char == ' ':
            width += 1
        elif char == '\t':
            width += 4 - width % 4
        else:
            break
    return width


def _base_indent(lines: list[str]) -> int:
    widths = [_indent_width(line) for line in lines if line.strip()]
    return min(widths) if widths else 0


def _open_fence(line: str, base: int) -> _Fence | None:
    if _indent_width(line) - base >= 4:
        return None
    match = _FENCE_RE.match(line)
    if not match:
        return None
    info = match.group('info').strip()
    # A backtick fence may not carry backticks in its info string.
    if match.group('marker')[0] == '`' and '`' in info:
        return None
    return _Fence(match.group('indent'), match.group('marker'), info)


def _is_tested(info: str) -> bool:
    tokens = {token for token in re.split(r'[\s,]+', info) if token}
    if 'ignore' in tokens:
        return False
    return tokens <= RUSTDOC_TEST_TOKENS


def _brackets_balance(code: str) -> bool:
    code = re.sub(r'"(?:\\.|[^"\\])*"', '""', code)
    stack: list[str] = []
    for char in code:
        if char in '([{':
            stack.append(char)
        elif char in _BRACKETS:
            if not stack or stack.pop() != _BRACKETS[char]:
                return False
    return not stack


def _looks_runnable(body: list[str]) -> bool:
    code = '\n'.join(body)
    return 'fn main' in code and '...' not in code and _brackets_balance(code)


def _wrapping_marker(block: list[str]) -> str:
    """Pick a backtick fence longer than any backtick run inside the block."""
    longest = max((len(run) for run in re.findall(r'`+', '\n'.join(block))), default=0)
    return '`' * max(3, longest + 1)


def _is_indented_code(line: str, base: int) -> bool:
    return bool(line.strip()) and _indent_width(line) - base >= 4


def _ends_paragraph(line: str, base: int) -> bool:
    """True for a heading or thematic break, after which no paragraph is open."""
    if _indent_width(line) - base >= 4:
        return False
    stripped = line.strip()
    return bool(_HEADING_RE.match(stripped) or _BREAK_RE.fullmatch(stripped))


def sanitize_comment(text: str) -> str:
    """Rewrite a doc comment so rustdoc will not try to run fragments of it.

    - Fenced blocks that rustdoc would test and that do not look runnable are
      retagged as ``text``. The whole block is retagged at once, however many
      lines or blank lines it holds.
    - A fence that is never closed is closed at the end of the comment.
    - Indented code blocks are wrapped in a ``text`` fence.
    - Prose is left alone.

    Args:
        text: Comment body, one line per doc comment line, markers removed.

    Returns:
        The sanitized comment body.
    """
    lines = text.split('\n')
    base = _base_indent(lines)
    prefix = ' ' * base
    out: list[str] = []
    paragraph_open = False
    i = 0

    while i < len(lines):
        line = lines[i]

        fence = _open_fence(line, base)
        if fence is not None:
            end = next(
                (j for j in range(i + 1, len(lines)) if fence.closes(lines[j], base)),
                None,
            )
            body = lines[i + 1 : end] if end is not None else lines[i + 1 :]
            if _is_tested(fence.info) and not _looks_runnable(body):
                out.append(f'{fence.indent}{fence.marker}{INERT_LANGUAGE}')
            else:
                out.append(line)
            out.extend(body)
            if end is None:
                out.append(f'{fence.indent}{fence.marker}')
                break
            out.append(lines[end])
            i = end + 1
            paragraph_open = False
            continue

        if not paragraph_open and _is_indented_code(line, base):
            j = i + 1
            while j < len(lines):
                if _is_indented_code(lines[j], base):
                    j += 1
                    continue
                if lines[j].strip():
                    break
                # Blank lines belong to the block only if it continues after them.
                k = j
                while k < len(lines) and not lines[k].strip():
                    k += 1
                if k < len(lines) and _is_indented_code(lines[k], base):
                    j = k
                else:
                    break
            marker = _wrapping_marker(lines[i:j])
            out.append(f'{prefix}{marker}{INERT_LANGUAGE}')
            out.extend(lines[i:j])
            out.append(f'{prefix}{marker}')
            i = j
            paragraph_open = False
            continue

        out.append(line)
        if not line.strip() or _ends_paragraph(line, base):
            paragraph_open = False
        elif paragraph_open and _SETEXT_RE.fullmatch(line.strip()):
            paragraph_open = False
        else:
            paragraph_open = True
        i += 1

    return '\n'.join(out)


def comment_disabled(declaration: str, patterns) -> bool:
    """Check whether a declaration's documentation is suppressed.

    Patterns follow the protobuf path convention: ``.`` matches everything, a
    leading ``.`` anchors the path at the root and matches that declaration
    and everything nested in it, and any other path matches declarations
    ending in it (``Message.field`` matches ``pkg.Message.field``).
    """
    for pattern in patterns:
        if pattern == '.':
            return True
        if pattern.startswith('.'):
            anchored = pattern[1:]
            if declaration == anchored or declaration.startswith(anchored + '.'):
                return True
        elif declaration == pattern or declaration.endswith('.' + pattern):
            return True
    return False


def sanitize_unit(
    unit: GeneratedUnit, disable_comments: frozenset[str] | set[str] = frozenset()
) -> GeneratedUnit:
    """Sanitize every doc comment of a generated unit.

    Comments whose declaration matches ``disable_comments`` are removed
    instead of sanitized.

    Returns:
        A new unit whose source and comment spans reflect the rewrite.
    """
    lines = unit.source_text.split('\n')
    out: list[str] = []
    comments: list[RawComment] = []
    cursor = 0
    dropped = 0

    for comment in unit.raw_comments:
        out.extend(lines[cursor : comment.start])
        cursor = comment.end
        if comment_disabled(comment.declaration, disable_comments):
            dropped += 1
            continue
        text = sanitize_comment(comment.text)
        start = len(out)
        if text == comment.text:
            out.extend(lines[comment.start : comment.end])
        else:
            out.extend(join_doc_lines(text, comment.indent))
        comments.append(replace(comment, text=text, start=start, end=len(out)))
    out.extend(lines[cursor:])

    if dropped:
        logger.debug(
            f'Removed {dropped} disabled comments from {unit.origin or unit.package_name}'
        )
    return replace(unit, source_text='\n'.join(out), raw_comments=tuple(comments))
