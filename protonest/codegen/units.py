"""Generated units and the doc-comment scanner.

A :class:`GeneratedUnit` is what the external generator hands back for one
generated package file: the package path it belongs to, the generated Rust
source, and the doc comments found in that source, each tagged with the
declaration it documents.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

__all__ = (
    'GeneratedUnit',
    'RawComment',
    'extract_doc_comments',
    'join_doc_lines',
    'split_doc_lines',
)

DOC_PREFIX = '///'

_VISIBILITY = r'(?:pub(?:\([^)]*\))?\s+)?'

# Declarations that open a named scope for the declarations nested in them.
_SCOPE_RE = re.compile(
    _VISIBILITY
    + r'(?:unsafe\s+)?(?:struct|enum|union|trait|mod)\s+(?:r#)?(?P<name>\w+)'
)
_IMPL_RE = re.compile(
    r'(?:unsafe\s+)?impl(?:<[^>]*>)?\s+(?:[\w:<>, ]+\s+for\s+)?(?:[\w:]+::)?(?P<name>\w+)'
)
_FN_RE = re.compile(
    _VISIBILITY + r'(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+(?:r#)?(?P<name>\w+)'
)
_ITEM_RE = re.compile(
    _VISIBILITY + r'(?:const|static|type)\s+(?:mut\s+)?(?:r#)?(?P<name>\w+)'
)
_FIELD_RE = re.compile(_VISIBILITY + r'(?:r#)?(?P<name>[a-z_]\w*)\s*:(?!:)')
_VARIANT_RE = re.compile(r'(?P<name>[A-Z]\w*)\s*(?:=|,|\(|\{|$)')


@dataclass(frozen=True)
class RawComment:
    """A doc comment attached to one declaration of a generated unit.

    Attributes:
        declaration: Dotted path of the documented item, e.g. ``pkg.Message.field``.
        text: The comment body with the ``///`` markers removed.
        start: Index of the first comment line in the unit's source.
        end: Index one past the last comment line.
        indent: Whitespace preceding the ``///`` markers.
    """

    declaration: str
    text: str
    start: int
    end: int
    indent: str = ''


@dataclass(frozen=True)
class GeneratedUnit:
    """The generator's output for one package file.

    Attributes:
        package_path: Package segments, empty for definitions without a package.
        source_text: The generated Rust source.
        raw_comments: Doc comments found in ``source_text``, in source order.
        origin: Name of the file the generator produced, used in messages.
    """

    package_path: tuple[str, ...]
    source_text: str
    raw_comments: tuple[RawComment, ...] = field(default_factory=tuple)
    origin: str = ''

    @property
    def package_name(self) -> str:
        return '.'.join(self.package_path)


def split_doc_lines(lines: list[str]) -> tuple[str, str]:
    """Split ``///`` lines into their shared indent and the comment text."""
    first = lines[0]
    indent = first[: len(first) - len(first.lstrip())]
    body = [line.lstrip()[len(DOC_PREFIX) :] for line in lines]
    return indent, '\n'.join(body)


def join_doc_lines(text: str, indent: str) -> list[str]:
    """Inverse of :func:`split_doc_lines`."""
    return [f'{indent}{DOC_PREFIX}{line}' for line in text.split('\n')]


def _is_doc_line(stripped: str) -> bool:
    return stripped.startswith(DOC_PREFIX) and not stripped.startswith('////')


def _code_part(line: str) -> str:
    """Blank out string literals and drop a trailing line comment."""
    code = re.sub(r'"(?:\\.|[^"\\])*"', '""', line)
    return code.split('//', 1)[0]


def _declared_name(stripped: str) -> tuple[str | None, bool]:
    """Return the name declared on a line and whether it opens a scope."""
    for pattern, opens_scope in (
        (_SCOPE_RE, True),
        (_IMPL_RE, True),
        (_FN_RE, False),
        (_ITEM_RE, False),
        (_FIELD_RE, False),
        (_VARIANT_RE, False),
    ):
        match = pattern.match(stripped)
        if match:
            return match.group('name'), opens_scope
    return None, False


def extract_doc_comments(
    source_text: str, package_path: tuple[str, ...] = ()
) -> tuple[RawComment, ...]:
    """Find every ``///`` comment run in generated Rust source.

    Each run is attributed to the declaration that follows it, skipping
    attribute lines. Enclosing ``mod``/``struct``/``enum``/``trait``/``impl``
    blocks are tracked by brace depth so that nested declarations get a
    dotted path below the package, e.g. ``pkg.Message.field``.

    Args:
        source_text: The generated source.
        package_path: Package the source belongs to, used as path prefix.

    Returns:
        The comments in source order.
    """
    lines = source_text.split('\n')
    comments: list[RawComment] = []
    scopes: list[tuple[str, int]] = []
    depth = 0
    run_start: int | None = None
    # doc runs waiting for the declaration below their attributes
    pending: list[tuple[int, int]] = []

    def qualify(name: str | None) -> str:
        parts = list(package_path) + [scope for scope, _ in scopes]
        if name:
            parts.append(name)
        return '.'.join(parts)

    def attach(declaration: str) -> None:
        for start, end in pending:
            indent, text = split_doc_lines(lines[start:end])
            comments.append(
                RawComment(
                    declaration=declaration,
                    text=text,
                    start=start,
                    end=end,
                    indent=indent,
                )
            )
        pending.clear()

    for index, line in enumerate(lines):
        stripped = line.strip()
        if _is_doc_line(stripped):
            if run_start is None:
                run_start = index
            continue
        if run_start is not None:
            pending.append((run_start, index))
            run_start = None

        name, opens_scope = _declared_name(stripped)
        if pending and not stripped.startswith('#['):
            attach(qualify(name))

        code = _code_part(stripped)
        new_depth = depth + code.count('{') - code.count('}')
        if opens_scope and name and new_depth > depth:
            scopes.append((name, new_depth))
        while scopes and scopes[-1][1] > new_depth:
            scopes.pop()
        depth = max(new_depth, 0)

    if run_start is not None:
        pending.append((run_start, len(lines)))
    attach(qualify(None))

    return tuple(comments)
