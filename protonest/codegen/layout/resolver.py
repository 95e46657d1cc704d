"""Identifier resolution for module tree nodes.

This module provides the IdentifierResolver class that gives every node of a
ModuleNode tree a module identifier that is valid Rust, not a bare keyword and
unique among its siblings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from protonest.codegen.utils import (
    escape_keyword,
    file_stem,
    remove_accents,
    sanitize_identifier,
    to_snake_case,
)
from protonest.exceptions import IdentifierCollisionError

if TYPE_CHECKING:
    from protonest.codegen.layout.tree import ModuleNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedName:
    """Result of resolving one package segment.

    Attributes:
        original: The package segment as declared.
        identifier: The module identifier, possibly a raw identifier (``r#type``).
    """

    original: str
    identifier: str

    @property
    def file_stem(self) -> str:
        """The file name stem for this module, e.g. ``type`` for ``r#type``."""
        return file_stem(self.identifier)


def resolve_segment(segment: str) -> ResolvedName:
    """Resolve a single package segment to a module identifier.

    The segment is snake-cased the same way the generator names the modules it
    refers to, normalized into a legal identifier, and escaped if it is a
    keyword.

    Example:
        >>> resolve_segment('type').identifier
        'r#type'
        >>> resolve_segment('MyPackage').identifier
        'my_package'
    """
    identifier = sanitize_identifier(to_snake_case(remove_accents(segment)))
    return ResolvedName(original=segment, identifier=escape_keyword(identifier))


class IdentifierResolver:
    """Resolves the module identifiers of a whole tree.

    Resolution happens after the tree is complete because collisions can only
    be detected with every sibling in view. Siblings are visited in sorted
    order of their original names so that error messages and results are the
    same on every run.

    Example:
        >>> resolver = IdentifierResolver()
        >>> resolver.resolve(tree)
        >>> tree.children['type'].resolved_name
        'r#type'
    """

    def __init__(self, root_name: str | None = None):
        """Initialize the resolver.

        Args:
            root_name: Identifier for the root node. Defaults to the root's name.
        """
        self.root_name = root_name

    def resolve(self, root: ModuleNode) -> ModuleNode:
        """Assign ``resolved_name`` on every node of the tree.

        Raises:
            IdentifierCollisionError: If two siblings resolve to the same
                identifier or the same file name.
        """
        root.resolved_name = self.root_name if self.root_name is not None else root.name

        for path, node in root.walk():
            self._resolve_children(path, node)

        return root

    def _resolve_children(self, path: tuple[str, ...], node: ModuleNode) -> None:
        seen_identifiers: dict[str, str] = {}
        seen_stems: dict[str, str] = {}

        for child in node.sorted_children():
            resolved = resolve_segment(child.name)
            child_path = '.'.join(path + (child.name,))

            for key, seen in (
                (resolved.identifier, seen_identifiers),
                (resolved.file_stem, seen_stems),
            ):
                if key in seen:
                    raise IdentifierCollisionError(
                        first_path=seen[key],
                        second_path=child_path,
                        resolved_name=resolved.identifier,
                    )
                seen[key] = child_path

            if resolved.identifier != child.name:
                logger.debug(f'Package segment {child_path} resolved to {resolved.identifier}')
            child.resolved_name = resolved.identifier
