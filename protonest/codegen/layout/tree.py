"""Module tree structure for organizing generated units into a hierarchy.

This module provides the ModuleNode dataclass and ModuleTreeBuilder class
for building the nested module hierarchy of the output from the flat list of
units the generator produces, one node per package segment.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from protonest.codegen.units import GeneratedUnit

logger = logging.getLogger(__name__)


@dataclass
class ModuleNode:
    """Tree structure representing the module hierarchy.

    Each node in the tree can contain units and/or child modules. The root
    node represents the empty package path.

    Attributes:
        name: The original package segment of this node.
        units: Units whose package path ends exactly at this node, in input order.
        children: Child modules keyed by their original segment.
        resolved_name: The module identifier, set by the identifier resolver.
    """

    name: str
    units: list[GeneratedUnit] = field(default_factory=list)
    children: dict[str, ModuleNode] = field(default_factory=dict)
    resolved_name: str | None = None

    @property
    def is_synthetic(self) -> bool:
        """True if the node only exists to host descendants."""
        return not self.units

    def insert(self, package_path: Iterable[str], unit: GeneratedUnit) -> ModuleNode:
        """Add a unit to the tree at the specified package path.

        Creates intermediate nodes as needed.

        Args:
            package_path: Package segments, e.g. ``('foo', 'bar')``.
            unit: The unit to add.

        Returns:
            The node the unit was added to.
        """
        current = self
        for part in package_path:
            if part not in current.children:
                current.children[part] = ModuleNode(name=part)
            current = current.children[part]

        current.units.append(unit)
        return current

    def get_node(self, package_path: Iterable[str]) -> ModuleNode | None:
        """Get a node at the specified path.

        Returns:
            The ModuleNode at the path, or None if not found.
        """
        current = self
        for part in package_path:
            if part not in current.children:
                return None
            current = current.children[part]

        return current

    def sorted_children(self) -> list[ModuleNode]:
        return [self.children[name] for name in sorted(self.children)]

    def walk(self) -> Iterator[tuple[tuple[str, ...], ModuleNode]]:
        """Iterate over all nodes in the tree depth-first.

        Children are visited in sorted order of their original names, so the
        traversal is the same on every run.

        Yields:
            Tuples of (package_path, node) for each node in the tree.
        """
        stack: list[tuple[tuple[str, ...], ModuleNode]] = [((), self)]
        while stack:
            path, node = stack.pop()
            yield path, node
            for child in reversed(node.sorted_children()):
                stack.append((path + (child.name,), child))

    def count_units(self) -> int:
        """Count the total number of units in this subtree."""
        return sum(len(node.units) for _, node in self.walk())


class ModuleTreeBuilder:
    """Builds a ModuleNode tree from the generator's units.

    Units sharing a package are merged into one node in input order, so
    declarations from several definition files for the same package end up
    concatenated in a reproducible order.

    Example:
        >>> builder = ModuleTreeBuilder()
        >>> tree = builder.build(units)
        >>> tree.get_node(('foo', 'bar')).units
    """

    def __init__(self, root_name: str = ''):
        self.root_name = root_name

    def build(self, units: Iterable[GeneratedUnit]) -> ModuleNode:
        """Build a module tree from units.

        Args:
            units: Units in input order.

        Returns:
            The root ModuleNode.
        """
        root = ModuleNode(name=self.root_name)

        for unit in units:
            node = root.insert(unit.package_path, unit)
            if len(node.units) > 1:
                logger.debug(
                    f'Merging {unit.origin or "unit"} into package '
                    f'{unit.package_name or "<root>"} ({len(node.units)} units)'
                )

        logger.debug(
            f'Built module tree with {root.count_units()} units '
            f'in {sum(1 for _ in root.walk())} modules'
        )
        return root


def build_module_tree(units: Iterable[GeneratedUnit], root_name: str = '') -> ModuleNode:
    """Convenience function to build a module tree."""
    return ModuleTreeBuilder(root_name).build(units)
