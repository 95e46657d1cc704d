"""Module layout functionality for protonest.

This package turns the flat list of generated units into the nested module
tree of the output.

Classes:
    ModuleNode: Tree structure representing the module hierarchy.
    ModuleTreeBuilder: Builds module trees from generated units.
    IdentifierResolver: Assigns valid, unique module identifiers to nodes.
    ModuleEmitter: Renders a resolved tree into Rust files.
    EmittedFile: One rendered output file.
"""

from protonest.codegen.layout.emitter import EmittedFile, ModuleEmitter
from protonest.codegen.layout.resolver import (
    IdentifierResolver,
    ResolvedName,
    resolve_segment,
)
from protonest.codegen.layout.tree import (
    ModuleNode,
    ModuleTreeBuilder,
    build_module_tree,
)

__all__ = [
    'EmittedFile',
    'IdentifierResolver',
    'ModuleEmitter',
    'ModuleNode',
    'ModuleTreeBuilder',
    'ResolvedName',
    'build_module_tree',
    'resolve_segment',
]
