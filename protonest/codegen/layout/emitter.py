"""Module emitter for turning a resolved ModuleNode tree into Rust files.

This module provides the ModuleEmitter class that takes a resolved tree and
renders one file per node, with the ``pub mod`` declarations that tie the
files together. Rendering is purely in memory; writing the files is the job of
:mod:`protonest.codegen.file_writer`.

Layout, for an output directory named ``proto_types``::

    proto_types.rs          root module, declares the top-level packages
    proto_types/foo.rs      package ``foo``, declares ``pub mod bar;``
    proto_types/foo/bar.rs  package ``foo.bar``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from protonest.codegen.utils import file_stem

if TYPE_CHECKING:
    from protonest.codegen.layout.tree import ModuleNode

logger = logging.getLogger(__name__)

HEADER_MARKER = '// @generated by'
ROOT_LINT_ALLOWANCES = '#![allow(clippy::doc_markdown, clippy::use_self)]'


@dataclass
class EmittedFile:
    """A rendered output file.

    Attributes:
        path: Path relative to the parent of the output directory.
        content: The complete file content.
        package_path: The package the file holds, empty for the root module.
    """

    path: PurePosixPath
    content: str
    package_path: tuple[str, ...] = field(default_factory=tuple)


def render_header(tool_version: str, generator_version: str | None = None) -> str:
    header = f'{HEADER_MARKER} protonest {tool_version}'
    if generator_version:
        header += f' ({generator_version})'
    return header + '\n'


class ModuleEmitter:
    """Emits one Rust file per node of a resolved ModuleNode tree.

    Example:
        >>> emitter = ModuleEmitter(prepend_header=True, tool_version='0.1.0')
        >>> files = emitter.emit(tree)
        >>> [str(f.path) for f in files]
        ['proto_types.rs', 'proto_types/foo.rs', 'proto_types/foo/bar.rs']
    """

    def __init__(
        self,
        prepend_header: bool = False,
        toplevel_attribute: str | None = None,
        tool_version: str = 'unknown',
        generator_version: str | None = None,
    ):
        """Initialize the emitter.

        Args:
            prepend_header: Start every file with a ``@generated`` marker comment.
            toplevel_attribute: Attribute line added once, to the root module.
            tool_version: protonest version shown in the header.
            generator_version: Generator version shown in the header, if known.
        """
        self.prepend_header = prepend_header
        self.toplevel_attribute = toplevel_attribute
        self.header = render_header(tool_version, generator_version)

    def emit(self, tree: ModuleNode) -> list[EmittedFile]:
        """Render every file of the tree.

        Args:
            tree: A tree whose names have been resolved.

        Returns:
            The files in depth-first order, root module first.
        """
        if tree.resolved_name is None:
            raise ValueError('Module tree must be resolved before emission')

        root_stem = file_stem(tree.resolved_name)
        files: list[EmittedFile] = []

        for path, node in tree.walk():
            if not path:
                files.append(
                    EmittedFile(
                        path=PurePosixPath(f'{root_stem}.rs'),
                        content=self._render_root(node),
                    )
                )
                continue

            stems = [root_stem]
            current = tree
            for part in path:
                current = current.children[part]
                stems.append(file_stem(current.resolved_name))
            file_path = PurePosixPath(*stems[:-1], f'{stems[-1]}.rs')

            files.append(
                EmittedFile(
                    path=file_path,
                    content=self._render_node(node),
                    package_path=path,
                )
            )

        logger.debug(f'Rendered {len(files)} module files')
        return files

    def _declarations(self, node: ModuleNode) -> str:
        names = sorted(child.resolved_name for child in node.children.values())
        return ''.join(f'pub mod {name};\n' for name in names)

    def _unit_content(self, node: ModuleNode) -> str:
        content = ''
        for unit in node.units:
            text = unit.source_text
            content += text if text.endswith('\n') else text + '\n'
        return content

    def _render_node(self, node: ModuleNode) -> str:
        output = self.header if self.prepend_header else ''
        declarations = self._declarations(node)
        units = self._unit_content(node)
        output += declarations
        if declarations and units:
            output += '\n'
        return output + units

    def _render_root(self, node: ModuleNode) -> str:
        output = self.header if self.prepend_header else ''
        output += ROOT_LINT_ALLOWANCES + '\n'
        if self.toplevel_attribute:
            output += self.toplevel_attribute + '\n'
        output += self._declarations(node)
        units = self._unit_content(node)
        if units:
            output += '\n' + units
        return output
