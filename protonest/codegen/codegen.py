"""Code generation module for protonest.

This module provides the main Codegen class that runs the pipeline for one
workspace: generator, comment sanitization, module tree, identifier
resolution, emission, and finally the optional formatter, diff and write.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial

from protonest._version import version as __version__
from protonest.codegen.comments import sanitize_unit
from protonest.codegen.file_writer import DiffReport, OutputWriter, RustFormatter
from protonest.codegen.generator import Generator, ProtocGenerator
from protonest.codegen.layout import (
    EmittedFile,
    IdentifierResolver,
    ModuleEmitter,
    ModuleNode,
    build_module_tree,
)
from protonest.codegen.units import GeneratedUnit
from protonest.config import ProtonestConfig, WorkspaceConfig
from protonest.exceptions import ValidationDiffError

logger = logging.getLogger(__name__)


class Codegen:
    """Generates the module tree of one workspace.

    Example:
        >>> config = get_config('protonest.yaml')
        >>> codegen = Codegen(config, config.workspaces[0])
        >>> codegen.generate()
    """

    def __init__(
        self,
        config: ProtonestConfig,
        workspace: WorkspaceConfig,
        generator: Generator | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Options shared by all workspaces.
            workspace: The workspace to generate.
            generator: Generator to use instead of protoc.
        """
        self.config = config
        self.workspace = workspace
        self.generator = generator or ProtocGenerator.from_config(
            config.generator, work_dir=workspace.tmp_dir
        )
        self.writer = OutputWriter(workspace.output_dir)
        self.formatter = RustFormatter(config.edition) if config.format else None

    def sanitize(self, units: list[GeneratedUnit]) -> list[GeneratedUnit]:
        """Sanitize the doc comments of every unit, keeping input order."""
        sanitize = partial(
            sanitize_unit, disable_comments=frozenset(self.config.disable_comments)
        )
        if self.config.jobs > 1 and len(units) > 1:
            with ThreadPoolExecutor(max_workers=self.config.jobs) as pool:
                return list(pool.map(sanitize, units))
        return [sanitize(unit) for unit in units]

    def build_tree(self, units: list[GeneratedUnit]) -> ModuleNode:
        tree = build_module_tree(units)
        IdentifierResolver(root_name=self.writer.output_dir.name).resolve(tree)
        return tree

    def build(self) -> list[EmittedFile]:
        """Run every in-memory stage and return the files to emit."""
        units = self.generator.generate(
            self.workspace.proto_files, self.workspace.proto_dirs
        )
        logger.debug(f'Generated {len(units)} units for {self.workspace.output_dir}')

        tree = self.build_tree(self.sanitize(units))

        emitter = ModuleEmitter(
            prepend_header=self.config.prepend_header,
            toplevel_attribute=self.config.toplevel_attribute,
            tool_version=__version__,
            generator_version=self.generator.version,
        )
        files = emitter.emit(tree)

        if self.formatter is not None:
            files = self.formatter.format_files(files)
        return files

    def generate(self) -> DiffReport:
        """Regenerate the workspace, writing only if the output changed."""
        files = self.build()
        report = self.writer.diff(files)
        if not report:
            logger.info(f'Found no diff at {self.workspace.output_dir}')
            return report

        logger.info(f'Found diff in {report.count} files at {self.workspace.output_dir}')
        self.writer.write(files)
        return report

    def validate(self) -> DiffReport:
        """Regenerate the workspace in memory and compare it to disk.

        Raises:
            ValidationDiffError: If any file differs.
        """
        files = self.build()
        report = self.writer.diff(files)
        if report:
            raise ValidationDiffError(self.workspace.output_dir, report)
        logger.info(f'Found no diff at {self.workspace.output_dir}')
        return report
