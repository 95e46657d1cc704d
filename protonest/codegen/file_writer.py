"""File writing utilities for emitted Rust modules.

This module provides utilities for comparing emitted modules against an
existing output tree, writing them to the filesystem, and running the
optional ``rustfmt`` post-pass.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePosixPath

from upath import UPath

from protonest.codegen.layout.emitter import EmittedFile
from protonest.exceptions import FormatError, OutputConflictError, OutputError

logger = logging.getLogger(__name__)


@dataclass
class DiffReport:
    """Differences between emitted files and an output tree on disk.

    All paths are relative to the parent of the output directory.

    Attributes:
        added: Files that would be created.
        changed: Files whose content differs.
        removed: Files under the output directory that are no longer emitted.
    """

    added: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.added) + len(self.changed) + len(self.removed)

    def __bool__(self) -> bool:
        return self.count > 0

    def lines(self) -> list[str]:
        """Human readable lines, one per differing file."""
        return (
            [f'new file: {path}' for path in self.added]
            + [f'modified: {path}' for path in self.changed]
            + [f'deleted: {path}' for path in self.removed]
        )


class OutputWriter:
    """Writes emitted files into an output directory.

    The root module file lives beside the output directory and every other file
    inside it, so the parent of the output directory is the base all
    EmittedFile paths are relative to.

    Example:
        >>> writer = OutputWriter('src/proto_types')
        >>> report = writer.diff(files)
        >>> if report:
        ...     writer.write(files)
    """

    def __init__(self, output_dir: UPath | Path | str):
        self.output_dir = UPath(output_dir)
        self.base_dir = self.output_dir.parent

    def _existing_files(self) -> set[str]:
        if not self.output_dir.exists():
            return set()
        return {
            self._relative(path)
            for path in self.output_dir.rglob('*')
            if path.is_file()
        }

    def _relative(self, path: UPath) -> str:
        return str(PurePosixPath(self.output_dir.name, *path.relative_to(self.output_dir).parts))

    def check_conflicts(self, files: Iterable[EmittedFile]) -> None:
        """Fail if any target path exists with the wrong type.

        Raises:
            OutputConflictError: For a directory where a file must go or a file
                where a directory must go.
        """
        # The nearest existing ancestor has to be a directory for mkdir to work.
        for directory in [self.output_dir, *self.output_dir.parents]:
            if directory.exists():
                if not directory.is_dir():
                    raise OutputConflictError(str(directory), 'directory')
                break

        for emitted in files:
            target = self.base_dir.joinpath(*emitted.path.parts)
            if target.exists() and not target.is_file():
                raise OutputConflictError(str(target), 'file')
            for parent in emitted.path.parents:
                if parent == PurePosixPath('.'):
                    continue
                directory = self.base_dir.joinpath(*parent.parts)
                if directory.exists() and not directory.is_dir():
                    raise OutputConflictError(str(directory), 'directory')

    def diff(self, files: Iterable[EmittedFile]) -> DiffReport:
        """Compare emitted files with what is currently on disk."""
        files = list(files)
        self.check_conflicts(files)
        existing = self._existing_files()
        report = DiffReport()

        for emitted in files:
            key = str(emitted.path)
            existing.discard(key)
            target = self.base_dir.joinpath(*emitted.path.parts)
            if not target.exists():
                report.added.append(key)
            elif target.read_bytes() != emitted.content.encode('utf-8'):
                report.changed.append(key)

        report.removed = sorted(existing)
        for line in report.lines():
            logger.debug(line)
        return report

    def write(self, files: Iterable[EmittedFile]) -> list[UPath]:
        """Write the emitted files, replacing the previous output tree.

        Files under the output directory that are not emitted are deleted,
        along with directories left empty. Deletion happens only after every
        emitted file has been written.

        Returns:
            The paths that were written.

        Raises:
            OutputConflictError: If a target path has the wrong type.
            OutputError: If the filesystem refuses a write.
        """
        files = list(files)
        self.check_conflicts(files)
        emitted_keys = {str(emitted.path) for emitted in files}
        stale_keys = sorted(self._existing_files() - emitted_keys)
        written: list[UPath] = []

        try:
            for emitted in files:
                target = self.base_dir.joinpath(*emitted.path.parts)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(emitted.content.encode('utf-8'))
                written.append(target)

            for stale in stale_keys:
                self.base_dir.joinpath(*PurePosixPath(stale).parts).unlink()
            self._remove_empty_dirs()
        except OSError as e:
            raise OutputError(str(self.output_dir), cause=e) from e

        logger.info(f'Wrote {len(written)} files to {self.output_dir}')
        return written

    def _remove_empty_dirs(self) -> None:
        if not self.output_dir.exists():
            return
        directories = [path for path in self.output_dir.rglob('*') if path.is_dir()]
        for directory in sorted(directories, key=lambda p: len(p.parts), reverse=True):
            if not any(directory.iterdir()):
                directory.rmdir()


class RustFormatter:
    """Formats emitted files with ``rustfmt``.

    rustfmt is run in stdin mode, one file at a time, so nothing touches disk.
    """

    def __init__(self, edition: str = '2021', rustfmt: str = 'rustfmt'):
        self.edition = edition
        self.rustfmt = rustfmt

    def format_source(self, content: str, name: str = '<stdin>') -> str:
        """Format one source string.

        Raises:
            FormatError: If rustfmt cannot be launched or exits non-zero.
        """
        try:
            result = subprocess.run(
                [self.rustfmt, '--edition', self.edition],
                input=content,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise FormatError(name, str(e)) from e

        if result.returncode != 0:
            raise FormatError(name, result.stderr)
        return result.stdout

    def format_files(self, files: Iterable[EmittedFile]) -> list[EmittedFile]:
        return [
            replace(emitted, content=self.format_source(emitted.content, str(emitted.path)))
            for emitted in files
        ]
