"""The external generator interface.

protonest does not parse protobuf definitions itself. It hands them to a
generator and works on what comes back: one :class:`GeneratedUnit` per
generated package file. :class:`ProtocGenerator` drives ``protoc`` with the
``protoc-gen-prost`` plugin (and ``protoc-gen-tonic`` for services), which
write one ``<package>.rs`` (and ``<package>.tonic.rs``) file per package.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from protonest.codegen.units import GeneratedUnit, extract_doc_comments
from protonest.exceptions import ConfigurationError, GenerationError

if TYPE_CHECKING:
    from protonest.config import GeneratorConfig

__all__ = ('Generator', 'ProtocGenerator', 'package_from_file_name', 'read_units')

logger = logging.getLogger(__name__)

NO_PACKAGE_STEM = '_'
SERVICE_SUFFIX = '.tonic'


class Generator(Protocol):
    """Anything that turns definition files into generated units."""

    @property
    def version(self) -> str | None: ...

    def generate(
        self,
        definition_files: Iterable[str | Path],
        include_paths: Iterable[str | Path],
    ) -> list[GeneratedUnit]: ...


def package_from_file_name(
    name: str, service_suffix: str | None = SERVICE_SUFFIX
) -> tuple[tuple[str, ...], bool]:
    """Map a generated file name to its package path.

    Returns:
        The package segments and whether the file holds service code.

    Example:
        >>> package_from_file_name('my.pkg.tonic.rs')
        (('my', 'pkg'), True)
        >>> package_from_file_name('_.rs')
        ((), False)
    """
    stem = name[: -len('.rs')] if name.endswith('.rs') else name
    is_service = bool(service_suffix) and stem.endswith(service_suffix)
    if is_service:
        stem = stem[: -len(service_suffix)]
    if stem == NO_PACKAGE_STEM:
        return (), is_service
    return tuple(stem.split('.')), is_service


def read_units(out_dir: Path, service_suffix: str | None = None) -> list[GeneratedUnit]:
    """Read the generator's output directory into units.

    Message code for a package comes before its service code. Empty files are
    skipped.
    """
    entries = []
    for path in sorted(out_dir.glob('*.rs')):
        content = path.read_text(encoding='utf-8')
        if not content.strip():
            logger.warning(f'Skipping empty generated file {path.name}')
            continue
        package_path, is_service = package_from_file_name(path.name, service_suffix)
        entries.append((package_path, is_service, path.name, content))

    entries.sort(key=lambda entry: (entry[0], entry[1]))
    return [
        GeneratedUnit(
            package_path=package_path,
            source_text=content,
            raw_comments=extract_doc_comments(content, package_path),
            origin=name,
        )
        for package_path, _, name, content in entries
    ]


class ProtocGenerator:
    """Runs ``protoc`` with Rust code generator plugins.

    Example:
        >>> generator = ProtocGenerator(options=['type_attribute=.=#[derive(Eq)]'])
        >>> units = generator.generate(['proto/api.proto'], ['proto'])
    """

    def __init__(
        self,
        protoc: str = 'protoc',
        plugin: str = 'prost',
        options: Sequence[str] = (),
        service_plugin: str | None = None,
        service_options: Sequence[str] = (),
        work_dir: str | Path | None = None,
    ):
        """Initialize the generator.

        Args:
            protoc: The protoc executable.
            plugin: Message plugin name, passed as ``--<plugin>_out``.
            options: Options for the message plugin.
            service_plugin: Service plugin name, or None to skip services.
            service_options: Options for the service plugin.
            work_dir: Directory for the raw plugin output. A temporary
                directory is used and removed when not given.
        """
        self.protoc = protoc
        self.plugin = plugin
        self.options = list(options)
        self.service_plugin = service_plugin
        self.service_options = list(service_options)
        self.work_dir = Path(work_dir) if work_dir else None
        self._version: str | None = None
        self._version_checked = False

    @classmethod
    def from_config(
        cls, config: GeneratorConfig, work_dir: str | Path | None = None
    ) -> ProtocGenerator:
        """Create a generator from the ``generator`` configuration section."""
        options = [f'type_attribute={path}={attr}' for path, attr in config.type_attributes]
        options += [f'enum_attribute={path}={attr}' for path, attr in config.enum_attributes]

        service_plugin = None
        service_options: list[str] = []
        if config.build_client or config.build_server:
            service_plugin = config.service_plugin
            if not config.build_client:
                service_options.append('no_client')
            if not config.build_server:
                service_options.append('no_server')
            if not config.generate_transport:
                service_options.append('no_transport')
            service_options += [
                f'client_mod_attribute={path}={attr}'
                for path, attr in config.client_attributes
            ]
            service_options += [
                f'server_mod_attribute={path}={attr}'
                for path, attr in config.server_attributes
            ]

        return cls(
            protoc=config.protoc,
            plugin=config.plugin,
            options=options,
            service_plugin=service_plugin,
            service_options=service_options,
            work_dir=work_dir,
        )

    @property
    def version(self) -> str | None:
        """The version reported by ``protoc --version``, or None."""
        if not self._version_checked:
            self._version_checked = True
            try:
                result = subprocess.run(
                    [self.protoc, '--version'], capture_output=True, text=True, check=False
                )
            except OSError as e:
                logger.debug(f'Could not determine protoc version: {e}')
            else:
                if result.returncode == 0:
                    self._version = result.stdout.strip() or None
        return self._version

    def command(self, out_dir: Path, files: list[Path], includes: list[Path]) -> list[str]:
        """Build the protoc command line."""
        cmd = [self.protoc, f'--{self.plugin}_out={out_dir}']
        cmd += [f'--{self.plugin}_opt={option}' for option in self.options]
        if self.service_plugin:
            cmd.append(f'--{self.service_plugin}_out={out_dir}')
            cmd += [f'--{self.service_plugin}_opt={option}' for option in self.service_options]
        cmd += [f'-I{include}' for include in includes]
        cmd += [str(path) for path in files]
        return cmd

    def generate(
        self,
        definition_files: Iterable[str | Path],
        include_paths: Iterable[str | Path],
    ) -> list[GeneratedUnit]:
        """Generate units for a set of definition files.

        Raises:
            ConfigurationError: If no definition files are given.
            GenerationError: If a file or include directory does not exist,
                protoc cannot be run, or protoc reports an error.
        """
        files = sorted({Path(path) for path in definition_files})
        includes = sorted({Path(path) for path in include_paths})
        if not files:
            raise ConfigurationError('At least one definition file is required')
        for path in files:
            if not path.is_file():
                raise GenerationError('Definition file not found', path=str(path))
        for path in includes:
            if not path.is_dir():
                raise GenerationError('Include directory not found', path=str(path))

        if self.work_dir is not None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
            for stale in self.work_dir.glob('*.rs'):
                stale.unlink()
            return self._run(self.work_dir, files, includes)

        with tempfile.TemporaryDirectory(prefix='protonest-') as tmp:
            return self._run(Path(tmp), files, includes)

    def _run(self, out_dir: Path, files: list[Path], includes: list[Path]) -> list[GeneratedUnit]:
        cmd = self.command(out_dir, files, includes)
        logger.debug(f'Running {" ".join(cmd)}')
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise GenerationError(f'Failed to run {self.protoc}', detail=str(e)) from e

        if result.returncode != 0:
            offending = next((str(path) for path in files if path.name in result.stderr), None)
            raise GenerationError(
                f'{self.protoc} exited with status {result.returncode}',
                path=offending,
                detail=result.stderr,
            )

        service_suffix = SERVICE_SUFFIX if self.service_plugin else None
        units = read_units(out_dir, service_suffix)
        logger.debug(f'Generator produced {len(units)} units from {len(files)} files')
        return units
