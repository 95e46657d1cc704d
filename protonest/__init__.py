"""protonest - Lay out generated protobuf Rust code as a nested module tree.

protonest runs protoc with the prost (and optionally tonic) plugins, which
emit one flat ``<package>.rs`` file per protobuf package, and turns that
output into a module tree mirroring the package namespace: one file per
package, ``pub mod`` declarations tying them together, reserved words
escaped, and doc comments rewritten so that rustdoc does not try to compile
fragments copied from the protobuf definitions.

Quick Start:
    >>> from protonest import Codegen, get_config
    >>>
    >>> config = get_config('protonest.yaml')
    >>> for workspace in config.workspaces:
    ...     Codegen(config, workspace).generate()

CLI Usage:
    $ protonest generate -d proto -f proto/api.proto -o src/proto_types
    $ protonest validate -c protonest.yaml  # exits 1 on any diff
"""

from protonest.codegen.codegen import Codegen
from protonest.codegen.comments import sanitize_comment, sanitize_unit
from protonest.codegen.generator import Generator, ProtocGenerator
from protonest.codegen.units import GeneratedUnit, RawComment
from protonest.config import (
    GeneratorConfig,
    ProtonestConfig,
    WorkspaceConfig,
    get_config,
)
from protonest.exceptions import (
    ConfigurationError,
    FormatError,
    GenerationError,
    IdentifierCollisionError,
    OutputConflictError,
    OutputError,
    ProtonestError,
    ValidationDiffError,
)

__all__ = [
    # Main classes
    'Codegen',
    'Generator',
    'ProtocGenerator',
    'GeneratedUnit',
    'RawComment',
    'sanitize_comment',
    'sanitize_unit',
    # Configuration
    'GeneratorConfig',
    'ProtonestConfig',
    'WorkspaceConfig',
    'get_config',
    # Exceptions
    'ProtonestError',
    'ConfigurationError',
    'GenerationError',
    'IdentifierCollisionError',
    'OutputError',
    'OutputConflictError',
    'FormatError',
    'ValidationDiffError',
]

try:
    from protonest._version import version as __version__
except ImportError:
    __version__ = 'unknown'
