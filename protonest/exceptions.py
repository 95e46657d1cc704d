"""Custom exceptions for protonest.

This module defines a hierarchy of exceptions used throughout protonest to
provide clear, actionable error messages for the different stages of the
pipeline. Every stage raises as soon as it observes a problem, and emission
is the last stage, so none of these errors leave a half-written output tree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from protonest.codegen.file_writer import DiffReport


class ProtonestError(Exception):
    """Base exception for all protonest errors.

    All exceptions raised by protonest inherit from this class, making it easy
    to catch all protonest-related errors with a single except clause.

    Example:
        try:
            codegen.generate()
        except ProtonestError as e:
            print(f"protonest error: {e}")
    """

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConfigurationError(ProtonestError):
    """Error in configuration.

    This exception is raised when the configuration is invalid or
    cannot be loaded.

    Attributes:
        config_path: The path to the configuration file, if applicable.
        field: The specific configuration field that is invalid.
    """

    def __init__(
        self, message: str, config_path: str | None = None, field: str | None = None
    ):
        self.config_path = config_path
        self.field = field
        full_message = message
        if config_path:
            full_message = f"{message} in '{config_path}'"
        if field:
            full_message += f' (field: {field})'
        super().__init__(full_message)


class GenerationError(ProtonestError):
    """The external generator failed.

    Raised for invalid or unreachable definition files, unresolved includes
    or a generator binary that cannot be run. The generator's own diagnostics
    are passed through verbatim.

    Attributes:
        path: The offending definition file or include, if known.
        detail: Diagnostics reported by the generator.
    """

    def __init__(self, message: str, path: str | None = None, detail: str | None = None):
        self.path = path
        self.detail = detail
        full_message = message
        if path:
            full_message = f"{message} for '{path}'"
        if detail:
            full_message += f':\n{detail.rstrip()}'
        super().__init__(full_message)


class IdentifierCollisionError(ProtonestError):
    """Two sibling packages resolve to the same module identifier.

    Attributes:
        first_path: Dotted package path of the first module.
        second_path: Dotted package path of the module colliding with it.
        resolved_name: The identifier both resolved to.
    """

    def __init__(self, first_path: str, second_path: str, resolved_name: str):
        self.first_path = first_path
        self.second_path = second_path
        self.resolved_name = resolved_name
        message = (
            f"Packages '{first_path}' and '{second_path}' both resolve to the "
            f"module name '{resolved_name}'; rename one of them"
        )
        super().__init__(message)


class OutputError(ProtonestError):
    """Error writing generated output.

    Attributes:
        output_path: The path where output was being written.
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, output_path: str, cause: Exception | None = None):
        self.output_path = output_path
        self.cause = cause
        message = f"Failed to write output to '{output_path}'"
        if cause:
            message += f': {cause}'
        super().__init__(message)


class OutputConflictError(OutputError):
    """An output path exists but has the wrong type.

    Attributes:
        expected: Either ``'file'`` or ``'directory'``.
    """

    def __init__(self, output_path: str, expected: str):
        self.expected = expected
        ProtonestError.__init__(
            self, f"Output path '{output_path}' exists but is not a {expected}"
        )
        self.output_path = output_path
        self.cause = None


class FormatError(ProtonestError):
    """The external formatter could not be run or rejected the code.

    Attributes:
        path: The emitted file that was being formatted.
        detail: The formatter's stderr, if any.
    """

    def __init__(self, path: str, detail: str | None = None):
        self.path = path
        self.detail = detail
        message = f"Failed to format '{path}'"
        if detail:
            message += f': {detail.rstrip()}'
        super().__init__(message)


class ValidationDiffError(ProtonestError):
    """Regenerated output differs from the checked-in tree.

    Attributes:
        report: The DiffReport describing every differing file.
    """

    def __init__(self, output_dir: str, report: DiffReport):
        self.output_dir = output_dir
        self.report = report
        super().__init__(f"Found {report.count} diffs at '{output_dir}'")
