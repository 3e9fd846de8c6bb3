"""Exception types raised by Quire.

Every error that can be attributed to a file carries its path, so the CLI
can print a ``File:``/``Error:`` pair the same way for all of them.
"""

from __future__ import annotations

from pathlib import Path


class QuireError(Exception):
    """Base class for all Quire errors."""


class ConfigError(QuireError):
    """quire.yaml could not be read."""

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


class FrontmatterError(QuireError):
    """A content file's metadata block is missing, unterminated or unparsable."""

    def __init__(self, message: str, source_path: Path | None = None):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}" if source_path else message)


class SchemaError(QuireError):
    """Front matter parsed but does not match the expected record shape.

    Attributes:
        problems: One ``field: message`` string per violation.
    """

    def __init__(self, problems: list[str], source_path: Path | None = None):
        self.problems = list(problems)
        self.source_path = source_path
        self.message = "; ".join(self.problems)
        super().__init__(
            f"{source_path}: {self.message}" if source_path else self.message
        )


class BuildError(QuireError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")
