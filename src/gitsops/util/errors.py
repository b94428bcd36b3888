# src/gitsops/util/errors.py: Typed exceptions and exit codes.
# Every fatal condition in git-sops maps onto one of these types. The CLI
# catches the base class, reports the message on stderr and exits with the
# attached exit code, so nothing but file content ever reaches stdout.

class GitSopsError(Exception):
    """Base exception for the application."""
    exit_code = 1

class UsageError(GitSopsError):
    """A required argument is missing or invalid."""

class PreconditionError(GitSopsError):
    """A required tool, file or repository context is missing."""

class ConfigError(PreconditionError):
    """Configuration-related errors."""

class EngineError(GitSopsError):
    """The encryption engine failed after exhausting its retries."""

    def __init__(self, message: str, diagnostics: str = ""):
        super().__init__(message)
        self.diagnostics = diagnostics

class VersionControlError(GitSopsError):
    """Git command errors."""
