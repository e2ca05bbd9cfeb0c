"""
Standard exit codes and error types for tagsync.

Following Unix/POSIX conventions for command-line tools. Every error the
sync engine raises derives from SyncError and carries the exit code the
CLI should terminate with.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_COMPONENTS_FOUND = 64  # No mirror repositories found under the mirrors root
CONFIG_ERROR = 66         # Missing or invalid settings
DATA_ERROR = 70           # Malformed commit record from git log
IDENTITY_ERROR = 72       # Manifest name mismatch between monorepo and mirror
CONSISTENCY_ERROR = 73    # Verification found a diff between subtree and mirror
TOOL_FAILURE = 74         # git / rsync invocation failed
INTERRUPTED = 130         # Terminated by Ctrl+C (SIGINT)


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    if isinstance(exc, KeyboardInterrupt):
        return INTERRUPTED
    return GENERAL_ERROR


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class SyncError(CommandError):
    """
    Base class for errors raised by the sync engine.

    When the error concerns a single component, its name and mirror path
    are appended to the message.
    """
    exit_code_default = GENERAL_ERROR

    def __init__(self, message: str, component=None, exit_code: Optional[int] = None):
        if component is not None:
            message = f"{message} [component {component.name} at {component.target_path}]"
        super().__init__(message, exit_code if exit_code is not None else self.exit_code_default)
        self.component = component


class NoComponentsFoundError(SyncError):
    """Raised when the mirrors root holds no mirror repository."""
    exit_code_default = NO_COMPONENTS_FOUND

    def __init__(self, message: str = "No mirror repositories found"):
        super().__init__(message)


class ConfigurationError(SyncError):
    """Raised when a setting is missing or invalid."""
    exit_code_default = CONFIG_ERROR


class IdentityMismatchError(SyncError):
    """Raised when a manifest does not declare the expected component name."""
    exit_code_default = IDENTITY_ERROR


class MalformedCommitRecord(SyncError, ValueError):
    """Raised when a log record fails hash or timestamp validation."""
    exit_code_default = DATA_ERROR


class ConsistencyError(SyncError):
    """Raised when the mirror differs from the monorepo subtree at the tag."""
    exit_code_default = CONSISTENCY_ERROR

    def __init__(self, message: str, diff: str = "", component=None):
        super().__init__(message, component=component)
        self.diff = diff


class DelegatedToolFailure(SyncError):
    """Raised when a git or mirroring invocation exits unsuccessfully."""
    exit_code_default = TOOL_FAILURE

    def __init__(
        self,
        message: str,
        command: Optional[list] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
        component=None,
    ):
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message, component=component)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr

    def for_component(self, component) -> 'DelegatedToolFailure':
        """Return a copy of this failure annotated with the component."""
        if self.component is not None:
            return self
        failure = DelegatedToolFailure(
            str(self), command=self.command, returncode=self.returncode, component=component
        )
        failure.stderr = self.stderr
        return failure
