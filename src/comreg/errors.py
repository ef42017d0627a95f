"""
Exception hierarchy for comreg.

Every fatal failure of a registration request derives from ComRegError so the
CLI (and any build script embedding comreg) can abort the package build with
a single except clause.
"""


class ComRegError(Exception):
    """Base class for all comreg failures."""


class HeatError(ComRegError):
    """Raised when heat.exe exits with a non-zero code."""

    def __init__(self, message: str, returncode: int = 1, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class HeatNotFoundError(HeatError):
    """Raised when heat.exe cannot be located or started."""


class ReconcileError(ComRegError):
    """Raised when heat.exe output cannot be parsed or lacks Component/File."""


class TargetTreeError(ComRegError):
    """Raised when the caller's File/Component/Directory context is incomplete."""
