from __future__ import annotations


class InstallError(RuntimeError):
    """A single content type could not be installed.

    Never fatal to a sync pass; the orchestrator records it and moves on.
    """

    stage = "install"

    def __init__(self, machine_name: str, message: str) -> None:
        super().__init__(message)
        self.machine_name = machine_name
        self.message = message

    def __str__(self) -> str:
        return self.message


class FetchError(InstallError):
    stage = "fetch"


class WriteError(InstallError):
    """Staging the archive on disk failed."""

    stage = "write"


class ValidationError(InstallError):
    """The host rejected the package or its validator raised."""

    stage = "validate"


class StorageError(InstallError):
    stage = "persist"


class PostInstallCheckError(InstallError):
    """The host reported success but the library is not registered."""

    stage = "post_install_check"


__all__ = [
    "FetchError",
    "InstallError",
    "PostInstallCheckError",
    "StorageError",
    "ValidationError",
    "WriteError",
]
