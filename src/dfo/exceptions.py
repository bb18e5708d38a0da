"""
Exception hierarchy for the entrypoint dependency resolver.
"""
from typing import Optional


class DfoError(Exception):
    """
    Base class for every error raised by dfo.
    """


class NoEntrypointError(DfoError):
    """
    Raised when a container has neither an entrypoint nor a cmd to classify.
    """


class CommandNotFoundError(DfoError):
    """
    Raised when a command name is not present on the search path.
    Callers skip the command and keep going.
    """
    def __init__(self, command: str, detail: Optional[str] = None):
        self.command = command
        message = f"Command not found: {command}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ProbeError(DfoError):
    """
    Raised when the dynamic-linker introspection tool cannot run on a binary.
    Aborts the closure computation for the whole run.
    """
    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Library introspection failed for {path}: {detail}")


class ContainerInspectionError(DfoError):
    """
    Raised when containers cannot be listed or inspected.
    """


class ScriptRetrievalError(DfoError):
    """
    Raised when an entrypoint script cannot be copied out of a container or staged locally.
    """
