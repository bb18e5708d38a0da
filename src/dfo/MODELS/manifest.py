"""
Models for the result of a dependency resolution run.
"""
import os
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, model_validator

from .container_image import ContainerImageRef, EntrypointKind


class ResolutionStatus(str, Enum):
    """
    Outcome of looking a command name up on the search path.
    """
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"


class CommandReference(BaseModel):
    """
    A command name as written in the entrypoint or script, plus where it resolved to.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    path: Optional[str] = None
    status: ResolutionStatus = ResolutionStatus.NOT_FOUND

    @model_validator(mode="after")
    def check_resolved_path(self) -> "CommandReference":
        if self.status == ResolutionStatus.RESOLVED:
            if not self.path or not os.path.isabs(self.path):
                raise ValueError(
                    f"Resolved command {self.name!r} needs an absolute path, got {self.path!r}"
                )
        return self

    @property
    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED


class LibraryDependency(BaseModel):
    """
    A shared library required by one or more resolved binaries.
    """
    model_config = ConfigDict(frozen=True)

    path: str
    required_by: List[str] = []


class ResolutionManifest(BaseModel):
    """
    The files needed to run one container's entrypoint.

    Only resolved commands are listed in ``commands``; names that failed to
    resolve are kept in ``unresolved`` for reporting.
    """
    model_config = ConfigDict(frozen=True)

    container: ContainerImageRef
    kind: EntrypointKind
    commands: List[CommandReference] = []
    libraries: List[LibraryDependency] = []
    unresolved: List[str] = []

    @model_validator(mode="after")
    def check_unique(self) -> "ResolutionManifest":
        names = [c.name for c in self.commands]
        if len(names) != len(set(names)):
            raise ValueError("Manifest contains duplicate command names")
        if any(not c.is_resolved for c in self.commands):
            raise ValueError("Manifest may only list resolved commands")
        lib_paths = [lib.path for lib in self.libraries]
        if len(lib_paths) != len(set(lib_paths)):
            raise ValueError("Manifest contains duplicate library paths")
        return self

    @property
    def paths(self) -> List[str]:
        """Resolved command paths, deduplicated in first-seen order."""
        seen = []
        for command in self.commands:
            if command.path not in seen:
                seen.append(command.path)
        return seen

    @property
    def files(self) -> List[str]:
        """Every file in the closure: command binaries first, then libraries."""
        files = self.paths
        for lib in self.libraries:
            if lib.path not in files:
                files.append(lib.path)
        return files
