"""
Models representing inspected containers and how their entrypoint is classified.
"""
from typing import List
from enum import Enum
from pydantic import BaseModel, ConfigDict


class EntrypointKind(str, Enum):
    """
    How the first invocable token of a container is treated.
    """
    SCRIPT = "script"
    BINARY = "binary"
    UNRESOLVED = "unresolved"


class ContainerImageRef(BaseModel):
    """
    A running container as reported by the container runtime.
    Immutable once constructed.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    entrypoint: List[str] = []
    cmd: List[str] = []

    def invocation_tokens(self) -> List[str]:
        """
        Tokens the runtime would execute: the entrypoint, or the cmd when
        the entrypoint is empty.

        :return: The selected tokens, possibly empty.
        """
        if self.entrypoint:
            return list(self.entrypoint)
        return list(self.cmd)

    @property
    def short_id(self) -> str:
        """First 12 characters of the container id, as `docker ps` shows it."""
        return self.id[:12]
