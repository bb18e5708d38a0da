"""
Configuration for a resolver run.
"""
import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator


def _default_shell() -> str:
    return os.environ.get("SHELL") or "/bin/sh"


class ResolverConfig(BaseModel):
    """
    Tunable policy for classification, probing and output.
    """
    # Classification
    script_suffix: str = ".sh"

    # Library closure
    compute_library_closure_for_binaries: bool = False
    recursive_library_closure: bool = False

    # External tools
    shell: str = Field(default_factory=_default_shell)
    ldd_command: str = "ldd"
    command_timeout: Optional[float] = None  # seconds, None waits forever

    # Output
    log_level: str = "INFO"
    output_format: str = "text"

    @field_validator("script_suffix")
    @classmethod
    def suffix_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("script_suffix must not be empty")
        return value

    @field_validator("command_timeout")
    @classmethod
    def timeout_positive(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("command_timeout must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("output_format")
    @classmethod
    def known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("text", "json", "yaml"):
            raise ValueError(f"Unknown output format: {value}")
        return value
