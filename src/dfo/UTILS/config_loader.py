"""
Loading resolver configuration from a YAML file, .env files and the environment.
"""
import os
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from ..MODELS.resolver_config import ResolverConfig

ENV_PREFIX = "DFO_"


def env_overrides(environ: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    """
    Picks ``DFO_<FIELD>`` variables out of an environment mapping.

    :param environ: Environment variables.
    :return: Field values keyed by ResolverConfig field name.
    """
    values = {}
    for field in ResolverConfig.model_fields:
        value = environ.get(ENV_PREFIX + field.upper())
        if value is not None and value != "":
            values[field] = value
    return values


def load_config(config_path: Optional[str] = None,
                env_file: Optional[str] = ".env",
                environ: Optional[Mapping[str, str]] = None,
                **overrides: Any) -> ResolverConfig:
    """
    Builds a ResolverConfig. Later sources win: the YAML file, then the
    .env file, then the process environment, then explicit overrides.

    :param config_path: Optional YAML file with ResolverConfig fields.
    :param env_file: Optional .env file; ignored if it does not exist.
    :param environ: Environment mapping. Defaults to os.environ.
    :param overrides: Explicit values; None entries are ignored.
    :return: The merged configuration.
    :raises pydantic.ValidationError: If a value is invalid.
    :raises ValueError: If the YAML file is not a mapping.
    """
    data: Dict[str, Any] = {}

    if config_path:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"{config_path} must contain a mapping of settings")
        data.update(loaded)

    if env_file and os.path.exists(env_file):
        data.update(env_overrides(dotenv_values(env_file)))

    data.update(env_overrides(os.environ if environ is None else environ))
    data.update({k: v for k, v in overrides.items() if v is not None})

    return ResolverConfig(**data)
