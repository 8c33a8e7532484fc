# common/config/env_config.py
import os
from typing import Dict, Mapping, Optional


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Get Env variable with optional default. Blank values count as unset.
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def collect_env(fields: Mapping[str, str]) -> Dict[str, str]:
    """
    Read the environment variables named in *fields*.

    Args:
        fields: Config field name -> environment variable name

    Returns:
        Config field name -> raw value, for the variables that are set
    """
    values: Dict[str, str] = {}
    for field, env_key in fields.items():
        value = get_env(env_key)
        if value is not None:
            values[field] = value
    return values


__all__ = ["collect_env", "get_env"]
