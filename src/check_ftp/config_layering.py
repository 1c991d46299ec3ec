"""Configuration layering for probe settings.

Merges probe settings from several sources with precedence:
built-in defaults < TOML file < environment variables < CLI args.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

ENV_PREFIX = "CHECK_FTP_"
CONFIG_ENV_VAR = "CHECK_FTP_CONFIG_PATH"
CONFIG_SECTION = "ftp"

# Environment variables under the prefix that configure the tool itself
# rather than the probe target.
_RESERVED_ENV_KEYS = frozenset({"config_path", "log_level", "log_file"})


def load_layered_config(
    defaults: Mapping[str, Any],
    config_path: str | Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and merge probe settings from every source.

    Precedence (later overrides earlier):
    1. ``defaults``
    2. The ``[ftp]`` table of the TOML file at ``config_path`` (or the
       path named by ``CHECK_FTP_CONFIG_PATH``)
    3. Environment variables (``CHECK_FTP_<KEY>``)
    4. CLI overrides; keys whose value is ``None`` were not given and are
       skipped.

    Args:
        defaults: Built-in default values.
        config_path: Optional TOML file; a missing explicit path is an error.
        cli_overrides: Values taken from the command line.

    Returns:
        Flat dictionary of merged settings.
    """
    result: dict[str, Any] = dict(defaults)

    path = _resolve_config_path(config_path)
    if path is not None:
        file_data = _load_toml_file(path)
        section = file_data.get(CONFIG_SECTION, {})
        if not isinstance(section, dict):
            raise ValueError(f"[{CONFIG_SECTION}] in {path} must be a table")
        result = _merge(result, section)

    env_overrides = _extract_env_overrides()
    if env_overrides:
        result = _merge(result, env_overrides)

    if cli_overrides:
        given = {key: value for key, value in cli_overrides.items() if value is not None}
        result = _merge(result, given)

    return result


def _resolve_config_path(path: str | Path | None) -> Path | None:
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return None


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with path.open("rb") as handle:
        return tomllib.load(handle)  # type: ignore[no-any-return]


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated with ``override``; keys are normalised to lower case."""
    result = dict(base)
    for key, value in override.items():
        result[str(key).lower().replace("-", "_")] = value
    return result


def _extract_env_overrides() -> dict[str, Any]:
    """Extract CHECK_FTP_* environment variables into a settings dict.

    Values are kept as text; ``ProbeConfig.from_dict`` coerces each key
    to its own type, so a host named "on" stays a host name.

    Example:
        CHECK_FTP_PORT=2121 → {"port": "2121"}
    """
    overrides: dict[str, Any] = {}

    for env_key, env_value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        suffix = env_key[len(ENV_PREFIX) :].lower()
        if not suffix or suffix in _RESERVED_ENV_KEYS:
            continue
        overrides[suffix] = env_value

    return overrides
