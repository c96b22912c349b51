"""Strict loader for the mailpop runtime configuration.

What:
  Locate, parse, validate, and cache ``config.yaml``, the document that names
  the POP3 account the CLI talks to.

Why:
  Configuration lives outside the package and can be malformed. Centralising
  the parsing keeps validation consistent and gives every failure a message
  that includes the offending path.

How:
  Load an explicit path when one is given; it must exist. Otherwise resolve
  candidate locations from the ``MAILPOP_CONFIG_PATH`` environment variable
  and well-known defaults. Parse
  YAML with ``yaml.safe_load`` and validate with the pydantic models in
  :mod:`mailpop.config.schema`.

Interfaces:
  - :func:`load_runtime_config` / :func:`get_runtime_config` /
    :func:`reset_runtime_config`: Manage discovery and caching.
  - :class:`ConfigLoadError` / :class:`RuntimeConfigError`: Error types.

Invariants:
  - Every payload passes strict pydantic validation before it is returned.
  - The cache respects explicit reload requests and the precedence order of
    candidate paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple, Union

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures.

    What:
      Represent fatal issues encountered while reading or validating
      configuration documents.

    Why:
      Grouping failures under a single type lets the CLI tell user input
      mistakes apart from POP3 or network failures.
    """


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``config.yaml`` cannot be located, read, or validated."""


_CONFIG_ENV = "MAILPOP_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("~/.config/mailpop/config.yaml"),
    Path("/etc/mailpop/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Path, RuntimeConfig]] = None


def _candidate_paths() -> Iterable[Path]:
    """Yield configuration file locations in priority order.

    What:
      Produce the ordered, deduplicated list of paths that should be inspected
      for ``config.yaml``.

    How:
      Check the ``MAILPOP_CONFIG_PATH`` environment variable and the default
      locations. Paths are expanded to handle ``~``.

    Yields:
      Candidate paths ordered from most specific to least specific.
    """

    seen: set[Path] = set()
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        seen.add(candidate)
        yield candidate
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    """Parse ``config.yaml`` text into a mapping ready for validation.

    Raises:
      RuntimeConfigError: If the text is not valid YAML or not a mapping.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError(f"{source} must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Load and validate ``config.yaml`` from a specific path.

    What:
      Read the file at ``path`` and convert it into a validated
      :class:`RuntimeConfig` model.

    How:
      Read the file contents, parse them via :func:`_parse_config_payload`, and
      validate using :meth:`RuntimeConfig.model_validate`. Filesystem and
      validation failures become :class:`RuntimeConfigError`.

    Args:
      path: Filesystem location of the runtime configuration.

    Returns:
      The validated :class:`RuntimeConfig` model.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid configuration in {path}: {exc}") from exc


def load_runtime_config(
    path: Optional[Union[Path, str]] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate ``config.yaml`` using the precedence chain, parse it, and return a
      validated :class:`RuntimeConfig` instance.

    Why:
      The CLI and library helpers share one configuration; caching avoids
      repeated disk IO while ``reload`` allows deterministic refreshes in tests.

    How:
      Consult the module cache unless ``reload`` is requested or a different
      explicit path is asked for. An explicit path is loaded as is, so a
      missing file is an error rather than a fallback. Without one, walk the
      candidate paths until an existing file is found. The result is cached.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If no configuration file can be located or validated.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if path is not None else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    if requested_path is not None:
        config = _load_runtime_from_path(requested_path)
        _RUNTIME_CACHE = (requested_path, config)
        return config

    searched: list[str] = []
    for candidate in _candidate_paths():
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    raise RuntimeConfigError(
        f"Unable to locate config.yaml (searched: {', '.join(searched) or '<none>'})"
    )


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
