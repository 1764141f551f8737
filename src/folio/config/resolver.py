"""Merge configuration layers into a validated :class:`FolioConfig`."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import FolioConfig

ENV_PREFIX = "FOLIO__"
_ENV_SEPARATOR = "__"


def resolve_with_precedence(
    *,
    defaults: FolioConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> FolioConfig:
    """Layer overrides on top of ``defaults`` and validate the result.

    Later layers win: defaults, then the config file, then the environment,
    then the command line. Keys in any layer may be nested mappings or dotted
    paths such as ``search.result_limit``.

    Raises:
        ConfigError: If a layer is malformed or the merged values are invalid.
    """
    merged: dict[str, Any] = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, layer in layers:
        if layer is not None:
            _merge_into(merged, expand_dotted(layer, label=label))

    try:
        return FolioConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def expand_dotted(layer: Mapping[str, Any], *, label: str = "override") -> dict[str, Any]:
    """Return ``layer`` as nested dictionaries, splitting dotted keys.

    Raises:
        ConfigError: If ``layer`` is not a mapping, has non-string keys, or a
            dotted key runs through a scalar value.
    """
    if not isinstance(layer, Mapping):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    nested: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings, not {key!r}.")
        *parents, leaf = key.split(".")
        node = nested
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(f"{label.capitalize()} override {key} conflicts with {segment}.")
            node = child
        if isinstance(value, Mapping):
            value = expand_dotted(value, label=label)
            existing = node.get(leaf)
            if isinstance(existing, dict):
                _merge_into(existing, value)
                continue
        node[leaf] = value
    return nested


def overrides_from_env(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``FOLIO__SECTION__KEY`` variables into a nested override mapping.

    Values are parsed as YAML so ``true``, ``25`` and ``[a, b]`` arrive typed;
    unparseable values are kept as plain strings.
    """
    overrides: dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [part.lower() for part in name[len(ENV_PREFIX) :].split(_ENV_SEPARATOR) if part]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        _merge_into(overrides, _nest(path, value))
    return overrides


def flatten_for_env(config: FolioConfig) -> dict[str, str]:
    """Render ``config`` as the environment variables that would reproduce it."""
    return dict(_flatten(config.model_dump(mode="python"), []))


def _flatten(value: Any, path: list[str]) -> Iterable[tuple[str, str]]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _flatten(child, [*path, str(key)])
        return
    name = ENV_PREFIX + _ENV_SEPARATOR.join(part.upper() for part in path)
    if isinstance(value, list):
        yield name, yaml.safe_dump(value, default_flow_style=True).strip()
    else:
        yield name, "null" if value is None else str(value)


def _nest(path: list[str], value: Any) -> dict[str, Any]:
    for segment in reversed(path[1:]):
        value = {segment: value}
    return {path[0]: value}


def _merge_into(target: dict[str, Any], overrides: Mapping[str, Any]) -> None:
    """Recursively copy ``overrides`` into ``target`` in place."""
    for key, value in overrides.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _merge_into(current, value)
        else:
            target[key] = deepcopy(value)


__all__ = [
    "ENV_PREFIX",
    "expand_dotted",
    "flatten_for_env",
    "overrides_from_env",
    "resolve_with_precedence",
]
