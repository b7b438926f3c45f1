# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration loading for resolvers, dispatchers and shells.

Values come from, in increasing precedence: dataclass defaults, a TOML or
YAML file (or an in-memory mapping), and ``DFSRESOLVE_*`` environment
variables.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Final, Literal, cast

import yaml

from .errors import ConfigError

Backend = Literal["memory", "host"]

ENV_PREFIX: Final = "DFSRESOLVE_"
_BOOLEAN_TRUE: Final = frozenset({"1", "true", "yes", "on"})
_BOOLEAN_FALSE: Final = frozenset({"0", "false", "no", "off"})
_BACKENDS: Final = frozenset({"memory", "host"})

__all__ = ["ENV_PREFIX", "Backend", "ResolverConfig", "load_config"]


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """Resolved configuration shared by dispatcher, identity and shell.

    Attributes:
        scheme: Location prefix owned by the namespace resolver.
        handle_unprefixed: Route locations without a recognized scheme to the
            namespace resolver. When False they go to the fallback resolver,
            or fail with ``NoOwnerError`` if none is configured.
        default_principal: Principal used when a caller supplies none.
            ``None`` means the current OS user.
        home_prefix: Parent of every principal's home directory.
        max_workers: Listing parallelism; ``None`` or ``1`` lists inline.
        use_codecs: Transparently decompress ``.gz``/``.bz2``/``.xz`` content.
        backend: Default namespace client built when none is injected.
        host_root: Directory backing the ``host`` backend.
    """

    scheme: str = "hdfs"
    handle_unprefixed: bool = True
    default_principal: str | None = None
    home_prefix: str = "/user"
    max_workers: int | None = None
    use_codecs: bool = True
    backend: Backend = "memory"
    host_root: Path | None = None

    def __post_init__(self) -> None:
        if not self.scheme or ":" in self.scheme or "/" in self.scheme:
            msg = f"Invalid scheme: {self.scheme!r}"
            raise ConfigError(msg, location=self.scheme)
        if not self.home_prefix.startswith("/"):
            msg = f"home_prefix must be absolute: {self.home_prefix!r}"
            raise ConfigError(msg, location=self.home_prefix)
        if self.max_workers is not None and self.max_workers < 1:
            msg = f"max_workers must be positive, got {self.max_workers}"
            raise ConfigError(msg)
        if self.backend not in _BACKENDS:
            msg = f"Unknown backend: {self.backend!r}"
            raise ConfigError(msg)
        if self.backend == "host" and self.host_root is None:
            msg = "The host backend requires host_root."
            raise ConfigError(msg)


def load_config(
    source: Path | Mapping[str, Any] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ResolverConfig:
    """Load and validate a :class:`ResolverConfig`.

    Parameters
    ----------
    source:
        A ``.toml``/``.yaml``/``.yml`` file, or an in-memory mapping. Settings
        may sit at the top level or under a ``dfsresolve`` table. ``None``
        uses defaults plus environment overrides.
    env:
        Environment mapping; defaults to :data:`os.environ`.
    """

    if source is None:
        raw: dict[str, object] = {}
    elif isinstance(source, Mapping):
        raw = dict(cast(Mapping[str, object], source))
    else:
        raw = _load_config_file(source)

    section = raw.get("dfsresolve")
    if isinstance(section, Mapping):
        raw = dict(cast(Mapping[str, object], section))

    known = {f.name for f in fields(ResolverConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        msg = f"Unknown configuration keys: {', '.join(unknown)}"
        raise ConfigError(msg)

    values = _apply_environment_overrides(raw, os.environ if env is None else env)
    return _build_config(values)


def _load_config_file(path: Path) -> dict[str, object]:
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg, location=str(path))

    suffix = path.suffix.lower()
    data: object
    if suffix == ".toml":
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    elif suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    else:
        msg = f"Unsupported configuration format: {path.suffix}"
        raise ConfigError(msg, location=str(path))

    if not isinstance(data, MutableMapping):
        msg = "Configuration file must contain a mapping at the root."
        raise ConfigError(msg, location=str(path))
    return {str(key): value for key, value in cast(Mapping[object, object], data).items()}


def _apply_environment_overrides(
    raw: Mapping[str, object], env: Mapping[str, str]
) -> dict[str, object]:
    values = dict(raw)
    for config_field in fields(ResolverConfig):
        env_key = f"{ENV_PREFIX}{config_field.name.upper()}"
        if env_key in env:
            values[config_field.name] = env[env_key]
    return values


def _build_config(values: Mapping[str, object]) -> ResolverConfig:
    kwargs: dict[str, Any] = {}
    for name, value in values.items():
        if name in {"handle_unprefixed", "use_codecs"}:
            kwargs[name] = _coerce_bool(name, value)
        elif name == "max_workers":
            kwargs[name] = _coerce_optional_int(name, value)
        elif name == "host_root":
            kwargs[name] = None if value in (None, "") else Path(str(value)).expanduser()
        elif name == "default_principal":
            kwargs[name] = None if value in (None, "") else str(value)
        else:
            kwargs[name] = str(value)
    return ResolverConfig(**kwargs)


def _coerce_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _BOOLEAN_TRUE:
        return True
    if text in _BOOLEAN_FALSE:
        return False
    msg = f"{name} must be a boolean (got {value!r})."
    raise ConfigError(msg)


def _coerce_optional_int(name: str, value: object) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        msg = f"{name} must be an integer (got {value!r})."
        raise ConfigError(msg)
    try:
        return int(cast(str | int, value))
    except (TypeError, ValueError) as error:
        msg = f"{name} must be an integer (got {value!r})."
        raise ConfigError(msg) from error
