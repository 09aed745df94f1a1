from __future__ import annotations
from .schemas import Config, IntegratorCfg
from ..errors import ConfigurationError
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # py<=310

def loads_config(text: str) -> Config:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Malformed TOML: {exc}") from exc
    try:
        return Config(**data)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

def load_config(path: str | Path) -> Config:
    p = Path(path)
    return loads_config(p.read_text())

def build_integrator_cfg(raw: IntegratorCfg | Mapping[str, Any]) -> IntegratorCfg:
    """
    Validate integrator settings from a key/value mapping (or re-validate an
    existing IntegratorCfg, as done on every configuration reload).
    """
    if isinstance(raw, IntegratorCfg):
        raw = raw.model_dump(by_alias=True)
    try:
        return IntegratorCfg.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
