from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from ekman.core.DataModel import SearchConfig
from ekman.core.Transparency import parse_color

FORMATS = ("text", "json")

_INT_KEYS = ("tolerance", "top_k", "workers")
_FLOAT_KEYS = ("max_score", "min_match_fraction", "timeout")
_STR_KEYS = ("metric", "strategy", "order")
_KNOWN = {f.name for f in fields(SearchConfig)} | {"format"}


def _parse_transparent(value: Any) -> Optional[Tuple[int, ...]]:
    if value is None or value is False:
        return None
    if isinstance(value, str):
        return parse_color(value)
    if isinstance(value, (list, tuple)):
        return parse_color(",".join(str(v) for v in value))
    raise ValueError(f"transparent must be a color string or a list of 3/4 ints, got {value!r}")


def parse_config(raw: Dict[str, Any]) -> Tuple[SearchConfig, Optional[str]]:
    """Turn a config mapping into (SearchConfig, output format or None)."""
    if not isinstance(raw, dict):
        raise ValueError("config file must contain a mapping")
    unknown = sorted(set(raw) - _KNOWN)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    if "transparent" in raw:
        values["transparent"] = _parse_transparent(raw["transparent"])
    if "alpha_transparent" in raw:
        values["alpha_transparent"] = bool(raw["alpha_transparent"])
    for key in _INT_KEYS:
        if raw.get(key) is not None:
            values[key] = int(raw[key])
    for key in _FLOAT_KEYS:
        if raw.get(key) is not None:
            values[key] = float(raw[key])
    for key in _STR_KEYS:
        if raw.get(key) is not None:
            values[key] = str(raw[key])

    fmt = raw.get("format")
    if fmt is not None and fmt not in FORMATS:
        raise ValueError(f"format must be one of {', '.join(FORMATS)}")

    return SearchConfig(**values).validate(), fmt


def load_config(path: str | Path) -> Tuple[SearchConfig, Optional[str]]:
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"cannot parse config {p}: {e}") from e
    return parse_config(raw)


def merge(cfg: SearchConfig, **overrides: Any) -> SearchConfig:
    """Apply overrides that are not None (CLI flags left unset keep the file value)."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    return replace(cfg, **changes).validate()
