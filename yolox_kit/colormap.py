from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Union

from .types import RGBA, ClassColorEntry

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ModelEntry:
    name: str
    path: str


def _read_json_object(path: Path, what: str) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"{what} not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid {what} JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{what} must be a JSON object")
    return payload


def _parse_color(value: Any, idx: int) -> RGBA:
    if not isinstance(value, (list, tuple)) or len(value) not in (3, 4):
        raise ValueError(f"items[{idx}].color must be a list of 3 or 4 numbers")
    comps = []
    for c in value:
        if isinstance(c, bool) or not isinstance(c, (int, float)):
            raise ValueError(f"items[{idx}].color must contain numbers")
        if not 0.0 <= float(c) <= 1.0:
            raise ValueError(f"items[{idx}].color components must be in [0, 1]")
        comps.append(float(c))
    if len(comps) == 3:
        comps.append(1.0)
    return comps[0], comps[1], comps[2], comps[3]


def parse_colormap(payload: dict) -> List[ClassColorEntry]:
    """
    Parse a colormap payload of the form:

        {"items": [{"label": "person", "color": [1.0, 0.0, 0.0]}, ...]}

    Items are in class-index order; alpha defaults to 1.0.
    """

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValueError("colormap must contain a non-empty 'items' list")

    entries: List[ClassColorEntry] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"items[{idx}] must be an object")
        label = item.get("label")
        if not isinstance(label, str) or not label:
            raise ValueError(f"items[{idx}].label must be a non-empty string")
        entries.append(ClassColorEntry(label=label, color=_parse_color(item.get("color"), idx)))
    return entries


def load_colormap(path: PathLike) -> List[ClassColorEntry]:
    return parse_colormap(_read_json_object(Path(path), "colormap"))


def load_model_list(path: PathLike) -> List[ModelEntry]:
    """
    Load the list of available models: `{"models": [{"name": ..., "path": ...}]}`.
    """

    payload = _read_json_object(Path(path), "model list")
    models = payload.get("models")
    if not isinstance(models, list) or not models:
        raise ValueError("model list must contain a non-empty 'models' list")

    out: List[ModelEntry] = []
    for idx, item in enumerate(models):
        if not isinstance(item, dict):
            raise ValueError(f"models[{idx}] must be an object")
        name = item.get("name")
        model_path = item.get("path")
        if not isinstance(name, str) or not isinstance(model_path, str) or not model_path:
            raise ValueError(f"models[{idx}] needs string 'name' and 'path'")
        out.append(ModelEntry(name=name, path=model_path))
    return out
