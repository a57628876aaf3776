import json
from typing import Any

import yaml


def read_yaml(path: str) -> dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    return data


def save_json(data: dict[str, Any] | list[Any], path: str, indent: int | None = None) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=indent)
