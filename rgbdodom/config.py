"""Parameter files: a flat YAML mapping read once and queried by key.

OpenCV-style files, which begin with a ``%YAML:1.0`` line, are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml

__all__ = ["Config", "set_parameter_file", "get"]

T = TypeVar("T")

_state: dict[str, "Config"] = {}


def _strip_directives(text: str) -> str:
    # "%YAML:1.0" is not a valid YAML directive, so drop such header lines.
    return "\n".join(
        line for line in text.splitlines() if not line.lstrip().startswith("%YAML")
    )


@dataclass
class Config:
    """Parameters read from one file."""

    values: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None

    @classmethod
    def load(cls, filename) -> "Config":
        """Read the parameter file ``filename``."""
        path = Path(filename)
        if not path.is_file():
            raise FileNotFoundError(f"parameter file {path} does not exist.")
        data = yaml.safe_load(_strip_directives(path.read_text(encoding="utf-8")))
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"parameter file {path} does not hold a mapping")
        return cls({str(key): value for key, value in data.items()}, path)

    def get(self, key: str, kind: Callable[[Any], T] = float) -> T:
        """Return the value under ``key`` converted with ``kind``."""
        try:
            value = self.values[key]
        except KeyError:
            raise KeyError(f"no parameter named {key!r}") from None
        return kind(value)


def set_parameter_file(filename) -> Config:
    """Load ``filename`` and make it the parameters that :func:`get` reads."""
    config = Config.load(filename)
    _state["config"] = config
    return config


def get(key: str, kind: Callable[[Any], T] = float) -> T:
    """Read ``key`` from the parameters set by :func:`set_parameter_file`."""
    try:
        config = _state["config"]
    except KeyError:
        raise RuntimeError("no parameter file has been set") from None
    return config.get(key, kind)