"""Resource usage vectors and the value conversions used by the parameters API."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, fields
from typing import Any

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


def _parse_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"invalid integer: {text!r}")
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _parse_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"invalid number: {text!r}")
    literal = match.group(1)
    value = float(literal)
    if math.isinf(value) and "inf" not in literal.lower():
        raise ValueError(f"number out of range: {text!r}")
    return value


def to_json_value(value: Any) -> str:
    """Render a parameter value as a JSON fragment."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:f}"
    return value.to_json()


def parse_value(text: str, kind: Any) -> Any:
    """Parse ``text`` as ``kind``: int, float, or a type with a ``parse`` classmethod.

    Numbers are read from the leading part of the text, ignoring whatever follows.
    """
    if kind is int:
        return _parse_int(text)
    if kind is float:
        return _parse_float(text)
    return kind.parse(text)


@dataclass(frozen=True)
class Stats:
    """CPU, memory, network and disk amounts."""

    cpu: float = 0.0
    memory: float = 0.0
    network: float = 0.0
    disk: float = 0.0

    def __add__(self, other: Stats) -> Stats:
        if not isinstance(other, Stats):
            return NotImplemented
        return Stats(
            cpu=self.cpu + other.cpu,
            memory=self.memory + other.memory,
            network=self.network + other.network,
            disk=self.disk + other.disk,
        )

    def __sub__(self, other: Stats) -> Stats:
        if not isinstance(other, Stats):
            return NotImplemented
        return Stats(
            cpu=self.cpu - other.cpu,
            memory=self.memory - other.memory,
            network=self.network - other.network,
            disk=self.disk - other.disk,
        )

    def __le__(self, other: Stats) -> bool:
        """Compare by memory only, as placement decisions do."""
        if not isinstance(other, Stats):
            return NotImplemented
        return self.memory <= other.memory

    def fits_within(self, other: Stats) -> bool:
        """True when every component is at most the matching one in ``other``."""
        return (
            self.cpu <= other.cpu
            and self.memory <= other.memory
            and self.network <= other.network
            and self.disk <= other.disk
        )

    def to_json(self) -> str:
        parts = (
            f'"{field.name}":{float(getattr(self, field.name)):g}' for field in fields(self)
        )
        return "{" + ",".join(parts) + "}"

    @classmethod
    def parse(cls, text: str) -> Stats:
        """Parse ``cpu,memory,network,disk``."""
        parts = text.split(",", 3)
        if len(parts) != 4:
            raise ValueError(f"expected four comma separated values: {text!r}")
        cpu, memory, network, disk = (_parse_float(part) for part in parts)
        return cls(cpu=cpu, memory=memory, network=network, disk=disk)