"""Tunable model parameters, shared between the simulation and the HTTP API."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .stats import Stats, parse_value, to_json_value

logger = logging.getLogger(__name__)

T = TypeVar("T", int, float)


def _format(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


@dataclass(frozen=True)
class Range(Generic[T]):
    """An inclusive ``min``..``max`` pair."""

    min: T
    max: T

    def to_json(self) -> str:
        return f'{{"min":{_format(self.min)},"max":{_format(self.max)}}}'

    @classmethod
    def parse(cls, text: str, kind: type) -> Range:
        """Parse ``min,max``; without a comma both ends take the whole text."""
        low, sep, high = text.partition(",")
        if not sep:
            high = text
        return cls(parse_value(low, kind), parse_value(high, kind))


class Parameters:
    """Thread-safe set of generation, server and scheduling parameters."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._graph_size: Range[int] = Range(2, 30)
        self._source_volume: Range[int] = Range(100, 500)
        self._filter_volume: Range[float] = Range(0.6, 1.0)
        self._servers_count = 10
        self._servers_stat = Stats(cpu=34 * 100, memory=100 * 1000, network=10000)
        self._max_count_local = 1
        self._max_distributed_traffic = 50

    def _get(self, attr: str) -> Any:
        with self._lock:
            return getattr(self, attr)

    @property
    def graph_size(self) -> Range[int]:
        return self._get("_graph_size")

    @property
    def source_volume(self) -> Range[int]:
        return self._get("_source_volume")

    @property
    def filter_volume(self) -> Range[float]:
        return self._get("_filter_volume")

    @property
    def servers_count(self) -> int:
        return self._get("_servers_count")

    @property
    def servers_stat(self) -> Stats:
        return self._get("_servers_stat")

    @property
    def max_count_local(self) -> int:
        return self._get("_max_count_local")

    @property
    def max_distributed_traffic(self) -> int:
        return self._get("_max_distributed_traffic")

    def to_json(self) -> str:
        with self._lock:
            entries = [
                ("graph_size", self._graph_size),
                ("source_volume", self._source_volume),
                ("filter_volume", self._filter_volume),
                ("servers_count", self._servers_count),
                ("servers_stat", self._servers_stat),
                ("max_count_local", self._max_count_local),
                ("max_distributed_traffic", self._max_distributed_traffic),
            ]
            body = ",".join(f'"{name}":{to_json_value(value)}' for name, value in entries)
        return "{" + body + "}"

    _UPDATERS: dict[str, tuple[str, Callable[[str], Any]]] = {
        "graph_size": ("_graph_size", lambda text: Range.parse(text, int)),
        "filter_volume": ("_filter_volume", lambda text: Range.parse(text, float)),
        "source_volume": ("_source_volume", lambda text: Range.parse(text, int)),
        "servers_count": ("_servers_count", lambda text: parse_value(text, int)),
        "servers_stat": ("_servers_stat", Stats.parse),
        "max_count_local": ("_max_count_local", lambda text: parse_value(text, int)),
    }

    def update(self, arguments: Mapping[str, str]) -> None:
        """Apply string-valued updates in order; raise ValueError on an unknown name."""
        with self._lock:
            for name, text in arguments.items():
                logger.info("%s -- %s", name, text)
                try:
                    attr, parser = self._UPDATERS[name]
                except KeyError:
                    raise ValueError(f"unknown param: {name}") from None
                setattr(self, attr, parser(text))