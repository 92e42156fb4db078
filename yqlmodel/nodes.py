"""Query graph nodes: sources that produce data and filters that reduce it."""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from .stats import Stats

_node_ids = itertools.count()


class NetworkMode(Enum):
    """Which sides of a node's traffic cross the network."""

    NONE = 0
    INPUT = 1
    OUTPUT = 2
    BOTH = 3


@dataclass(frozen=True)
class Volume:
    """Data volume split into the part moved locally and the part moved remotely."""

    local: float = 0.0
    remote: float = 0.0

    @property
    def total(self) -> float:
        return self.remote + self.local


class Node(ABC):
    """A vertex of a query graph; each node gets a process-wide unique id."""

    CPU_MULTIPLIER = 0.0
    SERIALIZATION_CPU_MULTIPLIER = 0.03

    def __init__(self) -> None:
        self.node_id: int = next(_node_ids)
        self.inbound = Volume()
        self.outbound = Volume()
        self.server_id: int | None = None

    @property
    def input_volume(self) -> float:
        return self.inbound.total

    @property
    @abstractmethod
    def output_volume(self) -> float:
        """Volume the node emits given its current input."""

    def usage(self, mode: NetworkMode = NetworkMode.BOTH) -> Stats:
        """Estimated resource needs, counting network traffic as ``mode`` says."""
        if mode is NetworkMode.BOTH:
            network = self.input_volume + self.output_volume
        elif mode is NetworkMode.INPUT:
            network = self.input_volume
        elif mode is NetworkMode.OUTPUT:
            network = self.output_volume
        else:
            network = 0.0
        return Stats(
            cpu=self.CPU_MULTIPLIER * self.input_volume,
            memory=self.input_volume,
            network=network,
            disk=0.0,
        )

    def true_usage(self) -> Stats:
        """Resource use derived from the local/remote split of actual traffic."""
        inbound, outbound = self.inbound, self.outbound
        return Stats(
            cpu=(
                self.CPU_MULTIPLIER * inbound.local
                + self.SERIALIZATION_CPU_MULTIPLIER * inbound.remote
                + self.SERIALIZATION_CPU_MULTIPLIER * outbound.remote
            ),
            memory=self.input_volume,
            network=inbound.remote + outbound.remote,
            disk=0.0,
        )

    @abstractmethod
    def copy(self) -> Node:
        """A fresh, unplaced node with the same configuration and input volume."""

    def add_input_volume(self, local: float = 0.0, remote: float = 0.0) -> None:
        self.inbound = Volume(self.inbound.local + local, self.inbound.remote + remote)

    def add_output_volume(self, local: float = 0.0, remote: float = 0.0) -> None:
        self.outbound = Volume(self.outbound.local + local, self.outbound.remote + remote)

    def reset_input_volume(self) -> None:
        self.inbound = Volume()

    def reset_output_volume(self) -> None:
        self.outbound = Volume()

    def assign_server(self, server_id: int | None) -> None:
        """Place the node on a server, or clear its placement with ``None``."""
        if server_id is not None and self.server_id is not None:
            raise RuntimeError(
                f"node {self.node_id} is already placed on server {self.server_id}"
            )
        self.server_id = server_id


class SourceNode(Node):
    """Produces data at a fixed rate that arrives over the network."""

    CPU_MULTIPLIER = 0.02

    def __init__(self, rate: float) -> None:
        super().__init__()
        self.rate = rate
        self.inbound = Volume(local=0.0, remote=rate)

    @property
    def output_volume(self) -> float:
        return self.rate

    def copy(self) -> SourceNode:
        node = SourceNode(self.rate)
        node.inbound = self.inbound
        return node


class FilterNode(Node):
    """Passes on a fixed fraction of its input; with ratio 1 it acts as a sink."""

    CPU_MULTIPLIER = 0.05

    def __init__(self, filter_ratio: float = 1.0) -> None:
        super().__init__()
        self.filter_ratio = filter_ratio

    @property
    def output_volume(self) -> float:
        return self.filter_ratio * self.input_volume

    def copy(self) -> FilterNode:
        node = FilterNode(self.filter_ratio)
        node.inbound = self.inbound
        return node