"""Directed acyclic query graphs and the propagation of data volumes through them."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, replace

from .nodes import Node
from .stats import Stats


@dataclass
class Link:
    """An edge to node ``id`` carrying ``volume`` of the parent's output.

    ``size`` is the amount of data that last flowed along the edge.
    """

    id: int
    volume: float = 0.0
    size: float = 0.0


@dataclass(frozen=True)
class FullLink:
    """An edge described by the global ids of both of its endpoints."""

    source_id: int
    destination_id: int
    volume: float
    size: float


class Graph:
    """A query graph with a fixed number of node slots, filled in order."""

    def __init__(self, capacity: int) -> None:
        self._adjacency: list[list[Link]] = [[] for _ in range(capacity)]
        self._nodes: list[Node | None] = [None] * capacity
        self._size = 0
        self._total_usage = Stats()
        self._sources: set[int] = set()

    def __getitem__(self, index: int) -> Node:
        if not 0 <= index < self._size:
            raise IndexError(f"no node at index {index}")
        node = self._nodes[index]
        assert node is not None
        return node

    @property
    def nodes(self) -> list[Node]:
        """The nodes added so far, in insertion order."""
        return [node for node in self._nodes[: self._size] if node is not None]

    @property
    def size(self) -> int:
        return self._size

    @property
    def sources(self) -> set[int]:
        return set(self._sources)

    @property
    def total_usage(self) -> Stats:
        return self._total_usage

    @property
    def adjacency_list(self) -> list[list[Link]]:
        """A copy of the outgoing edges of every slot."""
        return [[replace(link) for link in row] for row in self._adjacency]

    @property
    def sinks(self) -> set[int]:
        """Indices of all slots without outgoing edges, including unfilled ones."""
        return {index for index, row in enumerate(self._adjacency) if not row}

    @property
    def edge_list(self) -> list[FullLink]:
        return [
            FullLink(
                self[index].node_id,
                self[link.id].node_id,
                link.volume,
                link.size,
            )
            for index, row in enumerate(self._adjacency)
            for link in row
        ]

    def add_node(self, node: Node, parents: Iterable[Link] = ()) -> Graph:
        """Put ``node`` into the next slot, linked from each of ``parents``."""
        if self._size >= len(self._nodes):
            raise IndexError("graph is full")
        parents = list(parents)
        for parent in parents:
            if not 0 <= parent.id < len(self._adjacency):
                raise IndexError(f"parent index {parent.id} out of range")

        index = self._size
        self._nodes[index] = node
        if not parents:
            self._sources.add(index)
        for parent in parents:
            self._adjacency[parent.id].append(Link(id=index, volume=parent.volume))
        self._size += 1
        return self

    def calculate_throughput(self, dynamic: bool = False) -> None:
        """Propagate volumes from the sources breadth first.

        With ``dynamic`` set, traffic between nodes on the same server counts as
        local; otherwise all traffic counts as remote. Each visited node's usage
        is added to the running total.
        """
        for index, node in enumerate(self.nodes):
            if index not in self._sources:
                node.reset_input_volume()
            node.reset_output_volume()

        queue = deque(sorted(self._sources))
        visited: set[int] = set()

        while queue:
            index = queue.popleft()
            if index in visited:
                continue
            visited.add(index)
            node = self[index]

            for link in self._adjacency[index]:
                child = self[link.id]
                amount = node.output_volume * link.volume
                if not dynamic or child.server_id != node.server_id:
                    child.add_input_volume(remote=amount)
                    node.add_output_volume(remote=amount)
                else:
                    child.add_input_volume(local=amount)
                    node.add_output_volume(local=amount)
                link.size = amount
                queue.append(link.id)

            self._total_usage = self._total_usage + node.usage()

    def copy(self) -> Graph:
        """A graph of the same shape holding fresh, unplaced copies of the nodes."""
        clone = Graph(len(self._nodes))
        clone._adjacency = self.adjacency_list
        clone._sources = set(self._sources)
        clone._total_usage = self._total_usage
        for node in self.nodes:
            clone._nodes[clone._size] = node.copy()
            clone._size += 1
        return clone