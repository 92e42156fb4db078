"""A server with resource limits that hosts graph nodes."""

from __future__ import annotations

from collections.abc import Sequence

from .nodes import NetworkMode, Node
from .stats import Stats


class Server:
    """Tracks the nodes placed on a machine and the resources they use."""

    def __init__(self, limits: Stats) -> None:
        self.limits = limits
        self.usages = Stats()
        self.nodes: dict[int, Node] = {}

    def _place(self, node: Node, server_id: int) -> None:
        node.assign_server(server_id)
        self.nodes.setdefault(node.node_id, node)

    def emplace_node(self, node: Node, mode: NetworkMode, server_id: int) -> bool:
        """Place ``node`` if the memory limit allows; return whether it was placed."""
        new_usage = self.usages + node.usage(mode)
        if not new_usage <= self.limits:
            return False
        self.usages = new_usage
        self._place(node, server_id)
        return True

    def emplace_nodes(
        self,
        nodes: Sequence[Node],
        modes: Sequence[NetworkMode],
        server_id: int,
    ) -> bool:
        """Place all of ``nodes`` or none of them, depending on the memory limit."""
        if len(nodes) != len(modes):
            raise ValueError("nodes and modes must have the same length")
        needed = sum((node.usage(mode) for node, mode in zip(nodes, modes)), Stats())
        new_usage = self.usages + needed
        if not new_usage <= self.limits:
            return False
        self.usages = new_usage
        for node in nodes:
            self._place(node, server_id)
        return True

    def sync_nodes_usage(self) -> None:
        """Recompute usage from the actual traffic of the hosted nodes."""
        self.usages = sum((node.true_usage() for node in self.nodes.values()), Stats())

    def remove_node(self, node_id: int) -> None:
        """Drop a hosted node; raise KeyError if it is not here."""
        node = self.nodes.pop(node_id)
        self.usages = self.usages - node.usage()