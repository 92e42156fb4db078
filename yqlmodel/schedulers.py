"""Strategies that place the nodes of a query graph onto servers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, MutableSequence
from dataclasses import dataclass, field

from .graph import Graph
from .nodes import NetworkMode, Node
from .params import Parameters
from .server import Server
from .stats import Stats

logger = logging.getLogger(__name__)


class SchedulingError(RuntimeError):
    """Raised when no server can take what has to be placed."""


class Scheduler(ABC):
    """Places graphs onto a list of servers and takes them off again."""

    @abstractmethod
    def schedule(self, graph: Graph, servers: MutableSequence[Server]) -> bool:
        """Place every node of ``graph``; return whether it succeeded."""

    def remove(self, graph: Graph, servers: MutableSequence[Server]) -> bool:
        """Take every node of ``graph`` off the server it is on."""
        for node in graph.nodes:
            if node.server_id is None:
                raise KeyError(f"node {node.node_id} is not placed")
            servers[node.server_id].remove_node(node.node_id)
            node.assign_server(None)
        return True

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name of the strategy."""


class _Rotating(Scheduler):
    """Shared round robin cursor over the server list."""

    def __init__(self) -> None:
        self._next_server = 0

    def _rotate(
        self,
        servers: MutableSequence[Server],
        place: Callable[[Server, int], bool],
    ) -> int:
        """Try servers from the cursor on, once each; return the one that accepted."""
        if not servers:
            raise SchedulingError("no servers to place onto")
        for _ in range(len(servers)):
            server_id = self._next_server % len(servers)
            placed = place(servers[server_id], server_id)
            self._next_server = (server_id + 1) % len(servers)
            if placed:
                return server_id
        raise SchedulingError("Cannot emplace node on any server")


class SingleHost(_Rotating):
    """Puts a whole graph onto one server, rotating the starting server."""

    def schedule(self, graph: Graph, servers: MutableSequence[Server]) -> bool:
        modes = [NetworkMode.NONE] * graph.size
        for index in graph.sources:
            modes[index] = NetworkMode.INPUT
        for index in graph.sinks:
            if index < graph.size:
                modes[index] = NetworkMode.OUTPUT
        nodes = graph.nodes

        server_id = self._rotate(
            servers, lambda server, sid: server.emplace_nodes(nodes, modes, sid)
        )
        logger.info("Placed Graph onto Server #%d", server_id)
        return True

    @property
    def name(self) -> str:
        return "SingleHost"


class RoundRobin(_Rotating):
    """Puts each node onto the next server that has room for it."""

    def schedule(self, graph: Graph, servers: MutableSequence[Server]) -> bool:
        for index, node in enumerate(graph.nodes):
            server_id = self._rotate(
                servers,
                lambda server, sid, node=node: server.emplace_node(
                    node, NetworkMode.BOTH, sid
                ),
            )
            logger.info("Placed Node #%d onto Server #%d", index, server_id)
        return True

    @property
    def name(self) -> str:
        return "RoundRobin"


@dataclass
class _Cluster:
    ids: list[int] = field(default_factory=list)
    stats: Stats = field(default_factory=Stats)


class New(Scheduler):
    """Groups nodes joined by heavy traffic and puts each group on the least loaded server.

    Graphs with at most ``max_count_local`` nodes go to a single host.
    """

    def __init__(self, params: Parameters) -> None:
        self._params = params
        self._single_host = SingleHost()

    def _clusters(self, graph: Graph) -> list[_Cluster]:
        threshold = self._params.max_distributed_traffic
        adjacency = [
            [link.id for link in row if not link.size < threshold]
            for row in graph.adjacency_list
        ]
        logger.debug("heavy edges: %s", adjacency)

        component: dict[int, int] = {}
        clusters: list[_Cluster] = []
        for root in range(graph.size):
            if root in component:
                continue
            label = len(clusters)
            clusters.append(_Cluster())
            component[root] = label
            queue = deque([root])
            while queue:
                current = queue.popleft()
                for child in adjacency[current]:
                    if child not in component:
                        component[child] = label
                        queue.append(child)

        for index in range(graph.size):
            cluster = clusters[component[index]]
            cluster.ids.append(index)
            cluster.stats = cluster.stats + graph[index].usage()
        return clusters

    @staticmethod
    def _rollback(placed: list[tuple[Server, list[Node]]]) -> None:
        for server, nodes in placed:
            for node in nodes:
                server.usages = server.usages - node.usage(NetworkMode.NONE)
                server.nodes.pop(node.node_id, None)
                node.assign_server(None)

    def _try_schedule(
        self,
        graph: Graph,
        clusters: list[_Cluster],
        servers: MutableSequence[Server],
        use_cpu: bool,
    ) -> bool:
        order = list(range(len(servers)))
        placed: list[tuple[Server, list[Node]]] = []

        for cluster in clusters:
            order.sort(key=lambda sid: servers[sid].usages.cpu)
            nodes = [graph[index] for index in cluster.ids]
            modes = [NetworkMode.NONE] * len(nodes)

            for server_id in order:
                server = servers[server_id]
                fits_memory = (
                    server.usages.memory + cluster.stats.memory < server.limits.memory
                )
                fits_cpu = (
                    not use_cpu
                    or server.usages.cpu + cluster.stats.cpu < server.limits.cpu
                )
                if fits_memory and fits_cpu and server.emplace_nodes(
                    nodes, modes, server_id
                ):
                    placed.append((server, nodes))
                    break
            else:
                self._rollback(placed)
                return False
        return True

    def schedule(self, graph: Graph, servers: MutableSequence[Server]) -> bool:
        if graph.size <= self._params.max_count_local:
            return self._single_host.schedule(graph, servers)

        clusters = self._clusters(graph)
        if self._try_schedule(graph, clusters, servers, use_cpu=True):
            return True
        logger.warning("Cannot emplace with cpu limits")
        return self._try_schedule(graph, clusters, servers, use_cpu=False)

    @property
    def name(self) -> str:
        return "New"