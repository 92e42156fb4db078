"""A cluster of servers running query graphs under one scheduling strategy."""

from __future__ import annotations

import logging

from .graph import Graph
from .schedulers import Scheduler
from .server import Server

logger = logging.getLogger(__name__)


class System:
    """Servers, the graphs placed on them, and the scheduler that places them."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self.servers: list[Server] = []
        self.graphs: list[Graph] = []

    def add_server(self, server: Server) -> System:
        self.servers.append(server)
        return self

    def execute_query(self, graph: Graph) -> bool:
        """Schedule ``graph``; keep it when the scheduler accepts it."""
        if self._scheduler.schedule(graph, self.servers):
            self.graphs.append(graph)
            return True
        return False

    def remove_query(self, index: int) -> bool:
        """Take the graph at ``index`` off the servers and forget it."""
        if not 0 <= index < len(self.graphs):
            raise IndexError(f"no graph at index {index}")
        if self._scheduler.remove(self.graphs[index], self.servers):
            before = len(self.graphs)
            del self.graphs[index]
            logger.debug("erased graph: %d -> %d", before, len(self.graphs))
            return True
        return False

    @property
    def scheduler_name(self) -> str:
        return self._scheduler.name

    def tick(self) -> None:
        """Recompute traffic with current placements and refresh server usage."""
        for graph in self.graphs:
            graph.calculate_throughput(dynamic=True)
        for server in self.servers:
            server.sync_nodes_usage()

    def reexecute_all(self) -> None:
        """Remove every graph, newest first, then schedule them again in order."""
        graphs = list(self.graphs)
        for index in reversed(range(len(self.graphs))):
            self.remove_query(index)
        for graph in graphs:
            self.execute_query(graph)

    def reset(self) -> None:
        self.servers.clear()
        self.graphs.clear()