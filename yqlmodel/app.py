"""The simulation application: graph generation, the tick loop and the HTTP API."""

from __future__ import annotations

import argparse
import json
import logging
import random
import threading
import time
from collections.abc import Callable, Mapping
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

from .graph import Graph, Link
from .nodes import FilterNode, SourceNode
from .params import Parameters
from .schedulers import New, RoundRobin, SingleHost
from .server import Server
from .system import System

logger = logging.getLogger(__name__)

_JSON = "application/json"


def generate_graph(params: Parameters, rng: random.Random) -> Graph:
    """Build a random layered graph: sources, filter layers and one final sink."""
    size_range = params.graph_size
    volume_range = params.source_volume
    filter_range = params.filter_volume

    total = rng.randint(size_range.min, size_range.max)
    if total < 2:
        raise ValueError(f"graph needs at least two nodes, got {total}")
    sources = max(1, total // 10)
    remaining = total - sources - 1
    graph = Graph(total)

    node_id = 0
    prev_layer: list[int] = []
    for _ in range(sources):
        prev_layer.append(node_id)
        node_id += 1
        graph.add_node(SourceNode(rng.randint(volume_range.min, volume_range.max)))

    while remaining > 0:
        parents = [Link(id=parent, volume=1) for parent in prev_layer]
        layer = rng.randint(1, min(5, remaining))
        prev_layer = list(range(node_id, node_id + layer))
        for _ in range(layer):
            node_id += 1
            ratio = rng.uniform(filter_range.min, filter_range.max) / layer
            graph.add_node(FilterNode(ratio), parents)
        remaining -= layer

    sink_parents = [Link(id=index, volume=1) for index in sorted(graph.sinks) if index != node_id]
    graph.add_node(FilterNode(), sink_parents)
    return graph


def init_systems(params: Parameters) -> list[System]:
    """One system per scheduling strategy, each with the configured servers."""
    systems = [System(SingleHost()), System(RoundRobin()), System(New(params))]
    count = params.servers_count
    limits = params.servers_stat
    for system in systems:
        for _ in range(count):
            system.add_server(Server(limits))
    return systems


def _graph_json(graph: Graph) -> str:
    nodes = ",".join(
        '{{"id":"{}","val":{:g},"server":{}}}'.format(
            node.node_id,
            node.output_volume,
            "null" if node.server_id is None else node.server_id,
        )
        for node in graph.nodes
    )
    links = ",".join(
        f'{{"source":"{edge.source_id}","target":"{edge.destination_id}",'
        f'"volume":{edge.volume:g}}}'
        for edge in graph.edge_list
    )
    return f'{{"nodes":[{nodes}],"links":[{links}]}}'


class ModelApp:
    """Shared state of the simulation, guarded for use from several threads."""

    def __init__(self, params: Parameters | None = None, rng: random.Random | None = None) -> None:
        self.params = params if params is not None else Parameters()
        self.rng = rng if rng is not None else random.Random()
        self._lock = threading.RLock()
        self.systems: list[System] = []
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.systems = init_systems(self.params)

    def add_nodes(self, count: int) -> int:
        """Generate ``count`` graphs and give a copy of each to every system.

        Stops at the first failure, which is logged; returns how many graphs
        every system accepted.
        """
        added = 0
        with self._lock:
            try:
                for _ in range(count):
                    graph = generate_graph(self.params, self.rng)
                    graph.calculate_throughput()
                    for node in graph.nodes:
                        logger.info(
                            "Node #%d: %g -> %g",
                            node.node_id,
                            node.input_volume,
                            node.output_volume,
                        )
                    for system in self.systems:
                        if not system.execute_query(graph.copy()):
                            raise RuntimeError("cannot emplace")
                    added += 1
            except Exception as exc:  # noqa: BLE001 - reported, generation stops
                logger.error("%s", exc)
        return added

    def params_json(self) -> str:
        return self.params.to_json()

    def update_params(self, arguments: Mapping[str, str]) -> None:
        """Apply parameter updates and reschedule every graph."""
        with self._lock:
            self.params.update(arguments)
            for system in self.systems:
                system.reexecute_all()

    def servers_json(self) -> str:
        with self._lock:
            entries = []
            for system in self.systems:
                servers = ",".join(
                    f'{{"usage":{server.usages.to_json()},"limits":{server.limits.to_json()}}}'
                    for server in system.servers
                )
                entries.append(
                    f'{{"name":{json.dumps(system.scheduler_name)},"servers":[{servers}]}}'
                )
        return "[" + ",".join(entries) + "]"

    def graphs_json(self, index: int | None = None) -> str:
        """Every system's graphs, or only the graph at ``index`` of each."""
        with self._lock:
            entries = []
            for system in self.systems:
                if index is None:
                    graphs = list(system.graphs)
                else:
                    if not 0 <= index < len(system.graphs):
                        raise IndexError(f"no graph at index {index}")
                    graphs = [system.graphs[index]]
                body = ",".join(_graph_json(graph) for graph in graphs)
                entries.append(
                    f'{{"name":{json.dumps(system.scheduler_name)},"graphs":[{body}]}}'
                )
        return "[" + ",".join(entries) + "]"

    def tick(self) -> None:
        with self._lock:
            for system in self.systems:
                system.tick()


_Result = tuple[int, bytes, "str | None"]


def _routes(app: ModelApp) -> dict[str, Callable[[str, dict[str, str]], _Result]]:
    def reset(method: str, args: dict[str, str]) -> _Result:
        app.reset()
        return 200, b"", None

    def add_nodes(method: str, args: dict[str, str]) -> _Result:
        app.add_nodes(int(args["count"]))
        return 200, b"", None

    def params(method: str, args: dict[str, str]) -> _Result:
        if method == "GET":
            return 200, app.params_json().encode(), _JSON
        if method == "POST":
            app.update_params(args)
            return 200, b"", None
        return 404, b"", None

    def servers(method: str, args: dict[str, str]) -> _Result:
        return 200, app.servers_json().encode(), _JSON

    def graphs(method: str, args: dict[str, str]) -> _Result:
        index = int(args["id"]) if "id" in args else None
        return 200, app.graphs_json(index).encode(), _JSON

    return {
        "/api/reset": reset,
        "/api/addnodes": add_nodes,
        "/api/params": params,
        "/api/servers": servers,
        "/api/graphs": graphs,
    }


def make_server(
    app: ModelApp,
    host: str = "127.0.0.1",
    port: int = 8080,
    static_dir: str | Path | None = None,
) -> ThreadingHTTPServer:
    """An HTTP server for the JSON API, with static files under ``/front``."""
    directory = Path(static_dir) if static_dir is not None else Path.cwd() / "html"
    routes = _routes(app)

    class Handler(SimpleHTTPRequestHandler):
        def __init__(self, *args, **kwargs) -> None:
            super().__init__(*args, directory=str(directory), **kwargs)

        def log_message(self, format: str, *args) -> None:  # noqa: A002
            logger.debug("%s - %s", self.address_string(), format % args)

        def do_GET(self) -> None:
            self._dispatch("GET")

        def do_POST(self) -> None:
            self._dispatch("POST")

        def do_HEAD(self) -> None:
            self.send_error(405)

        def _respond(self, status: int, body: bytes, content_type: str | None) -> None:
            self.send_response(status)
            if content_type:
                self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _dispatch(self, method: str) -> None:
            url = urlsplit(self.path)
            if url.path == "/front" or url.path.startswith("/front/"):
                if method != "GET":
                    self.send_error(405)
                    return
                rest = url.path[len("/front"):] or "/"
                self.path = rest + (f"?{url.query}" if url.query else "")
                super().do_GET()
                return

            route = routes.get(url.path)
            if route is None:
                self.send_error(404)
                return

            args = dict(parse_qsl(url.query))
            if method == "POST":
                length = int(self.headers.get("Content-Length") or 0)
                if length:
                    args.update(parse_qsl(self.rfile.read(length).decode()))

            try:
                status, body, content_type = route(method, args)
            except IndexError as exc:
                self._respond(404, str(exc).encode(), "text/plain")
            except (KeyError, ValueError) as exc:
                self._respond(400, str(exc).encode(), "text/plain")
            except Exception as exc:  # noqa: BLE001 - reported to the client
                logger.exception("request failed")
                self._respond(500, str(exc).encode(), "text/plain")
            else:
                self._respond(status, body, content_type)

    return ThreadingHTTPServer((host, port), Handler)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="yqlmodel", description="Simulate query graph scheduling strategies."
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--static-dir", default=None, help="files served under /front")
    parser.add_argument("--tick-interval", type=float, default=0.05, help="seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    app = ModelApp()
    httpd = make_server(app, args.host, args.port, args.static_dir)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()

    try:
        while True:
            start = time.monotonic()
            try:
                app.tick()
            except Exception:  # noqa: BLE001 - keep the simulation running
                logger.exception("tick failed")
            time.sleep(max(0.0, start + args.tick_interval - time.monotonic()))
    except KeyboardInterrupt:
        pass
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join()
    return 0