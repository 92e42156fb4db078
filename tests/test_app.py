import json
import random
import threading
import urllib.error
import urllib.request

import pytest

from yqlmodel.app import ModelApp, generate_graph, init_systems, make_server
from yqlmodel.nodes import FilterNode, SourceNode
from yqlmodel.params import Parameters


def small_params() -> Parameters:
    params = Parameters()
    params.update({"graph_size": "3,8"})
    return params


@pytest.fixture
def app() -> ModelApp:
    return ModelApp(small_params(), random.Random(7))


@pytest.mark.parametrize("seed", range(10))
def test_generate_graph_invariants(seed):
    params = small_params()
    graph = generate_graph(params, random.Random(seed))
    assert 3 <= graph.size <= 8
    assert len(graph.nodes) == graph.size
    assert graph.sinks == {graph.size - 1}
    assert graph.sources == {0}
    assert isinstance(graph[0], SourceNode)
    assert 100 <= graph[0].rate <= 500
    sink = graph[graph.size - 1]
    assert isinstance(sink, FilterNode)
    assert sink.filter_ratio == 1.0


def test_generate_graph_source_count_scales_with_size():
    params = Parameters()
    params.update({"graph_size": "20,20"})
    graph = generate_graph(params, random.Random(3))
    assert graph.size == 20
    assert graph.sources == {0, 1}
    assert graph.sinks == {19}


def test_generate_graph_smallest():
    params = Parameters()
    params.update({"graph_size": "2,2"})
    graph = generate_graph(params, random.Random(0))
    edges = graph.edge_list
    assert len(edges) == 1
    assert edges[0].source_id == graph[0].node_id
    assert edges[0].destination_id == graph[1].node_id


def test_generate_graph_too_small():
    params = Parameters()
    params.update({"graph_size": "1,1"})
    with pytest.raises(ValueError):
        generate_graph(params, random.Random(0))


def test_init_systems():
    params = Parameters()
    systems = init_systems(params)
    assert [s.scheduler_name for s in systems] == ["SingleHost", "RoundRobin", "New"]
    for system in systems:
        assert len(system.servers) == params.servers_count
        assert all(server.limits == params.servers_stat for server in system.servers)


def test_add_nodes_places_copies_in_every_system(app):
    assert app.add_nodes(3) == 3
    for system in app.systems:
        assert len(system.graphs) == 3
    first_ids = {node.node_id for node in app.systems[0].graphs[0].nodes}
    second_ids = {node.node_id for node in app.systems[1].graphs[0].nodes}
    assert first_ids.isdisjoint(second_ids)


def test_add_nodes_stops_on_failure():
    params = small_params()
    params.update({"servers_stat": "1000,1,1000,0"})
    app = ModelApp(params, random.Random(1))
    assert app.add_nodes(2) == 0


def test_reset_clears_graphs(app):
    app.add_nodes(2)
    app.reset()
    assert all(system.graphs == [] for system in app.systems)
    assert len(app.systems) == 3


def test_params_json_round_trip(app):
    data = json.loads(app.params_json())
    assert data["servers_count"] == 10
    assert data["graph_size"] == {"min": 3, "max": 8}


def test_update_params_reschedules(app):
    app.add_nodes(2)
    app.update_params({"max_count_local": "100"})
    assert app.params.max_count_local == 100
    for system in app.systems:
        assert len(system.graphs) == 2
        placed = sum(len(server.nodes) for server in system.servers)
        assert placed == sum(graph.size for graph in system.graphs)


def test_update_params_unknown(app):
    with pytest.raises(ValueError):
        app.update_params({"bogus": "1"})


def test_servers_json(app):
    app.add_nodes(1)
    data = json.loads(app.servers_json())
    assert [entry["name"] for entry in data] == ["SingleHost", "RoundRobin", "New"]
    for entry in data:
        assert len(entry["servers"]) == 10
        assert set(entry["servers"][0]["usage"]) == {"cpu", "memory", "network", "disk"}
        assert entry["servers"][0]["limits"]["memory"] == 100000


def test_graphs_json(app):
    app.add_nodes(2)
    data = json.loads(app.graphs_json())
    for entry, system in zip(data, app.systems):
        assert entry["name"] == system.scheduler_name
        assert len(entry["graphs"]) == 2
        for graph_data, graph in zip(entry["graphs"], system.graphs):
            ids = [node["id"] for node in graph_data["nodes"]]
            assert ids == [str(node.node_id) for node in graph.nodes]
            assert all(0 <= node["server"] < 10 for node in graph_data["nodes"])
            for link in graph_data["links"]:
                assert link["source"] in ids
                assert link["target"] in ids


def test_graphs_json_single_index(app):
    app.add_nodes(2)
    data = json.loads(app.graphs_json(1))
    assert all(len(entry["graphs"]) == 1 for entry in data)
    with pytest.raises(IndexError):
        app.graphs_json(5)


def test_tick_keeps_memory_consistent(app):
    app.add_nodes(3)
    app.tick()
    for system in app.systems:
        used = sum(server.usages.memory for server in system.servers)
        expected = sum(node.input_volume for g in system.graphs for node in g.nodes)
        assert used == pytest.approx(expected)


@pytest.fixture
def http_app(app, tmp_path):
    (tmp_path / "index.html").write_text("hello")
    httpd = make_server(app, "127.0.0.1", 0, tmp_path)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield app, f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()
    thread.join()


def _get(url):
    with urllib.request.urlopen(url, timeout=5) as response:
        return response.status, response.read()


def _status(url):
    try:
        with urllib.request.urlopen(url, timeout=5) as response:
            return response.status
    except urllib.error.HTTPError as error:
        return error.code


def test_http_params_get_and_post(http_app):
    app, base = http_app
    status, body = _get(base + "/api/params")
    assert status == 200
    assert json.loads(body)["max_count_local"] == 1
    request = urllib.request.Request(
        base + "/api/params", data=b"max_count_local=4", method="POST"
    )
    with urllib.request.urlopen(request, timeout=5) as response:
        assert response.status == 200
    assert app.params.max_count_local == 4


def test_http_addnodes_and_graphs(http_app):
    app, base = http_app
    status, _ = _get(base + "/api/addnodes?count=2")
    assert status == 200
    status, body = _get(base + "/api/graphs?id=0")
    data = json.loads(body)
    assert all(len(entry["graphs"]) == 1 for entry in data)
    status, body = _get(base + "/api/servers")
    assert len(json.loads(body)) == 3


def test_http_errors(http_app):
    app, base = http_app
    assert _status(base + "/api/nothing") == 404
    assert _status(base + "/api/addnodes") == 400
    assert _status(base + "/api/graphs?id=3") == 404
    assert all(system.graphs == [] for system in app.systems)


def test_http_static_files(http_app):
    _, base = http_app
    status, body = _get(base + "/front/index.html")
    assert status == 200
    assert body == b"hello"