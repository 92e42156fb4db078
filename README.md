# yqlmodel

yqlmodel is a small simulation model. It compares how different schedulers
place streaming query graphs onto a cluster of servers.

The model generates random query graphs. In each graph, source nodes feed
layers of filter nodes, and every path ends in a single sink. A copy of each
graph is given to several systems. Each system has its own scheduler and its
own set of servers. As data flows through the graphs, the model tracks CPU,
memory and network use for every server.

## Schedulers

All schedulers live in `yqlmodel.schedulers`. When no server can take what has
to be placed, they raise `SchedulingError`.

- `SingleHost` puts a whole graph onto one server. It tries the servers in
  turn, starting from a cursor that moves on after each attempt.
- `RoundRobin` places the nodes of a graph one at a time. Each node goes to
  the next server that has room for it.
- `New` handles graphs with more nodes than `max_count_local`; smaller graphs
  are passed to `SingleHost`. For the larger graphs it works in three steps:
  1. It groups nodes joined by edges whose last measured traffic is at least
     `max_distributed_traffic` into clusters.
  2. It puts each cluster on the least CPU-loaded server that has room for its
     memory and CPU needs.
  3. If that fails, it takes back the partial placement and tries again with
     the memory limit alone.

A server's room is judged by memory. `Stats.__le__` compares memory only.
`Stats.fits_within` compares every component.

## Installation

```
pip install .
```

## Running the model

```
yqlmodel
```

The `yqlmodel` command does two things:

- It starts the simulation loop, which ticks every system every
  `--tick-interval` seconds (0.05 by default).
- It serves an HTTP API on `--host` and `--port` (`127.0.0.1:8080` by
  default).

Files under `--static-dir` are served at `/front`. Without that option, the
`html` directory in the current working directory is used. Stop the command
with Ctrl-C.

### HTTP API

Arguments are taken from the query string. For POST requests they are also
taken from a form-encoded body.

| Path            | Method      | Effect                                                          |
|-----------------|-------------|-----------------------------------------------------------------|
| `/api/reset`    | GET or POST | Rebuild all systems with fresh servers                          |
| `/api/addnodes` | GET or POST | `count=N`: generate N graphs and schedule them on every system  |
| `/api/params`   | GET         | Current parameters as JSON                                      |
| `/api/params`   | POST        | Update parameters and reschedule all graphs                     |
| `/api/servers`  | GET or POST | Usage and limits of every server, per scheduler                 |
| `/api/graphs`   | GET or POST | All graphs, or with `id=N` the graph at index N, with placement |
| `/front/...`    | GET         | Static files                                                    |

Error responses have a plain-text body:

| Status | When                                                   |
|--------|--------------------------------------------------------|
| 404    | Unknown path, or a graph index out of range            |
| 400    | A missing or malformed argument, or an unknown parameter |
| 500    | Any other failure                                      |
| 405    | HEAD requests, or non-GET requests under `/front`      |

For `/api/addnodes`, generation stops at the first graph that cannot be
scheduled. The failure is logged, and the graphs added before it stay in
place.

### Parameters

These parameters can be updated through `/api/params`:

- `graph_size`
- `source_volume`
- `filter_volume`
- `servers_count`
- `servers_stat`
- `max_count_local`

Write ranges as `min,max` and `servers_stat` as `cpu,memory,network,disk`.

`max_distributed_traffic` is reported in the JSON but cannot be changed. Any
other name is rejected.

Changes to `servers_count` and `servers_stat` take effect on the next reset.

## Library use

```python
import random

from yqlmodel.app import ModelApp
from yqlmodel.params import Parameters

app = ModelApp(Parameters(), random.Random(1))
app.add_nodes(3)
app.tick()
print(app.servers_json())
print(app.graphs_json(None))
```

The building blocks live in these modules. You can use them to build and
schedule graphs by hand.

| Module                | Contents                                         |
|-----------------------|--------------------------------------------------|
| `yqlmodel.stats`      | `Stats`, `parse_value`, `to_json_value`          |
| `yqlmodel.params`     | `Parameters`, `Range`                            |
| `yqlmodel.nodes`      | `Node`, `SourceNode`, `FilterNode`, `NetworkMode`, `Volume` |
| `yqlmodel.graph`      | `Graph`, `Link`, `FullLink`                      |
| `yqlmodel.server`     | `Server`                                         |
| `yqlmodel.schedulers` | `Scheduler`, `SingleHost`, `RoundRobin`, `New`, `SchedulingError` |
| `yqlmodel.system`     | `System`                                         |
| `yqlmodel.app`        | `ModelApp`, `generate_graph`, `init_systems`, `make_server`, `main` |

## What it does not do

All state is kept in memory, and nothing is saved. Systems, graphs and
parameters are lost when the process stops.