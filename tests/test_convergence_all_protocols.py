from __future__ import annotations

from typing import Dict

import pytest

from rpsim.backends.emu import EmuBackend
from rpsim.core.topology import Topology
from rpsim.core.types import INFINITY

PROTOCOLS = ["dv", "ls", "pv"]


def _all_pairs(topology: Topology) -> Dict[int, Dict[int, float]]:
    nodes = topology.nodes()
    dist = {u: {v: (0 if u == v else INFINITY) for v in nodes} for u in nodes}
    for edge in topology.edge_list():
        dist[edge.u][edge.v] = min(dist[edge.u][edge.v], edge.metric)
        dist[edge.v][edge.u] = min(dist[edge.v][edge.u], edge.metric)
    for k in nodes:
        for i in nodes:
            for j in nodes:
                if dist[i][k] + dist[k][j] < dist[i][j]:
                    dist[i][j] = dist[i][k] + dist[k][j]
    return dist


def _assert_shortest_paths(run: dict, topology: Topology) -> None:
    dist = _all_pairs(topology)
    for src in topology.nodes():
        table = run["route_tables"][src]
        for dst in topology.nodes():
            if dst == src:
                assert dst not in table
                continue
            if dist[src][dst] >= INFINITY:
                assert dst not in table, (src, dst)
                continue
            next_hop, cost = table[dst]
            assert cost == dist[src][dst], (src, dst)
            link = topology.metric(src, next_hop)
            assert link is not None
            assert link + dist[next_hop][dst] == dist[src][dst], (src, dst)


def _cfg(protocol: str, topology: dict, **extra) -> dict:
    cfg = {
        "name": "convergence",
        "seed": 11,
        "protocol": protocol,
        "topology": topology,
        "engine": {"max_ticks": 2000},
        "network": {"base_delay": 1, "jitter": 0, "loss_prob": 0.0},
    }
    cfg.update(extra)
    return cfg


LINE4 = {"type": "edges", "n_nodes": 4, "edges": [[0, 1, 1], [1, 2, 1], [2, 3, 1]]}


@pytest.mark.parametrize("protocol", PROTOCOLS)
def test_line4_example_table_is_identical_for_every_protocol(protocol: str) -> None:
    run = EmuBackend().run(_cfg(protocol, LINE4))

    assert run["idle"] is True
    assert run["route_tables"][0] == {1: (1, 1), 2: (1, 2), 3: (1, 3)}


@pytest.mark.parametrize("protocol", PROTOCOLS)
@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_random_topology_matches_all_pairs_shortest_paths(protocol: str, seed: int) -> None:
    topo_cfg = {"type": "er", "n_nodes": 12, "p": 0.25, "default_metric": 1, "max_metric": 9}
    run = EmuBackend().run(_cfg(protocol, topo_cfg, seed=seed))

    assert run["idle"] is True
    assert run["converged_tick"] is not None
    _assert_shortest_paths(run, Topology.from_config(topo_cfg, seed=seed))


@pytest.mark.parametrize("protocol", PROTOCOLS)
def test_converges_with_jittered_delivery(protocol: str) -> None:
    topo_cfg = {"type": "grid", "rows": 3, "cols": 4, "default_metric": 2}
    cfg = _cfg(protocol, topo_cfg)
    cfg["network"] = {"base_delay": 1, "jitter": 3, "loss_prob": 0.0}
    run = EmuBackend().run(cfg)

    assert run["idle"] is True
    _assert_shortest_paths(run, Topology.from_config(topo_cfg))


@pytest.mark.parametrize("protocol", PROTOCOLS)
def test_reconverges_after_link_events(protocol: str) -> None:
    edges = [[0, 1, 1], [1, 2, 2], [2, 3, 1], [3, 4, 3], [4, 5, 1], [5, 0, 2]]
    events = [
        {"tick": 20, "action": "remove_link", "u": 1, "v": 2},
        {"tick": 40, "action": "update_metric", "u": 5, "v": 0, "metric": 7},
        {"tick": 60, "action": "add_link", "u": 0, "v": 3, "metric": 2},
    ]
    run = EmuBackend().run(_cfg(protocol, {"type": "edges", "edges": edges}, events=events))

    final = Topology.from_edges(edges)
    final.remove_link(1, 2)
    final.update_metric(5, 0, 7)
    final.add_link(0, 3, 2)

    assert run["idle"] is True
    assert run["events_applied"] == 3
    _assert_shortest_paths(run, final)


@pytest.mark.parametrize("protocol", PROTOCOLS)
def test_partition_removes_routes(protocol: str) -> None:
    edges = [[0, 1, 1], [1, 2, 1], [2, 3, 1]]
    events = [{"tick": 10, "action": "remove_link", "u": 1, "v": 2}]
    run = EmuBackend().run(_cfg(protocol, {"type": "edges", "edges": edges}, events=events))

    assert run["idle"] is True
    assert run["route_tables"][0] == {1: (1, 1)}
    assert run["route_tables"][3] == {2: (2, 1)}


def test_count_to_infinity_costs_more_messages_than_path_vector() -> None:
    cfg = {
        "type": "edges",
        "edges": [[0, 1, 1], [1, 2, 1]],
    }
    events = [{"tick": 10, "action": "remove_link", "u": 1, "v": 2}]
    runs = {p: EmuBackend().run(_cfg(p, cfg, events=events)) for p in PROTOCOLS}

    for run in runs.values():
        assert run["idle"] is True
        assert 2 not in run["route_tables"][0]
    assert runs["dv"]["messages_sent"] > 100
    assert runs["pv"]["messages_sent"] < runs["dv"]["messages_sent"]
    assert runs["ls"]["messages_sent"] < runs["dv"]["messages_sent"]
    # Counting up takes many ticks after the failure.
    assert runs["dv"]["converged_tick"] > runs["pv"]["converged_tick"]


@pytest.mark.parametrize("protocol", PROTOCOLS)
def test_restored_link_does_not_reuse_vector_from_before_failure(protocol: str) -> None:
    edges = [[0, 1, 5], [1, 2, 1], [1, 3, 1], [3, 0, 1]]
    events = [
        {"tick": 10, "action": "remove_link", "u": 0, "v": 1},
        {"tick": 20, "action": "update_metric", "u": 1, "v": 2, "metric": 8},
        {"tick": 30, "action": "add_link", "u": 0, "v": 1, "metric": 5},
    ]
    run = EmuBackend().run(_cfg(protocol, {"type": "edges", "edges": edges}, events=events))

    final = Topology.from_edges(edges)
    final.update_metric(1, 2, 8)

    assert run["idle"] is True
    assert run["route_tables"][0][2] == (3, 10)
    assert run["route_tables"][3][2] == (1, 9)
    _assert_shortest_paths(run, final)


@pytest.mark.parametrize("protocol", PROTOCOLS)
def test_restored_link_learns_costs_changed_while_it_was_down(protocol: str) -> None:
    # Neither endpoint's own vector changes when 0-1 comes back.
    edges = [[0, 1, 5], [0, 2, 1], [2, 1, 1], [1, 3, 1]]
    events = [
        {"tick": 10, "action": "remove_link", "u": 0, "v": 1},
        {"tick": 20, "action": "update_metric", "u": 1, "v": 3, "metric": 4},
        {"tick": 40, "action": "add_link", "u": 0, "v": 1, "metric": 5},
    ]
    run = EmuBackend().run(_cfg(protocol, {"type": "edges", "edges": edges}, events=events))

    final = Topology.from_edges(edges)
    final.update_metric(1, 3, 4)

    assert run["idle"] is True
    assert run["events_applied"] == 3
    assert run["route_tables"][0][3] == (2, 6)
    _assert_shortest_paths(run, final)
