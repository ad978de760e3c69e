from __future__ import annotations

from rpsim.core.runtime import SimulationRuntime
from rpsim.core.topology import Topology
from rpsim.core.types import INFINITY, ExternalEvent, Message
from rpsim.model.messages import DistanceVector


def _runtime(edges, n_nodes: int = 0) -> SimulationRuntime:
    runtime = SimulationRuntime(Topology.from_edges(edges, n_nodes=n_nodes), "dv")
    runtime.bootstrap()
    _drain(runtime)
    return runtime


def _drain(runtime: SimulationRuntime, limit: int = 10_000) -> int:
    delivered = 0
    pending = runtime.consume_outbound()
    while pending:
        for msg in pending:
            runtime.deliver(msg)
            delivered += 1
            assert delivered < limit
        pending = runtime.consume_outbound()
    return delivered


def _vector_from(runtime: SimulationRuntime, src: int, dst: int, overrides: dict | None = None) -> Message:
    costs = dict(runtime.state(src).cost[src])
    costs.update(overrides or {})
    return Message(tick_created=0, src=src, dst=dst, seq=0, payload=DistanceVector(costs=costs))


def test_dv_init_state_reads_link_costs_and_leaves_other_rows_unknown() -> None:
    runtime = SimulationRuntime(Topology.from_edges([(0, 1, 3)], n_nodes=3), "dv")
    ctx = runtime.context(0)
    runtime.topology.add_link(0, 1, 3)
    state = runtime.engines[0].init_state(ctx)

    assert state.cost[0] == {0: 0, 1: 3, 2: INFINITY}
    assert state.cost[1] == {0: INFINITY, 1: INFINITY, 2: INFINITY}
    assert state.via == {0: None, 1: None, 2: None}


def test_dv_line_converges_to_expected_table() -> None:
    runtime = _runtime([(0, 1, 1), (1, 2, 1), (2, 3, 1)])

    assert runtime.route_tables[0] == {1: (1, 1), 2: (1, 2), 3: (1, 3)}
    assert runtime.route_tables[3] == {0: (2, 3), 1: (2, 2), 2: (2, 1)}


def test_dv_prefers_direct_link_on_equal_cost() -> None:
    runtime = _runtime([(0, 1, 2), (0, 2, 1), (1, 2, 1)])

    assert runtime.route_tables[0][1] == (1, 2)


def test_dv_equal_cost_tie_goes_to_lowest_neighbor() -> None:
    runtime = _runtime([(0, 1, 1), (0, 2, 1), (1, 3, 1), (2, 3, 1)])

    assert runtime.route_tables[0][3] == (1, 2)
    assert runtime.state(0).via[3] == 1


def test_dv_duplicate_vector_sends_nothing_and_rewrites_no_route() -> None:
    runtime = _runtime([(0, 1, 1), (1, 2, 1), (2, 3, 1)])
    updates_before = runtime.route_updates

    runtime.deliver(_vector_from(runtime, src=1, dst=0))

    assert runtime.consume_outbound() == []
    assert runtime.route_updates == updates_before


def test_dv_next_hop_change_at_same_cost_updates_route_without_broadcast() -> None:
    runtime = _runtime([(0, 1, 1), (0, 2, 1), (1, 3, 1), (2, 3, 1)])
    updates_before = runtime.route_updates

    # Node 1 now claims a worse path to 3; node 2 offers the same total cost.
    runtime.deliver(_vector_from(runtime, src=1, dst=0, overrides={3: 5}))

    assert runtime.route_tables[0][3] == (2, 2)
    assert runtime.state(0).cost[0][3] == 2
    assert runtime.consume_outbound() == []
    assert runtime.route_updates == updates_before + 1


def test_dv_cost_increase_is_broadcast_to_finite_neighbors_only() -> None:
    runtime = _runtime([(0, 1, 1), (1, 2, 1), (2, 3, 1)])

    runtime.handle_event(5, ExternalEvent(tick=5, action="update_metric", params={"u": 0, "v": 1, "metric": 4}))
    outbound = runtime.consume_outbound()

    assert {(m.src, m.dst) for m in outbound} == {(0, 1), (1, 0), (1, 2)}
    assert all(isinstance(m.payload, DistanceVector) for m in outbound)
    assert runtime.state(0).cost[0][1] == 4


def test_dv_counts_to_infinity_after_only_path_fails() -> None:
    runtime = _runtime([(0, 1, 1), (1, 2, 1)])
    assert runtime.route_tables[0][2] == (1, 2)

    runtime.handle_event(10, ExternalEvent(tick=10, action="remove_link", params={"u": 1, "v": 2}))
    # Node 1 first re-learns the dead route through node 0.
    assert runtime.route_tables[1][2] == (0, 3)

    delivered = _drain(runtime)

    assert delivered > 100
    assert 2 not in runtime.route_tables[0]
    assert 2 not in runtime.route_tables[1]
    assert runtime.state(0).cost[0][2] == INFINITY
    assert runtime.state(1).cost[1][2] == INFINITY
    assert runtime.state(0).via[2] is None


def test_dv_link_failure_forgets_the_neighbor_vector() -> None:
    runtime = _runtime([(0, 1, 1), (1, 2, 1), (2, 0, 3)])

    runtime.handle_event(5, ExternalEvent(tick=5, action="remove_link", params={"u": 0, "v": 1}))

    assert runtime.state(0).cost[1] == {0: INFINITY, 1: INFINITY, 2: INFINITY}
    assert runtime.state(1).cost[0] == {0: INFINITY, 1: INFINITY, 2: INFINITY}


def test_dv_restored_link_resends_unchanged_vector_to_the_neighbor() -> None:
    runtime = _runtime([(0, 1, 5), (0, 2, 1), (2, 1, 1), (1, 3, 1)])
    runtime.handle_event(10, ExternalEvent(tick=10, action="remove_link", params={"u": 0, "v": 1}))
    _drain(runtime)
    runtime.handle_event(20, ExternalEvent(tick=20, action="update_metric", params={"u": 1, "v": 3, "metric": 4}))
    _drain(runtime)

    runtime.handle_event(30, ExternalEvent(tick=30, action="add_link", params={"u": 0, "v": 1, "metric": 5}))
    outbound = runtime.consume_outbound()

    assert {(m.src, m.dst) for m in outbound} == {(0, 1), (1, 0)}
    assert runtime.route_tables[0][3] == (2, 6)
    for msg in outbound:
        runtime.deliver(msg)
    _drain(runtime)
    assert runtime.route_tables[0][3] == (2, 6)
    assert runtime.state(0).cost[1][3] == 4
