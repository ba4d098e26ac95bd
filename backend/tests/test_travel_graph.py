from schemas.itinerary import ORIGIN_NODE_ID, TravelLeg
from modules.planning.travel_graph import build_travel_graph

from factories import HOME, FixedTravel, make_place


def _build(places, provider, **kw):
    return build_travel_graph(HOME, places, provider, call_delay_s=0, sleep=lambda s: None, **kw)


def test_graph_is_complete_over_origin_and_places():
    places = [make_place("a"), make_place("b"), make_place("c")]
    provider = FixedTravel(600)
    graph = _build(places, provider)

    assert graph.node_ids == [ORIGIN_NODE_ID, "a", "b", "c"]
    assert graph.is_complete()
    assert len(graph.edges) == 12
    assert provider.calls == 12
    assert graph.get("a", "b").minutes == 10


def test_failed_pair_gets_fallback_edge():
    class Flaky:
        def travel_time(self, origin, destination, mode=None):
            if destination == (HOME[0] + 0.02, HOME[1]):
                raise TimeoutError("provider down")
            return TravelLeg(duration_seconds=300)

    places = [make_place("a"), make_place("b", lat=HOME[0] + 0.02, lon=HOME[1])]
    graph = _build(places, Flaky())

    edge = graph.get(ORIGIN_NODE_ID, "b")
    assert edge.is_fallback
    assert edge.duration_seconds == 900
    assert edge.instructions.startswith("Estimated travel time")
    assert not graph.get(ORIGIN_NODE_ID, "a").is_fallback
    assert graph.is_complete()


def test_none_answer_becomes_fallback():
    class Nothing:
        def travel_time(self, origin, destination, mode=None):
            return None

    graph = _build([make_place("a")], Nothing())
    assert all(e.is_fallback for e in graph.edges.values())


def test_place_without_coordinates_is_not_queried():
    provider = FixedTravel()
    places = [make_place("a"), make_place("nowhere", lat=None, lon=None)]
    graph = _build(places, provider)

    edge = graph.get("a", "nowhere")
    assert edge.is_fallback
    assert "invalid coordinates" in edge.instructions
    assert provider.calls == 2   # origin <-> a only
    assert graph.is_complete()


def test_place_cap_limits_nodes():
    places = [make_place(f"p{i}") for i in range(10)]
    graph = _build(places, FixedTravel(), max_places=3)
    assert graph.node_ids == [ORIGIN_NODE_ID, "p0", "p1", "p2"]
    assert len(graph.edges) == 12


def test_sleeps_between_calls_only():
    slept = []
    build_travel_graph(HOME, [make_place("a")], FixedTravel(), call_delay_s=0.2, sleep=slept.append)
    assert slept == [0.2]
