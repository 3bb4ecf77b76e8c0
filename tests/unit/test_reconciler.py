from a10_bgp.reconciler import NeighborReconciler

from conftest import NEIGHBOR_PATH, FakeResponse, build_node, seed_neighbors

SELECTOR = "bgp=cilium"


def build_reconciler(client, session, *neighbors):
    seed_neighbors(session, *[(address, 54321) for address in neighbors])
    client.fetch_neighbors()
    session.calls.clear()
    return NeighborReconciler(client, SELECTOR)


def test_desired_addresses_skips_ineligible_and_duplicates(client):
    reconciler = NeighborReconciler(client, SELECTOR)
    nodes = [
        build_node("n1", external_ip="1.2.3.4"),
        build_node("n2", external_ip="1.2.3.4"),
        build_node("n3", external_ip="5.6.7.8", cordoned=True),
        build_node("n4", external_ip="9.9.9.9"),
    ]

    assert reconciler.desired_addresses(nodes) == ["1.2.3.4", "9.9.9.9"]


def test_full_reconcile_removes_only_extras(client, session):
    reconciler = build_reconciler(client, session, "1.2.3.4", "5.6.7.8")

    removed = reconciler.full_reconcile([build_node("n1", external_ip="1.2.3.4")])

    assert removed == ["5.6.7.8"]
    deletes = session.calls_for("DELETE")
    assert [c["path"] for c in deletes] == [f"{NEIGHBOR_PATH}/5.6.7.8"]
    assert client.neighbors == ("1.2.3.4",)


def test_full_reconcile_never_adds(client, session):
    reconciler = build_reconciler(client, session)

    removed = reconciler.full_reconcile([build_node("n1", external_ip="1.2.3.4")])

    assert removed == []
    assert session.calls == []
    assert client.neighbors == ()


def test_add_event_adds_eligible_node(client, session):
    reconciler = build_reconciler(client, session)

    reconciler.on_node_added(build_node("n1"))
    reconciler.on_node_added(build_node("n2", labels={}, external_ip="5.6.7.8"))

    assert client.neighbors == ("1.2.3.4",)
    assert len(session.calls_for("POST", NEIGHBOR_PATH)) == 1


def test_update_event_removes_node_that_became_ineligible(client, session):
    reconciler = build_reconciler(client, session, "1.2.3.4")

    reconciler.on_node_updated(build_node("n1", cordoned=True))

    assert client.neighbors == ()
    assert len(session.calls_for("DELETE")) == 1


def test_update_event_adds_eligible_node(client, session):
    reconciler = build_reconciler(client, session)

    reconciler.on_node_updated(build_node("n1"))

    assert client.neighbors == ("1.2.3.4",)


def test_update_without_address_uses_last_known_address(client, session):
    reconciler = build_reconciler(client, session)
    reconciler.on_node_added(build_node("n1"))

    reconciler.on_node_updated(build_node("n1", external_ip=None))

    assert client.neighbors == ()
    (delete,) = session.calls_for("DELETE")
    assert delete["path"] == f"{NEIGHBOR_PATH}/1.2.3.4"


def test_update_without_any_known_address_is_a_no_op(client, session):
    reconciler = build_reconciler(client, session, "1.2.3.4")

    reconciler.on_node_updated(build_node("n9", external_ip=None))

    assert session.calls == []
    assert client.neighbors == ("1.2.3.4",)


def test_delete_event_removes_labeled_node(client, session):
    reconciler = build_reconciler(client, session, "1.2.3.4")

    reconciler.on_node_deleted(build_node("n1"))

    assert client.neighbors == ()


def test_delete_event_skips_unlabeled_node(client, session):
    reconciler = build_reconciler(client, session, "1.2.3.4")

    reconciler.on_node_deleted(build_node("n1", labels={"bgp": "other"}))

    assert session.calls == []
    assert client.neighbors == ("1.2.3.4",)


def test_device_errors_do_not_escape_event_handlers(client, session):
    reconciler = build_reconciler(client, session)
    session.queue("POST", NEIGHBOR_PATH, FakeResponse(500, {}))

    reconciler.on_node_added(build_node("n1"))

    assert client.neighbors == ()
    assert len(session.calls_for("POST", NEIGHBOR_PATH)) == 3

    session.queue("POST", NEIGHBOR_PATH, FakeResponse(200, {}))
    reconciler.on_node_updated(build_node("n1"))

    assert client.neighbors == ("1.2.3.4",)
