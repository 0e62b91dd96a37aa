import itertools

from ticket_quality.controller import PERSISTENCE_NOTICE, DashboardController, build_dashboard
from ticket_quality.history import ScoreHistory
from ticket_quality.metric_store import MetricLocked, MetricStore
from ticket_quality.storage import MemoryStorage, PersistenceUnavailable


class FailingWrites(MemoryStorage):
    def write(self, payload):
        raise PersistenceUnavailable("disk full")


def fake_clock():
    counter = itertools.count()
    return lambda: f"2026-10-19T10:00:{next(counter):02d}.000Z"


def make_controller(storage=None, capacity=50):
    renders = []
    controller = build_dashboard(
        storage or MemoryStorage(),
        history=ScoreHistory(capacity),
        clock=fake_clock(),
    )
    controller.subscribe(lambda snap, samples: renders.append((snap, samples)))
    return controller, renders


def test_slider_move_records_sample_and_notifies():
    controller, renders = make_controller()
    assert controller.on_slider_moved("agent_empathy", 80) is True

    snap, samples = renders[-1]
    assert snap.metrics["agent_empathy"].value == 80
    assert len(samples) == 1
    assert samples[0].overall_score == 60
    assert samples[0].timestamp == "2026-10-19T10:00:00.000Z"


def test_time_to_resolution_sequence():
    controller, _ = make_controller()
    controller.on_slider_moved("time_to_resolution", 0)
    controller.on_slider_moved("time_to_resolution", 100)

    assert controller.snapshot().metrics["time_to_resolution"].value == 100
    scores = [s.overall_score for s in controller.samples()]
    # (50 + 50 + 0) / 3 and (50 + 50 + 100) / 3
    assert scores == [33, 67]


def test_locked_slider_move_snaps_back():
    controller, renders = make_controller()
    controller.on_slider_moved("customer_satisfaction", 30)
    controller.on_lock_toggled("customer_satisfaction")

    assert controller.on_slider_moved("customer_satisfaction", 90) is False
    assert isinstance(controller.last_rejection, MetricLocked)
    snap, samples = renders[-1]
    assert snap.metrics["customer_satisfaction"].value == 30
    assert len(samples) == 1


def test_invalid_key_and_value_rejected():
    controller, renders = make_controller()
    assert controller.on_slider_moved("nope", 10) is False
    assert controller.on_slider_moved("agent_empathy", "ten") is False
    assert controller.samples() == ()
    assert all(snap.overall_score == 50 for snap, _ in renders)


def test_lock_toggle_does_not_record_history():
    controller, renders = make_controller()
    assert controller.on_lock_toggled("agent_empathy") is True
    assert controller.snapshot().metrics["agent_empathy"].locked is True
    assert controller.samples() == ()
    assert renders[-1][0].metrics["agent_empathy"].locked is True

    assert controller.on_lock_toggled("agent_empathy") is True
    assert controller.snapshot().metrics["agent_empathy"].locked is False
    assert controller.snapshot().metrics["agent_empathy"].value == 50


def test_lock_toggle_unknown_key():
    controller, renders = make_controller()
    assert controller.on_lock_toggled("nope") is False
    assert renders == []


def test_unlock_allows_edits_again():
    controller, _ = make_controller()
    controller.on_lock_toggled("time_to_resolution")
    assert controller.on_slider_moved("time_to_resolution", 10) is False
    controller.on_lock_toggled("time_to_resolution")
    assert controller.on_slider_moved("time_to_resolution", 10) is True
    assert controller.snapshot().metrics["time_to_resolution"].value == 10


def test_rapid_moves_commit_last_value():
    controller, _ = make_controller(capacity=3)
    for value in range(20, 81, 20):
        controller.on_slider_moved("customer_satisfaction", value)
    assert controller.snapshot().metrics["customer_satisfaction"].value == 80
    assert len(controller.samples()) == 3


def test_persistence_failure_reported_once():
    controller, _ = make_controller(storage=FailingWrites())
    notices = []
    controller.subscribe_notice(notices.append)

    controller.on_slider_moved("agent_empathy", 10)
    controller.on_slider_moved("agent_empathy", 20)
    controller.on_lock_toggled("agent_empathy")

    assert notices == [PERSISTENCE_NOTICE]
    assert controller.snapshot().metrics["agent_empathy"].value == 20
    assert len(controller.samples()) == 2


def test_notice_queued_until_listener_subscribes():
    store = MetricStore(MemoryStorage())
    store.initialize()
    controller = DashboardController(store, ScoreHistory())
    controller.persistence_unavailable()

    notices = []
    controller.subscribe_notice(notices.append)
    assert notices == [PERSISTENCE_NOTICE]


def test_reload_restores_state_through_controller():
    storage = MemoryStorage()
    controller, _ = make_controller(storage)
    controller.on_slider_moved("customer_satisfaction", 50)
    controller.on_lock_toggled("agent_empathy")

    reloaded, _ = make_controller(storage)
    snap = reloaded.snapshot()
    assert snap.metrics["customer_satisfaction"].value == 50
    assert snap.metrics["agent_empathy"].locked is True
    assert reloaded.samples() == ()


def test_build_dashboard_keeps_given_history():
    history = ScoreHistory(capacity=2)
    controller = build_dashboard(MemoryStorage(), history=history, clock=fake_clock())
    assert controller.history is history

    for value in (10, 20, 30):
        controller.on_slider_moved("agent_empathy", value)
    assert len(history) == 2
    assert [s.metric_snapshot["agent_empathy"] for s in history.samples()] == [20, 30]


def test_huge_slider_value_is_clamped():
    controller, _ = make_controller()
    assert controller.on_slider_moved("agent_empathy", -(10**400)) is True
    assert controller.snapshot().metrics["agent_empathy"].value == 0
