import pytest

from fooddispatch import config
from fooddispatch.dispatch import DispatchEngine
from fooddispatch.errors import AlreadyBound, InvalidTransition, NoDriverAvailable, NoDriverReason
from fooddispatch.models import AssignmentStatus, Driver, DriverStatus, OrderStatus
from fooddispatch.notifications import EventKind
from fooddispatch.pool import DriverPool
from fooddispatch.strategies import AssignmentStrategy, HighestRatedDriverStrategy

from .conftest import RESTAURANT_LOCATION, north_of


class Script:
    """Responder that answers offers per driver id and records who was asked."""

    def __init__(self, declines=()):
        self.declines = set(declines)
        self.asked = []

    def __call__(self, driver, assignment):
        self.asked.append(driver.driver_id)
        return driver.driver_id not in self.declines


def fleet(n):
    pool = DriverPool()
    for i in range(n):
        pool.register(Driver(f"D{i:03d}", f"Driver {i}", location=north_of(RESTAURANT_LOCATION, 0.5 + i)))
    return pool


def test_nearest_driver_is_bound(engine, make_order, near_driver, far_driver, recorder):
    order = make_order()
    assignment = engine.assign(order)

    assert assignment.driver is near_driver
    assert assignment.status == AssignmentStatus.ACCEPTED
    assert order.assignment is assignment
    assert order.attempts == [assignment]
    assert order.status == OrderStatus.ACCEPTED
    assert near_driver.status == DriverStatus.BUSY
    assert far_driver.status == DriverStatus.AVAILABLE

    event = recorder.events[-1]
    assert event.kind == EventKind.DRIVER_ASSIGNED
    assert event.subject_id == near_driver.driver_id
    assert event.payload["order_id"] == order.order_id
    assert event.payload["assignment_id"] == assignment.assignment_id


def test_rejection_moves_on_to_next_candidate(pool, notifier, make_order, near_driver, far_driver):
    responder = Script(declines={"D001"})
    engine = DispatchEngine(pool, notifier=notifier, responder=responder)
    order = make_order()

    assignment = engine.assign(order)

    assert responder.asked == ["D001", "D002"]
    assert assignment.driver is far_driver
    first, second = order.attempts
    assert first.status == AssignmentStatus.REJECTED
    assert second is assignment
    assert first.assignment_id != second.assignment_id
    assert near_driver.status == DriverStatus.AVAILABLE


def test_attempt_budget_is_respected(make_order):
    pool = fleet(5)
    responder = Script(declines={d.driver_id for d in pool.all_drivers()})
    engine = DispatchEngine(pool, responder=responder)
    order = make_order()

    with pytest.raises(NoDriverAvailable) as exc:
        engine.assign(order, max_attempts=3)

    assert exc.value.reason == NoDriverReason.ATTEMPTS_EXHAUSTED
    assert exc.value.attempts == 3
    assert responder.asked == ["D000", "D001", "D002"]
    assert len(order.attempts) == 3
    assert all(d.status == DriverStatus.AVAILABLE for d in pool.all_drivers())
    assert order.status == OrderStatus.ACCEPTED
    assert order.assignment is None


def test_all_candidates_rejecting(pool, make_order):
    responder = Script(declines={"D001", "D002"})
    engine = DispatchEngine(pool, responder=responder)
    order = make_order()

    with pytest.raises(NoDriverAvailable) as exc:
        engine.assign(order, max_attempts=5)

    assert exc.value.reason == NoDriverReason.CANDIDATES_EXHAUSTED
    assert exc.value.attempts == 2
    assert [a.status for a in order.attempts] == [AssignmentStatus.REJECTED] * 2
    assert all(d.status == DriverStatus.AVAILABLE for d in pool.all_drivers())


def test_empty_pool_is_reported(make_order):
    engine = DispatchEngine(DriverPool())
    with pytest.raises(NoDriverAvailable) as exc:
        engine.assign(make_order())
    assert exc.value.reason == NoDriverReason.POOL_EMPTY
    assert exc.value.attempts == 0


def test_strategy_returning_nobody(pool, make_order):
    class Nobody(AssignmentStrategy):
        def select_driver(self, order, candidates):
            return None

    engine = DispatchEngine(pool, strategy=Nobody())
    with pytest.raises(NoDriverAvailable) as exc:
        engine.assign(make_order())
    assert exc.value.reason == NoDriverReason.NO_CANDIDATE


def test_busy_driver_in_stale_snapshot_costs_an_attempt(pool, make_order, near_driver, far_driver):
    class Stale(AssignmentStrategy):
        """Ignores availability, like a strategy reading an old snapshot."""
        def select_driver(self, order, candidates):
            return candidates[0] if candidates else None

    engine = DispatchEngine(pool, strategy=Stale())
    first = make_order()
    engine.assign(first)
    assert first.driver is near_driver

    second = make_order()
    # near_driver is busy but still listed first in this forced snapshot
    pool.list_available = lambda: [near_driver, far_driver]
    assignment = engine.assign(second)
    assert assignment.driver is far_driver
    assert [a.status for a in second.attempts] == [AssignmentStatus.REJECTED, AssignmentStatus.ACCEPTED]
    assert near_driver.current_assignment is first.assignment


def test_default_budget_comes_from_config(pool, make_order, monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_MAX_ATTEMPTS", 1)
    engine = DispatchEngine(pool, responder=Script(declines={"D001"}))
    with pytest.raises(NoDriverAvailable) as exc:
        engine.assign(make_order())
    assert exc.value.reason == NoDriverReason.ATTEMPTS_EXHAUSTED
    assert exc.value.attempts == 1


def test_invalid_budget(engine, make_order):
    with pytest.raises(ValueError):
        engine.assign(make_order(), max_attempts=0)


@pytest.mark.parametrize("steps", [[], ["start_preparation", "mark_ready", "pick_up"], ["cancel"]])
def test_order_must_be_dispatchable(engine, make_order, steps):
    order = make_order(accepted=bool(steps))
    for step in steps:
        getattr(order, step)()
    with pytest.raises(InvalidTransition) as exc:
        engine.assign(order)
    assert exc.value.operation == "dispatch"
    assert order.attempts == []


def test_preparing_and_ready_orders_can_be_dispatched(engine, make_order):
    order = make_order()
    order.start_preparation()
    order.mark_ready()
    assert engine.assign(order).status == AssignmentStatus.ACCEPTED


def test_second_dispatch_is_refused(engine, make_order, far_driver):
    order = make_order()
    engine.assign(order)
    with pytest.raises(AlreadyBound):
        engine.assign(order)
    assert far_driver.status == DriverStatus.AVAILABLE
    assert len(order.attempts) == 1


def test_losing_concurrent_bind_releases_driver(pool, notifier, recorder, make_order, near_driver, far_driver):
    order = make_order()
    inner = []

    def dispatched_again_meanwhile(driver, assignment):
        if not inner:
            inner.append(engine.assign(order))
        return True

    engine = DispatchEngine(pool, notifier=notifier, responder=dispatched_again_meanwhile)
    with pytest.raises(AlreadyBound):
        engine.assign(order)

    winner = inner[0]
    assert order.assignment is winner
    assert winner.driver is near_driver
    assert near_driver.status == DriverStatus.BUSY

    losing = order.attempts[-1]
    assert losing.driver is far_driver
    assert losing.status == AssignmentStatus.CANCELLED
    assert far_driver.status == DriverStatus.AVAILABLE
    assert far_driver.current_assignment is None
    assert [a.status for a in order.attempts] == [
        AssignmentStatus.REJECTED,
        AssignmentStatus.ACCEPTED,
        AssignmentStatus.CANCELLED,
    ]

    assert recorder.kinds()[-1] == EventKind.DRIVER_RELEASED
    assert recorder.events[-1].subject_id == far_driver.driver_id
    assert recorder.events[-1].payload["reason"] == "dispatch aborted"


def test_cancel_while_offer_outstanding_releases_driver(pool, notifier, recorder, make_order, near_driver):
    order = make_order()

    def customer_cancels_meanwhile(driver, assignment):
        order.cancel()
        return True

    engine = DispatchEngine(pool, notifier=notifier, responder=customer_cancels_meanwhile)
    with pytest.raises(InvalidTransition) as exc:
        engine.assign(order)

    assert exc.value.state == OrderStatus.CANCELLED
    (assignment,) = order.attempts
    assert assignment.status == AssignmentStatus.CANCELLED
    assert order.assignment is None
    assert near_driver.status == DriverStatus.AVAILABLE
    assert near_driver.current_assignment is None
    assert recorder.kinds()[-1] == EventKind.DRIVER_RELEASED


def test_responder_failure_propagates_and_rejects(pool, make_order, near_driver):
    def broken(driver, assignment):
        raise ConnectionError("driver app unreachable")

    engine = DispatchEngine(pool, responder=broken)
    order = make_order()
    with pytest.raises(ConnectionError):
        engine.assign(order)
    assert order.attempts[0].status == AssignmentStatus.REJECTED
    assert near_driver.status == DriverStatus.AVAILABLE


def test_strategy_is_swappable(engine, make_order, far_driver):
    engine.set_strategy(HighestRatedDriverStrategy())
    assert engine.assign(make_order()).driver is far_driver
