import random
import threading

import pytest

from edge_lb.errors import ConfigError, NoHealthyBackends
from edge_lb.services.algorithms.random_choice import RandomAlgorithm
from edge_lb.services.algorithms.round_robin import RoundRobinAlgorithm
from edge_lb.services.picker import Picker
from edge_lb.services.registry import BackendRegistry, backend_url


@pytest.mark.parametrize(
    "authority, path, expected",
    [
        ("localhost:8081", "/", "http://localhost:8081/"),
        ("10.0.0.7:80", "/health", "http://10.0.0.7:80/health"),
        ("8081", "/health", "http://localhost:8081/health"),
        (":8082", "items", "http://localhost:8082/items"),
    ],
)
def test_backend_url(authority, path, expected):
    assert backend_url(authority, path) == expected


def test_registry_starts_empty_and_swaps_wholesale():
    registry = BackendRegistry()
    assert registry.snapshot() == ()
    assert registry.cycles == 0

    before = registry.snapshot()
    previous = registry.swap(["a:1", "b:2"])

    assert previous == ()
    assert before == ()
    assert registry.snapshot() == ("a:1", "b:2")
    assert registry.cycles == 1
    assert registry.last_swap_at is not None


def test_swap_copies_its_input():
    registry = BackendRegistry()
    new_set = ["a:1"]
    registry.swap(new_set)
    new_set.append("b:2")
    assert registry.snapshot() == ("a:1",)


def test_round_robin_visits_backends_in_configured_order():
    registry = BackendRegistry(["A", "B"])
    picker = Picker(registry, "round_robin")
    assert [picker.pick() for _ in range(4)] == ["A", "B", "A", "B"]


def test_round_robin_covers_every_backend_once_per_turn():
    backends = ["a:1", "b:2", "c:3", "d:4", "e:5"]
    picker = Picker(BackendRegistry(backends))
    assert [picker.pick() for _ in range(len(backends))] == backends


def test_round_robin_cursor_is_not_reset_by_a_swap():
    registry = BackendRegistry(["A", "B", "C"])
    picker = Picker(registry)
    assert picker.pick() == "A"

    registry.swap(["A", "C"])
    # cursor is 1: 1 % 2 -> "C", then 2 % 2 -> "A"
    assert [picker.pick(), picker.pick()] == ["C", "A"]


@pytest.mark.parametrize("algorithm", [RoundRobinAlgorithm(), RandomAlgorithm()])
def test_empty_snapshot_raises_no_healthy_backends(algorithm):
    registry = BackendRegistry()
    with pytest.raises(NoHealthyBackends):
        algorithm.pick(registry)


def test_empty_pick_does_not_advance_cursor():
    registry = BackendRegistry()
    picker = Picker(registry)
    with pytest.raises(NoHealthyBackends):
        picker.pick()
    registry.swap(["A", "B"])
    assert picker.pick() == "A"


def test_random_only_returns_healthy_members():
    registry = BackendRegistry(["a:1", "b:2", "c:3"])
    algo = RandomAlgorithm(random.Random(7))
    picks = [algo.pick(registry) for _ in range(300)]
    assert set(picks) == {"a:1", "b:2", "c:3"}
    assert algo.request_count == 300


def test_picker_rejects_unknown_policy():
    with pytest.raises(ConfigError):
        Picker(BackendRegistry(), "weighted")


def test_picker_reports_its_policy():
    assert Picker(BackendRegistry(), "random").policy == "random"


def test_concurrent_swaps_never_cause_out_of_range_picks():
    sets = [["a"], ["a", "b"], ["a", "b", "c"], ["c", "d", "e", "f"], []]
    universe = {b for s in sets for b in s}
    registry = BackendRegistry(["a"])
    picker = Picker(registry)
    errors: list[BaseException] = []
    stop = threading.Event()

    def swapper():
        rng = random.Random(1)
        while not stop.is_set():
            registry.swap(rng.choice(sets))

    def reader():
        try:
            for _ in range(5000):
                try:
                    assert picker.pick() in universe
                except NoHealthyBackends:
                    pass
        except BaseException as e:  # noqa: BLE001 - collected and re-raised in the test thread
            errors.append(e)

    swap_thread = threading.Thread(target=swapper)
    readers = [threading.Thread(target=reader) for _ in range(4)]
    swap_thread.start()
    for t in readers:
        t.start()
    for t in readers:
        t.join()
    stop.set()
    swap_thread.join()

    assert errors == []
