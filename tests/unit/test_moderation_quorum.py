"""Anonymous flagging and quorum-based silent removal."""

from __future__ import annotations

import pytest

from campfire.rooms.events import PARTICIPANT_REMOVED
from campfire.rooms.events import ROOM_UPDATE
from campfire.rooms.events import SESSION_DISSOLVED
from campfire.rooms.moderation import fixed_quorum
from campfire.rooms.moderation import majority_quorum
from campfire.rooms.moderation import resolve_quorum_policy
from tests.unit.room_testkit import RegistryHarness
from tests.unit.room_testkit import events_for
from tests.unit.room_testkit import recipients_of

EIGHT = ["X", "A", "B", "C", "D", "E", "F", "G"]


def _start_eight(threshold: int = 3) -> RegistryHarness:
    harness = RegistryHarness(capacity=8, quorum_policy=fixed_quorum(threshold))
    harness.connect(*EIGHT)
    harness.join(*EIGHT)
    harness.ready_all(*EIGHT)
    return harness


@pytest.mark.parametrize(
    ("capacity", "expected"),
    [(2, 2), (3, 2), (4, 3), (5, 3), (8, 5), (9, 5)],
)
def test_majority_quorum_has_floor_of_two(capacity: int, expected: int) -> None:
    """Input: capacity -> Output: max(2, capacity // 2 + 1)."""
    assert majority_quorum(capacity) == expected


def test_fixed_quorum_ignores_capacity() -> None:
    """Input: fixed(3) for several capacities -> Output: always 3."""
    policy = fixed_quorum(3)
    assert [policy(capacity) for capacity in (2, 8, 20)] == [3, 3, 3]


def test_resolve_quorum_policy_by_name() -> None:
    """Input: policy names -> Output: matching callables, unknown name rejected."""
    assert resolve_quorum_policy("majority") is majority_quorum
    assert resolve_quorum_policy("fixed", fixed_threshold=4)(8) == 4
    with pytest.raises(ValueError):
        resolve_quorum_policy("unanimous")
    with pytest.raises(ValueError):
        fixed_quorum(0)


def test_three_distinct_flags_silently_remove_target() -> None:
    """Input: capacity 8, threshold 3, A/B/C flag X -> Output: X dissolved alone, others see removal."""
    harness = _start_eight()

    assert harness.registry.flag("A", "X") == []
    assert harness.registry.flag("B", "X") == []
    deliveries = harness.registry.flag("C", "X")

    assert events_for(deliveries, "X") == [(SESSION_DISSOLVED, {})]
    assert deliveries[0].recipient == "X"
    remaining = EIGHT[1:]
    assert recipients_of(deliveries, PARTICIPANT_REMOVED) == set(remaining)
    for member in remaining:
        assert events_for(deliveries, member) == [
            (ROOM_UPDATE, {"participants": 7, "readyCount": 7}),
            (PARTICIPANT_REMOVED, {"peerId": "X", "newPeers": remaining}),
        ]
    assert harness.registry.find_room_id_by_connection("X") is None
    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("A"))
    assert "X" not in room.flags


def test_repeat_flags_from_same_accuser_count_once() -> None:
    """Input: A flags X three times, B once -> Output: no removal, two distinct accusers."""
    harness = _start_eight()

    for _ in range(3):
        assert harness.registry.flag("A", "X") == []
    assert harness.registry.flag("B", "X") == []

    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("X"))
    assert room.flags["X"] == {"A", "B"}
    assert "X" in room.participants


def test_flag_after_kick_from_existing_accuser_is_noop() -> None:
    """Input: fourth flag against removed X by A -> Output: no deliveries, room unchanged."""
    harness = _start_eight()
    harness.registry.flag("A", "X")
    harness.registry.flag("B", "X")
    harness.registry.flag("C", "X")

    assert harness.registry.flag("A", "X") == []
    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("A"))
    assert len(room.participants) == 7
    assert room.flags == {}


def test_kicked_target_can_queue_again() -> None:
    """Input: removed X sends join-queue -> Output: X matched into a new waiting room."""
    harness = _start_eight()
    active_room_id = harness.registry.find_room_id_by_connection("A")
    for accuser in ("A", "B", "C"):
        harness.registry.flag(accuser, "X")

    harness.join("X")

    assert harness.registry.find_room_id_by_connection("X") not in (None, active_room_id)


def test_flags_outside_a_session_are_ignored(harness: RegistryHarness) -> None:
    """Input: flag while room still waiting -> Output: nothing recorded."""
    harness.connect("A", "B")
    harness.join("A", "B")

    assert harness.registry.flag("A", "B") == []
    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("A"))
    assert room.flags == {}


def test_self_flags_and_cross_room_flags_are_ignored() -> None:
    """Input: X flags X, outsider flags X -> Output: nothing recorded."""
    harness = _start_eight(threshold=1)
    harness.connect("outsider")
    harness.join("outsider")

    assert harness.registry.flag("X", "X") == []
    assert harness.registry.flag("outsider", "X") == []
    assert harness.registry.flag("A", "nobody") == []
    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("X"))
    assert room.flags == {}


def test_departed_accuser_no_longer_counts_toward_quorum() -> None:
    """Input: A and B flag X, A leaves, C flags X -> Output: only B and C count, no removal."""
    harness = _start_eight()
    harness.registry.flag("A", "X")
    harness.registry.flag("B", "X")

    harness.registry.leave("A")
    deliveries = harness.registry.flag("C", "X")

    assert deliveries == []
    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("X"))
    assert room.flags["X"] == {"B", "C"}


def test_departed_target_flags_are_cleared() -> None:
    """Input: X flagged then disconnects -> Output: no flag entry for X remains."""
    harness = _start_eight()
    harness.registry.flag("A", "X")

    harness.registry.disconnect("X")

    room = harness.registry.get_room(harness.registry.find_room_id_by_connection("A"))
    assert "X" not in room.flags


def test_flags_are_accepted_in_ending_window() -> None:
    """Input: flags after the ending warning -> Output: removal still happens."""
    harness = _start_eight(threshold=2)
    harness.timers.advance(800)

    harness.registry.flag("A", "X")
    deliveries = harness.registry.flag("B", "X")

    assert events_for(deliveries, "X") == [(SESSION_DISSOLVED, {})]


def test_majority_policy_needs_five_of_eight() -> None:
    """Input: default majority policy, four accusers -> Output: removal only on the fifth."""
    harness = RegistryHarness(capacity=8)
    harness.connect(*EIGHT)
    harness.join(*EIGHT)
    harness.ready_all(*EIGHT)

    for accuser in ("A", "B", "C", "D"):
        assert harness.registry.flag(accuser, "X") == []
    deliveries = harness.registry.flag("E", "X")

    assert events_for(deliveries, "X") == [(SESSION_DISSOLVED, {})]
