"""Tests for event log sequencing and folding."""

from datetime import timedelta

import pytest

from engine.logic.enums import GameStatus
from engine.logic.event_log import check_sequence
from engine.logic.exceptions import EventSequenceError
from engine.logic.fold import fold_events
from engine.tests.helpers import CLOCK_START, POINTER, make_catalog
from shared.dal.models import EventRecord


def _event(seq: int, event_type: str, payload: dict | None = None) -> EventRecord:
    return EventRecord(
        game_id="g1",
        seq=seq,
        type=event_type,
        payload=payload or {},
        created_at=CLOCK_START + timedelta(milliseconds=seq),
    )


def _create(seq: int = 1) -> EventRecord:
    return _event(
        seq,
        "CREATE",
        {
            "mode_code": "ROOKIE",
            "players": [{"seat": 2, "deck_id": "b"}, {"seat": 1, "deck_id": "a"}],
            "pointer": POINTER.model_dump(mode="json"),
        },
    )


class TestCheckSequence:
    def test_accepts_contiguous(self):
        check_sequence([_event(1, "CREATE"), _event(2, "START")])

    def test_rejects_gap(self):
        with pytest.raises(EventSequenceError, match="expected seq 2, found 3"):
            check_sequence([_event(1, "CREATE"), _event(3, "START")])

    def test_rejects_duplicate(self):
        with pytest.raises(EventSequenceError):
            check_sequence([_event(1, "CREATE"), _event(1, "START")])


class TestFold:
    def test_create_only(self):
        folded = fold_events([_create()], make_catalog())

        assert folded.status == GameStatus.LOBBY
        assert folded.seats == (1, 2)
        assert folded.state.turn == 0
        assert folded.last_seq == 1

    def test_start_and_end_turn(self):
        events = [_create(), _event(2, "START"), _event(3, "END_TURN"), _event(4, "END_TURN")]

        folded = fold_events(events, make_catalog())

        assert folded.status == GameStatus.ACTIVE
        assert folded.state.turn == 3
        assert folded.state.active_seat == 1
        assert folded.state.rookie.phase == "SETUP"

    def test_pointer_set_before_start(self):
        pointer = POINTER.model_copy(update={"format_id": "FMT_OPEN"})
        events = [_create(), _event(2, "POINTER_SET", {"pointer": pointer.model_dump(mode="json")})]

        assert fold_events(events, make_catalog()).pointer == pointer

    def test_empty_log(self):
        with pytest.raises(EventSequenceError, match="empty"):
            fold_events([], make_catalog())

    def test_must_start_with_create(self):
        with pytest.raises(EventSequenceError, match="must start with CREATE"):
            fold_events([_event(1, "START")], make_catalog())

    def test_pointer_change_after_start(self):
        events = [
            _create(),
            _event(2, "START"),
            _event(3, "POINTER_SET", {"pointer": POINTER.model_dump(mode="json")}),
        ]
        with pytest.raises(EventSequenceError, match="pointer changed after setup"):
            fold_events(events, make_catalog())

    def test_started_twice(self):
        with pytest.raises(EventSequenceError, match="started twice"):
            fold_events([_create(), _event(2, "START"), _event(3, "START")], make_catalog())

    def test_fold_is_repeatable(self):
        events = [_create(), _event(2, "START"), _event(3, "ROOKIE_BEGIN_MATCH")]
        catalog = make_catalog()

        assert fold_events(events, catalog) == fold_events(events, catalog)
