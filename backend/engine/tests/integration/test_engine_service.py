"""End-to-end engine operations over the in-memory and SQLite repositories."""

import pytest

from engine.logic.catalog import CardAttributes, UnavailableCardCatalog
from engine.logic.enums import ErrorKind, GameStatus, RookiePhase
from engine.logic.exceptions import (
    ActionValidationError,
    DeterminismFailure,
    GameNotFoundError,
    GateViolation,
    InvalidGameStatusError,
    RookieEndMatchError,
)
from engine.logic.rookie import SCORED_RESULTS_KEY
from engine.tests.helpers import (
    POINTER,
    apply_all,
    full_match_actions,
    hero_key,
    make_catalog,
    make_service,
    start_rookie_game,
)

PLAYERS = [{"seat": 1, "deck_id": "d1"}, {"seat": 2, "deckId": "d2"}]


@pytest.fixture(params=["memory", "sqlite"])
def engine(request, service, sqlite_service):
    return service if request.param == "memory" else sqlite_service


class TestCreateGame:
    def test_create_writes_create_event(self, engine):
        game = engine.create_game("rookie", PLAYERS, POINTER, game_id="g1")

        assert game.status == GameStatus.LOBBY
        assert game.mode_code == "ROOKIE"
        assert game.seats == (1, 2)
        events = engine.read_events("g1")
        assert [(e.seq, e.type) for e in events] == [(1, "CREATE")]
        assert events[0].payload["players"] == [{"seat": 1, "deck_id": "d1"}, {"seat": 2, "deck_id": "d2"}]

    def test_generated_game_id(self, engine):
        game = engine.create_game("ROOKIE", PLAYERS, POINTER)
        assert engine.get_game(game.game_id).game_id == game.game_id

    @pytest.mark.parametrize(
        ("mode_code", "players", "kind"),
        [
            ("CHESS", PLAYERS, ErrorKind.UNKNOWN_MODE),
            ("ROOKIE", [], ErrorKind.MISSING_PLAYERS),
            ("ROOKIE", [{"seat": 1}, {"seat": 1}], ErrorKind.DUPLICATE_SEATS),
            ("ROOKIE", [{"seat": 0}], ErrorKind.INVALID_SEAT),
        ],
    )
    def test_rejects_invalid_input(self, engine, mode_code, players, kind):
        with pytest.raises(ActionValidationError) as exc_info:
            engine.create_game(mode_code, players, POINTER, game_id="g1")

        assert exc_info.value.kind == kind
        assert engine.repository.get_game("g1") is None

    def test_rejects_duplicate_game_id(self, engine):
        engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")

        with pytest.raises(ActionValidationError) as exc_info:
            engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")

        assert exc_info.value.kind == ErrorKind.GAME_EXISTS
        assert len(engine.read_events("g1")) == 1


class TestStartGame:
    def test_start_seeds_turn_and_locks_pointer(self, engine):
        engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")

        state = engine.start_game("g1")

        assert state.turn == 1
        assert state.active_seat == 1
        assert state.rookie.phase == RookiePhase.SETUP
        assert engine.get_game("g1").status == GameStatus.ACTIVE
        start = engine.read_events("g1")[-1]
        assert start.type == "START"
        assert start.payload["format"]["format_id"] == "FMT_ROOKIE"

    def test_start_twice(self, engine):
        start_rookie_game(engine)

        with pytest.raises(InvalidGameStatusError):
            engine.start_game("g1")

    def test_unknown_game(self, engine):
        with pytest.raises(GameNotFoundError):
            engine.start_game("missing")

    def test_unresolvable_pointer_keeps_game_in_lobby(self, engine):
        engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")
        engine.set_format_pointer("g1", "FMT_MISSING", 1)

        with pytest.raises(GateViolation) as exc_info:
            engine.start_game("g1")

        assert exc_info.value.kind == ErrorKind.FORMAT_NOT_FOUND
        assert engine.get_game("g1").status == GameStatus.LOBBY

    def test_unknown_game_mode(self, engine):
        engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")
        engine.set_game_mode_pointer("g1", "GM_MISSING", 3)

        with pytest.raises(GateViolation) as exc_info:
            engine.start_game("g1")
        assert exc_info.value.kind == ErrorKind.GAMEMODE_NOT_FOUND


class TestPointer:
    def test_pointer_editable_before_start(self, engine):
        engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")

        engine.set_format_pointer("g1", "FMT_OPEN", 1)
        engine.set_game_mode_pointer("g1", "GM_ANY", 1)

        pointer = engine.get_pointer("g1")
        assert (pointer.format_ref, pointer.game_mode_ref) == ("FMT_OPEN@1", "GM_ANY@1")
        assert [e.type for e in engine.read_events("g1")] == ["CREATE", "POINTER_SET", "POINTER_SET"]

    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("set_format_pointer", ("FMT_ROOKIE", 1)),
            ("set_game_mode_pointer", ("GM_SCORED", 1)),
            ("set_format_pointer", ("FMT_OPEN", 1)),
        ],
    )
    def test_pointer_frozen_after_start_even_when_identical(self, engine, operation, args):
        start_rookie_game(engine)
        before = engine.read_events("g1")

        with pytest.raises(GateViolation) as exc_info:
            getattr(engine, operation)("g1", *args)

        assert exc_info.value.kind == ErrorKind.POINTER_MUTATION_FORBIDDEN
        assert engine.read_events("g1") == before
        assert engine.get_pointer("g1") == POINTER


class TestApplyAction:
    def test_full_match(self, engine):
        start_rookie_game(engine)

        apply_all(engine, "g1", full_match_actions())

        rookie = engine.get_game("g1").state.rookie
        assert rookie.phase == RookiePhase.ENDED
        assert rookie.results.match_winner == 1
        assert rookie.reward_eligible.amount == 1
        events = engine.read_events("g1")
        assert [e.seq for e in events] == list(range(1, len(events) + 1))

    def test_end_turn_rotates_seats(self, engine):
        start_rookie_game(engine)

        engine.apply_action("g1", "END_TURN")
        state = engine.apply_action("g1", "END_TURN", {})

        assert (state.turn, state.active_seat) == (3, 1)

    def test_unknown_action_is_recorded_as_no_op(self, engine):
        start_rookie_game(engine)
        before = engine.get_game("g1").state

        after = engine.apply_action("g1", "WAVE", {"at": "opponent"})

        assert after == before
        assert engine.read_events("g1")[-1].type == "WAVE"

    def test_recorded_results_key_rejected_from_clients(self, engine):
        start_rookie_game(engine)
        apply_all(engine, "g1", full_match_actions(end=False)[:-1])
        before = len(engine.read_events("g1"))

        with pytest.raises(ActionValidationError) as exc_info:
            engine.apply_action("g1", "ROOKIE_SCORE_MATCH", {SCORED_RESULTS_KEY: {}})

        assert exc_info.value.kind == ErrorKind.INVALID_PAYLOAD
        assert len(engine.read_events("g1")) == before

    @pytest.mark.parametrize(
        ("action_type", "kind"),
        [("", ErrorKind.MISSING_ACTION_TYPE), ("START", ErrorKind.RESERVED_ACTION_TYPE)],
    )
    def test_rejects_bad_action_type(self, engine, action_type, kind):
        start_rookie_game(engine)

        with pytest.raises(ActionValidationError) as exc_info:
            engine.apply_action("g1", action_type)
        assert exc_info.value.kind == kind

    def test_requires_active_game(self, engine):
        engine.create_game("ROOKIE", PLAYERS, POINTER, game_id="g1")

        with pytest.raises(InvalidGameStatusError):
            engine.apply_action("g1", "END_TURN")
        assert len(engine.read_events("g1")) == 1

    def test_failed_action_writes_nothing(self, engine):
        start_rookie_game(engine)
        engine.apply_action("g1", "ROOKIE_BEGIN_MATCH")
        before_events = engine.read_events("g1")
        before_state = engine.get_game("g1").state

        with pytest.raises(RookieEndMatchError):
            engine.apply_action("g1", "ROOKIE_END_MATCH")
        with pytest.raises(ActionValidationError):
            engine.apply_action("g1", "ROOKIE_PLACE", {"seat": 1, "zoneIndex": 9, "versionKey": "x"})

        assert engine.read_events("g1") == before_events
        assert engine.get_game("g1").state == before_state


class TestReplayAndVerify:
    def test_replay_equals_live_state(self, engine):
        start_rookie_game(engine)
        apply_all(engine, "g1", full_match_actions())

        assert engine.replay(engine.read_events("g1")) == engine.get_game("g1").state

    def test_verify_game_accepts_consistent_snapshot(self, engine):
        start_rookie_game(engine)
        apply_all(engine, "g1", full_match_actions(end=False))

        assert engine.verify_game("g1") == engine.get_game("g1").state

    def test_verify_game_detects_tampered_snapshot(self, engine):
        start_rookie_game(engine)
        engine.apply_action("g1", "END_TURN")
        tampered = engine.get_game("g1").state.model_copy(update={"turn": 99})
        engine.repository.append_event(
            "g1",
            "WAVE",
            {},
            created_at=engine.clock.now(),
            state=tampered.model_dump(mode="json"),
        )

        with pytest.raises(DeterminismFailure) as exc_info:
            engine.verify_game("g1")

        assert "$.state.turn: expected 99, got 2" in exc_info.value.diffs

    def test_read_events_unknown_game(self, engine):
        with pytest.raises(GameNotFoundError):
            engine.read_events("missing")

    def test_replay_ignores_catalog_changes_after_scoring(self, engine):
        catalog = make_catalog()
        live = make_service(engine.repository, catalog=catalog)
        start_rookie_game(live)
        apply_all(live, "g1", full_match_actions())
        catalog.add(hero_key(2, 0), CardAttributes(concept_type="HERO", power=999))

        assert live.replay(live.read_events("g1")) == live.get_game("g1").state
        assert live.verify_game("g1").rookie.results.match_winner == 1

    def test_replay_without_catalog(self, engine):
        start_rookie_game(engine)
        apply_all(engine, "g1", full_match_actions())
        offline = make_service(engine.repository, catalog=UnavailableCardCatalog())

        assert offline.replay(offline.read_events("g1")) == engine.get_game("g1").state
        assert offline.verify_game("g1") == engine.get_game("g1").state

    def test_score_event_records_results(self, engine):
        start_rookie_game(engine)
        apply_all(engine, "g1", full_match_actions(end=False))

        score_event = engine.read_events("g1")[-1]

        assert score_event.type == "ROOKIE_SCORE_MATCH"
        results = engine.get_game("g1").state.rookie.results
        assert score_event.payload[SCORED_RESULTS_KEY] == results.model_dump(mode="json")
