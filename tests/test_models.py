import pytest
from pydantic import ValidationError

from spinroom.models.game import (
    CompleteState,
    LobbyState,
    Option,
    SelectingSpinnerState,
    SpinnerActiveState,
    SpinOutcome,
    next_turn_state,
)
from spinroom.models.room import RoomDocument

A, B = Option(label="A"), Option(label="B")


def test_active_spinner_must_be_a_remaining_player():
    with pytest.raises(ValidationError):
        SpinnerActiveState(
            active_spinner_id="p9",
            remaining_options=[A, B],
            remaining_player_ids=["p1", "p2"],
            initial_option_count=2,
            initial_player_count=2,
        )


def test_selecting_state_cannot_be_exhausted():
    with pytest.raises(ValidationError):
        SelectingSpinnerState(
            remaining_options=[],
            remaining_player_ids=["p2"],
            outcomes=[SpinOutcome(player_id="p1", label="A"), SpinOutcome(player_id="p3", label="B")],
            initial_option_count=2,
            initial_player_count=3,
        )


def test_complete_state_requires_exhaustion():
    with pytest.raises(ValidationError):
        CompleteState(
            remaining_options=[A],
            remaining_player_ids=["p1"],
            initial_option_count=1,
            initial_player_count=1,
        )


def test_conservation_is_enforced():
    with pytest.raises(ValidationError):
        SelectingSpinnerState(
            remaining_options=[A, B],
            remaining_player_ids=["p1", "p2"],
            initial_option_count=3,
            initial_player_count=2,
        )


def test_player_who_spun_cannot_remain():
    with pytest.raises(ValidationError):
        SelectingSpinnerState(
            remaining_options=[B],
            remaining_player_ids=["p1", "p2"],
            outcomes=[SpinOutcome(player_id="p1", label="A")],
            initial_option_count=2,
            initial_player_count=3,
        )


def test_next_turn_state_picks_phase():
    playing = next_turn_state([A], ["p1"], [], 1, 1)
    done = next_turn_state([], ["p2"], [SpinOutcome(player_id="p1", label="A")], 1, 2)

    assert isinstance(playing, SelectingSpinnerState)
    assert isinstance(done, CompleteState)
    assert done.complete


def test_lobby_document_shape():
    doc = LobbyState().document()

    assert doc["started"] is False
    assert doc["active_spinner_id"] is None
    assert doc["remaining_options"] == []
    assert doc["outcomes"] == []


def test_room_snapshot_exposes_game_document():
    state = SpinnerActiveState(
        active_spinner_id="p1",
        remaining_options=[A, B],
        remaining_player_ids=["p1", "p2"],
        initial_option_count=2,
        initial_player_count=2,
    )
    snapshot = RoomDocument(room_id="r", revision=4, state=state).snapshot()

    assert snapshot["revision"] == 4
    assert snapshot["state"]["phase"] == "spinner_active"
    assert snapshot["state"]["started"] is True
    assert snapshot["state"]["active_spinner_id"] == "p1"
    assert snapshot["state"]["remaining_options"] == [{"label": "A", "icon": ""}, {"label": "B", "icon": ""}]


def test_room_document_reloads_state_variant():
    state = CompleteState(
        remaining_options=[],
        remaining_player_ids=["p2"],
        outcomes=[SpinOutcome(player_id="p1", label="A", display_name="Ann")],
        initial_option_count=1,
        initial_player_count=2,
    )
    raw = RoomDocument(room_id="r", state=state).model_dump(mode="json")

    reloaded = RoomDocument.model_validate(raw)

    assert isinstance(reloaded.state, CompleteState)
    assert reloaded.state.outcomes[0].display_name == "Ann"
