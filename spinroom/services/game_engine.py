"""
Service: game_engine.py
Rôle:
- Machine d'état de la partie: Lobby → (SelectingSpinner ⇄ SpinnerActive) → Complete, reset → Lobby.
- Chaque opération est une fonction de mise à jour pure (`apply_*`) exécutée via `mutation.commit`.

Préconditions:
- Une précondition non satisfaite donne `ABORT` (commit sans effet), jamais une exception.
  Cas particulier: `start_game` avec des ids non inscrits lève InvalidInput (entrée invalide).
  L'appelant déduit l'issue en comparant l'état observé (ex: "suis-je le lanceur ?").
- Les préconditions sont revalidées contre la base courante à chaque essai du commit,
  jamais contre la vue (possiblement périmée) de l'appelant.

API interne exposée aux routes:
- start_game(store, room_id, player_ids=None, options=None)
- select_spinner(store, room_id, rng=None)
- begin_spin(store, room_id, player_id)
- resolve_spin(store, room_id, outcome_index, spinner_id=None, expected_label=None)
- reset(store, room_id)
"""
from __future__ import annotations

import logging
import random
from typing import Any, Dict, Iterable, Optional

from spinroom.config.settings import settings
from spinroom.models.game import (
    LobbyState,
    Option,
    SelectingSpinnerState,
    SpinnerActiveState,
    SpinOutcome,
    StartedState,
    next_turn_state,
)
from spinroom.models.room import RoomDocument
from spinroom.services.errors import InvalidInput
from spinroom.services.mutation import ABORT, CommitResult, commit
from spinroom.services.room_store import RoomStore

logger = logging.getLogger(__name__)


def _turn_fields(state: StartedState) -> Dict[str, Any]:
    return {
        "remaining_options": list(state.remaining_options),
        "remaining_player_ids": list(state.remaining_player_ids),
        "outcomes": list(state.outcomes),
        "initial_option_count": state.initial_option_count,
        "initial_player_count": state.initial_player_count,
    }


# -------------------- fonctions de mise à jour --------------------

def apply_start_game(
    doc: RoomDocument,
    player_ids: Optional[Iterable[str]] = None,
    options: Optional[Iterable[Option]] = None,
    min_players: Optional[int] = None,
):
    if not isinstance(doc.state, LobbyState):
        return ABORT
    # par défaut: tous les joueurs inscrits, dans l'ordre d'arrivée
    ids = list(dict.fromkeys(player_ids if player_ids is not None else doc.players.keys()))
    unknown = [pid for pid in ids if pid not in doc.players]
    if unknown:
        raise InvalidInput(f"Unregistered player ids: {', '.join(unknown)}")
    quorum = settings.MIN_PLAYERS if min_players is None else min_players
    if len(ids) < quorum:
        return ABORT
    catalogue = list(options if options is not None else doc.options)[: len(ids)]
    state = next_turn_state(catalogue, ids, [], len(catalogue), len(ids))
    return doc.with_state(state)


def apply_select_spinner(doc: RoomDocument, rng: Optional[random.Random] = None):
    state = doc.state
    if not isinstance(state, SelectingSpinnerState):
        return ABORT
    chosen = (rng or random).choice(state.remaining_player_ids)
    return doc.with_state(SpinnerActiveState(active_spinner_id=chosen, **_turn_fields(state)))


def apply_begin_spin(doc: RoomDocument, player_id: str):
    state = doc.state
    if not isinstance(state, SpinnerActiveState):
        return ABORT
    if state.active_spinner_id != player_id or state.spinning:
        return ABORT
    return doc.with_state(
        SpinnerActiveState(active_spinner_id=player_id, spinning=True, **_turn_fields(state))
    )


def apply_resolve_spin(
    doc: RoomDocument,
    outcome_index: int,
    spinner_id: Optional[str] = None,
    expected_label: Optional[str] = None,
):
    state = doc.state
    if not isinstance(state, SpinnerActiveState):
        return ABORT
    spinner = state.active_spinner_id
    if spinner_id is not None and spinner_id != spinner:
        return ABORT
    if spinner not in state.remaining_player_ids:
        return ABORT
    options = list(state.remaining_options)
    if isinstance(outcome_index, bool) or not isinstance(outcome_index, int):
        return ABORT
    if not 0 <= outcome_index < len(options):
        return ABORT
    option = options.pop(outcome_index)
    if expected_label is not None and option.label != expected_label:
        return ABORT

    player = doc.players.get(spinner)
    outcome = SpinOutcome(
        player_id=spinner,
        label=option.label,
        icon=option.icon,
        display_name=player.display_name if player else None,
    )
    next_state = next_turn_state(
        options,
        [pid for pid in state.remaining_player_ids if pid != spinner],
        list(state.outcomes) + [outcome],
        state.initial_option_count,
        state.initial_player_count,
    )
    return doc.with_state(next_state)


def apply_reset(doc: RoomDocument) -> RoomDocument:
    """Retour inconditionnel au Lobby; vide le registre (le catalogue d'options est conservé)."""
    return doc.model_copy(update={"state": LobbyState(), "players": {}})


def draw_prize_index(doc: RoomDocument, rng: Optional[random.Random] = None) -> Optional[int]:
    """Tirage uniforme d'un index dans les options restantes (None si rien à tirer)."""
    state = doc.state
    if not isinstance(state, StartedState) or not state.remaining_options:
        return None
    return (rng or random).randrange(len(state.remaining_options))


# -------------------- commandes --------------------

def start_game(
    store: RoomStore,
    room_id: str,
    player_ids: Optional[Iterable[str]] = None,
    options: Optional[Iterable[Option]] = None,
    min_players: Optional[int] = None,
) -> CommitResult:
    ids = list(player_ids) if player_ids is not None else None
    catalogue = list(options) if options is not None else None
    result = commit(
        store,
        room_id,
        lambda doc: apply_start_game(doc, ids, catalogue, min_players),
        intent="start_game",
    )
    if result.committed:
        state = result.document.state
        logger.info(
            "Game started",
            extra={
                "room_id": room_id,
                "revision": result.revision,
                "players": state.initial_player_count,
                "option_count": state.initial_option_count,
            },
        )
    return result


def select_spinner(store: RoomStore, room_id: str, rng: Optional[random.Random] = None) -> CommitResult:
    result = commit(store, room_id, lambda doc: apply_select_spinner(doc, rng), intent="select_spinner")
    if result.committed:
        logger.info(
            "Spinner selected",
            extra={
                "room_id": room_id,
                "revision": result.revision,
                "spinner_id": result.document.state.active_spinner_id,
            },
        )
    return result


def begin_spin(store: RoomStore, room_id: str, player_id: str) -> CommitResult:
    return commit(store, room_id, lambda doc: apply_begin_spin(doc, player_id), intent="begin_spin")


def resolve_spin(
    store: RoomStore,
    room_id: str,
    outcome_index: int,
    spinner_id: Optional[str] = None,
    expected_label: Optional[str] = None,
) -> CommitResult:
    result = commit(
        store,
        room_id,
        lambda doc: apply_resolve_spin(doc, outcome_index, spinner_id, expected_label),
        intent="resolve_spin",
    )
    if result.committed:
        last = result.document.state.outcomes[-1]
        logger.info(
            "Spin resolved",
            extra={
                "room_id": room_id,
                "revision": result.revision,
                "spinner_id": last.player_id,
                "label": last.label,
                "complete": result.document.state.complete,
            },
        )
    return result


def reset(store: RoomStore, room_id: str) -> CommitResult:
    result = commit(store, room_id, apply_reset, intent="reset")
    logger.info("Room reset", extra={"room_id": room_id, "revision": result.revision})
    return result
