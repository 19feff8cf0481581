"""
Models / game.py
Rôle:
- Définir le document de partie (GameState) comme variante étiquetée par `phase`.
- Rendre les combinaisons illégales non constructibles: chaque variante valide
  ses invariants à la construction (pydantic `model_validator`).

Phases:
- lobby              : partie non démarrée (aucun joueur engagé, aucune option consommée).
- selecting_spinner  : partie démarrée, aucun lanceur désigné, il reste des tours.
- spinner_active     : un lanceur unique est désigné (éventuellement en train de lancer).
- complete           : plus d'option ou plus de joueur restant; lecture seule jusqu'au reset.

`StartedState` regroupe les trois phases "démarrées" (état `Started` du cycle de vie).

Vue document (`document()`):
- started, active_spinner_id, spinning, complete, remaining_options,
  remaining_player_ids, outcomes, initial_option_count, initial_player_count, phase.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

PHASE_LOBBY = "lobby"
PHASE_SELECTING_SPINNER = "selecting_spinner"
PHASE_SPINNER_ACTIVE = "spinner_active"
PHASE_COMPLETE = "complete"


class Option(BaseModel):
    """Choix consommable (ex: un pays) affiché sur la roue."""
    label: str
    icon: str = ""

    model_config = ConfigDict(frozen=True)


class SpinOutcome(BaseModel):
    """Un tour résolu (journal append-only)."""
    player_id: str
    label: str
    icon: str = ""
    display_name: Optional[str] = None  # nom du lanceur au moment de la résolution

    model_config = ConfigDict(frozen=True)


class LobbyState(BaseModel):
    """État initial d'une room (et état obtenu après un reset)."""
    phase: Literal["lobby"] = PHASE_LOBBY

    model_config = ConfigDict(frozen=True)

    @property
    def started(self) -> bool:
        return False

    @property
    def complete(self) -> bool:
        return False

    @property
    def active_spinner_id(self) -> Optional[str]:
        return None

    @property
    def spinning(self) -> bool:
        return False

    def document(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "started": False,
            "complete": False,
            "active_spinner_id": None,
            "spinning": False,
            "remaining_options": [],
            "remaining_player_ids": [],
            "outcomes": [],
            "initial_option_count": 0,
            "initial_player_count": 0,
        }


class StartedState(BaseModel):
    """
    Base des phases démarrées.

    Invariants vérifiés à chaque construction:
    - ids restants uniques, aucun joueur ayant déjà lancé n'est encore "restant";
    - outcomes + options restantes == nombre d'options au démarrage;
    - outcomes + joueurs restants == nombre de joueurs au démarrage.
    """
    remaining_options: List[Option]
    remaining_player_ids: List[str]
    outcomes: List[SpinOutcome] = Field(default_factory=list)
    initial_option_count: int
    initial_player_count: int

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_conservation(self) -> "StartedState":
        remaining = set(self.remaining_player_ids)
        if len(remaining) != len(self.remaining_player_ids):
            raise ValueError("remaining_player_ids contains duplicates")
        spun = [o.player_id for o in self.outcomes]
        if len(set(spun)) != len(spun):
            raise ValueError("a player appears twice in outcomes")
        if remaining.intersection(spun):
            raise ValueError("a player who has spun is still remaining")
        if len(self.outcomes) + len(self.remaining_options) != self.initial_option_count:
            raise ValueError("options not conserved")
        if len(self.outcomes) + len(self.remaining_player_ids) != self.initial_player_count:
            raise ValueError("players not conserved")
        return self

    @property
    def started(self) -> bool:
        return True

    @property
    def complete(self) -> bool:
        return not self.remaining_options or not self.remaining_player_ids

    def document(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "started": True,
            "complete": self.complete,
            "active_spinner_id": self.active_spinner_id,
            "spinning": self.spinning,
            "remaining_options": [o.model_dump() for o in self.remaining_options],
            "remaining_player_ids": list(self.remaining_player_ids),
            "outcomes": [o.model_dump() for o in self.outcomes],
            "initial_option_count": self.initial_option_count,
            "initial_player_count": self.initial_player_count,
        }


class SelectingSpinnerState(StartedState):
    phase: Literal["selecting_spinner"] = PHASE_SELECTING_SPINNER

    @model_validator(mode="after")
    def _check_playable(self) -> "SelectingSpinnerState":
        if self.complete:
            raise ValueError("no turn left to play: state must be complete")
        return self

    @property
    def active_spinner_id(self) -> Optional[str]:
        return None

    @property
    def spinning(self) -> bool:
        return False


class SpinnerActiveState(StartedState):
    phase: Literal["spinner_active"] = PHASE_SPINNER_ACTIVE
    active_spinner_id: str
    spinning: bool = False

    @model_validator(mode="after")
    def _check_spinner(self) -> "SpinnerActiveState":
        if self.complete:
            raise ValueError("no turn left to play: state must be complete")
        if self.active_spinner_id not in self.remaining_player_ids:
            raise ValueError("active spinner must be a remaining player")
        return self


class CompleteState(StartedState):
    phase: Literal["complete"] = PHASE_COMPLETE

    @model_validator(mode="after")
    def _check_complete(self) -> "CompleteState":
        if not self.complete:
            raise ValueError("turns remain: state cannot be complete")
        return self

    @property
    def active_spinner_id(self) -> Optional[str]:
        return None

    @property
    def spinning(self) -> bool:
        return False


GameState = Annotated[
    Union[LobbyState, SelectingSpinnerState, SpinnerActiveState, CompleteState],
    Field(discriminator="phase"),
]


def next_turn_state(
    remaining_options: List[Option],
    remaining_player_ids: List[str],
    outcomes: List[SpinOutcome],
    initial_option_count: int,
    initial_player_count: int,
) -> Union[SelectingSpinnerState, CompleteState]:
    """Construit la phase suivant un démarrage ou une résolution (sélection ou fin)."""
    cls = SelectingSpinnerState
    if not remaining_options or not remaining_player_ids:
        cls = CompleteState
    return cls(
        remaining_options=remaining_options,
        remaining_player_ids=remaining_player_ids,
        outcomes=outcomes,
        initial_option_count=initial_option_count,
        initial_player_count=initial_player_count,
    )
