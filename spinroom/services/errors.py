"""
Exceptions du moteur de room.

Seules les entrées structurellement invalides remontent à l'appelant. Les courses
d'état (démarrage double, sélection concurrente, index périmé) ne lèvent jamais:
elles se traduisent par un commit sans effet.
"""


class RoomEngineError(RuntimeError):
    """Base de toutes les erreurs du moteur."""


class InvalidInput(RoomEngineError):
    """Entrée refusée (nom vide, room inexistante, identifiant vide...)."""


class RoomNotFound(InvalidInput):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class NotFound(InvalidInput):
    """Objet introuvable et non recréable: traité comme une validation d'entrée."""


class PlayerNotFound(NotFound):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class CommitRetriesExhausted(RoomEngineError):
    """Le commit conditionnel a perdu la course trop de fois d'affilée."""

    def __init__(self, room_id: str, intent: str, attempts: int):
        self.room_id = room_id
        self.intent = intent
        self.attempts = attempts
        super().__init__(f"{intent} on room {room_id} gave up after {attempts} conflicting attempts")
