"""
Models / player.py
Rôle:
- Définir la structure d'un joueur enregistré dans une room.

Champs:
- id: identifiant opaque (auto-déclaré: un client peut le représenter pour se ré-identifier).
- display_name: nom d'affichage (déjà nettoyé par le registre).
- joined_at: horodatage (epoch secondes) de l'inscription.
- last_heartbeat: dernier battement reçu, base du calcul de présence.
"""
from pydantic import BaseModel, ConfigDict


class Player(BaseModel):
    """Joueur d'une room (immutable: toute mise à jour crée une nouvelle instance)."""
    id: str
    display_name: str
    joined_at: float
    last_heartbeat: float

    model_config = ConfigDict(frozen=True)
