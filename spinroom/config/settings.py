"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres du service (nom, host/port, stockage des rooms,
  règles de partie, présence, protocole de commit).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from spinroom.config.settings import settings`.

Exemples de `.env`
------------------
APP_NAME="Spinroom Backend (Staging)"
PORT=8080
DATA_DIR="/var/opt/spinroom/data"
MIN_PLAYERS=4
ONLINE_WINDOW_S=20
LOG_LEVEL="DEBUG"
"""
from typing import Any, Dict, List
import os

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "Spinroom Backend"
    # Bind réseau (FastAPI / Uvicorn)
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Répertoire des documents de room persistés
    # Par défaut: <repo>/spinroom/data
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
    PERSIST_ROOMS: bool = True
    DEFAULT_ROOM_ID: str = "test-room"

    # Règles de partie
    MIN_PLAYERS: int = 3
    MAX_NAME_LENGTH: int = 20
    DEFAULT_OPTIONS: List[Dict[str, str]] = [
        {"label": "Japan", "icon": "🇯🇵"},
        {"label": "Brazil", "icon": "🇧🇷"},
        {"label": "Canada", "icon": "🇨🇦"},
    ]

    # Présence: la fenêtre doit couvrir un ou deux battements manqués
    HEARTBEAT_INTERVAL_S: float = 5.0
    ONLINE_WINDOW_S: float = 15.0

    # Protocole de commit conditionnel
    COMMIT_MAX_ATTEMPTS: int = 32

    LOG_LEVEL: str = "INFO"

    # Frontends autorisés (CORS)
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @model_validator(mode="after")
    def _check_presence_window(self) -> Any:
        if self.HEARTBEAT_INTERVAL_S <= 0:
            raise ValueError("HEARTBEAT_INTERVAL_S must be positive")
        if self.ONLINE_WINDOW_S <= self.HEARTBEAT_INTERVAL_S:
            raise ValueError("ONLINE_WINDOW_S must be larger than HEARTBEAT_INTERVAL_S")
        if self.COMMIT_MAX_ATTEMPTS < 1:
            raise ValueError("COMMIT_MAX_ATTEMPTS must be at least 1")
        return self


# Instance unique importable partout : `settings`
settings = Settings()
