"""
Application FastAPI : point d'entrée
====================================

Rôle
----
- Instancie l'app FastAPI, configure le CORS pour le front,
- Monte tous les routeurs (REST + WebSocket),
- Configure le logging et affiche la configuration + la liste des routes au démarrage.

Notes
-----
- Les importations des routeurs sont explicites pour éviter les surprises d'auto-discovery.
- Garder `settings.ALLOWED_ORIGINS` en phase avec les URLs du front.
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from spinroom.config.settings import settings
from spinroom.routes.health import router as health_router
from spinroom.routes.players import router as players_router
from spinroom.routes.rooms import router as rooms_router
from spinroom.routes.websocket import router as ws_router

# --- App FastAPI principale  ---
app = FastAPI(title="Spinroom Backend")

# ===========================
# CORS (dev: permissif)
# ===========================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===========================
# Montage des routers
# ===========================
app.include_router(rooms_router)
app.include_router(players_router)
app.include_router(ws_router)                  # WebSocket endpoint (/ws/rooms/{room_id})
app.include_router(health_router)


# --- Racine utile pour "ping" simple (sans /health) ---
@app.get("/")
async def root():
    return {"ok": True, "service": "spinroom-backend"}


# --- Hook de démarrage ---
@app.on_event("startup")
async def configure_runtime():
    """
    Au démarrage:
    - applique le niveau de log configuré,
    - affiche la config moteur (quorum, présence, commit),
    - liste les routes (path + méthodes) dans la console (diagnostic).
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print(
        "== Engine config ==",
        f"min_players={settings.MIN_PLAYERS}",
        f"online_window={settings.ONLINE_WINDOW_S}s",
        f"heartbeat={settings.HEARTBEAT_INTERVAL_S}s",
        f"commit_attempts={settings.COMMIT_MAX_ATTEMPTS}",
        f"data_dir={settings.DATA_DIR}",
    )
    print("== Registered routes ==")
    for r in app.routes:
        methods = getattr(r, "methods", None) or {"WS"}
        print(r.path, sorted(methods))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
