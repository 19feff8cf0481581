"""
Room store
==========

Le "document hébergé" de chaque room: un `RoomDocument` par identifiant, gardé en
mémoire et persisté (orjson) sous `DATA_DIR/rooms/<room_id>.json`.

La seule écriture possible est `compare_and_set(room_id, expected_revision, doc)`:
elle n'aboutit que si la révision courante est toujours celle que l'écrivain a lue.
Les commits d'une même room sont linéarisés par un verrou par room; les abonnés
sont notifiés après l'écriture, hors verrou, avec le document complet.
"""
from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from threading import RLock
from typing import Callable, Dict, Iterable, List, Optional

from spinroom.config.settings import settings
from spinroom.models.game import Option
from spinroom.models.room import RoomDocument
from spinroom.services.errors import InvalidInput, RoomNotFound
from spinroom.services.io_utils import json_stems, read_json, write_json

logger = logging.getLogger(__name__)

ROOMS_DIRNAME = "rooms"
ROOM_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

Listener = Callable[[RoomDocument], None]


def normalize_room_id(room_id: Optional[str]) -> str:
    """Identifiant opaque mais utilisable comme nom de fichier."""
    rid = (room_id or "").strip()
    if not ROOM_ID_PATTERN.match(rid):
        raise InvalidInput(f"Invalid room id: {room_id!r}")
    return rid


def default_options() -> List[Option]:
    return [Option(**entry) for entry in settings.DEFAULT_OPTIONS]


class RoomStore:
    def __init__(self, data_dir: Optional[Path | str] = None, *, persist: Optional[bool] = None):
        self.data_dir = Path(data_dir or settings.DATA_DIR)
        self.persist = settings.PERSIST_ROOMS if persist is None else persist
        self._lock = RLock()
        self._room_locks: Dict[str, RLock] = {}
        self._docs: Dict[str, RoomDocument] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._global_listeners: List[Listener] = []

    # -----------------------------
    # Chemins / verrous
    # -----------------------------
    def _rooms_dir(self) -> Path:
        return self.data_dir / ROOMS_DIRNAME

    def _room_path(self, room_id: str) -> Path:
        return self._rooms_dir() / f"{room_id}.json"

    def _known_nolock(self, room_id: str) -> bool:
        return room_id in self._docs or (self.persist and self._room_path(room_id).exists())

    def _room_lock(self, room_id: str, *, create: bool = False) -> Optional[RLock]:
        """Verrou de la room; None si la room est inconnue (seul `create` en alloue un nouveau)."""
        with self._lock:
            lock = self._room_locks.get(room_id)
            if lock is None and (create or self._known_nolock(room_id)):
                lock = RLock()
                self._room_locks[room_id] = lock
            return lock

    # -----------------------------
    # Chargement / Sauvegarde
    # -----------------------------
    def _load_nolock(self, room_id: str) -> Optional[RoomDocument]:
        doc = self._docs.get(room_id)
        if doc is None and self.persist:
            raw = read_json(self._room_path(room_id))
            if raw is not None:
                doc = RoomDocument.model_validate(raw)
                self._docs[room_id] = doc
                logger.debug("Room loaded from disk", extra={"room_id": room_id, "revision": doc.revision})
        return doc

    def _save_nolock(self, doc: RoomDocument) -> None:
        self._docs[doc.room_id] = doc
        if self.persist:
            write_json(self._room_path(doc.room_id), doc.model_dump(mode="json"))

    # -----------------------------
    # Lecture
    # -----------------------------
    def exists(self, room_id: str) -> bool:
        rid = normalize_room_id(room_id)
        lock = self._room_lock(rid)
        if lock is None:
            return False
        with lock:
            return self._load_nolock(rid) is not None

    def get(self, room_id: str) -> RoomDocument:
        """Dernier document commité (lève RoomNotFound si la room n'existe pas)."""
        rid = normalize_room_id(room_id)
        lock = self._room_lock(rid)
        if lock is None:
            raise RoomNotFound(rid)
        with lock:
            doc = self._load_nolock(rid)
        if doc is None:
            raise RoomNotFound(rid)
        return doc

    def list_room_ids(self) -> list[str]:
        with self._lock:
            ids = set(self._docs.keys())
        if self.persist:
            ids.update(json_stems(self._rooms_dir()))
        return sorted(ids)

    # -----------------------------
    # Écriture
    # -----------------------------
    def create(self, room_id: Optional[str] = None, options: Optional[Iterable[Option]] = None) -> RoomDocument:
        """Crée la room en Lobby si elle n'existe pas encore; sinon renvoie l'existante."""
        rid = normalize_room_id(room_id or settings.DEFAULT_ROOM_ID)
        catalogue = list(options) if options is not None else default_options()
        with self._room_lock(rid, create=True):
            existing = self._load_nolock(rid)
            if existing is not None:
                return existing
            doc = RoomDocument(room_id=rid, revision=1, options=catalogue, updated_at=time.time())
            self._save_nolock(doc)
        logger.info("Room created", extra={"room_id": rid, "options": len(catalogue)})
        self._notify(doc)
        return doc

    def compare_and_set(
        self,
        room_id: str,
        expected_revision: int,
        document: RoomDocument,
    ) -> Optional[RoomDocument]:
        """
        Remplace le document seulement si sa révision vaut encore `expected_revision`.
        Retourne le document stocké (révision incrémentée) ou None en cas de conflit.
        """
        rid = normalize_room_id(room_id)
        lock = self._room_lock(rid)
        if lock is None:
            raise RoomNotFound(rid)
        with lock:
            current = self._load_nolock(rid)
            if current is None:
                raise RoomNotFound(rid)
            if current.revision != expected_revision:
                logger.debug(
                    "Conditional commit rejected",
                    extra={"room_id": rid, "expected": expected_revision, "current": current.revision},
                )
                return None
            stored = document.model_copy(
                update={"room_id": rid, "revision": current.revision + 1, "updated_at": time.time()}
            )
            self._save_nolock(stored)
        self._notify(stored)
        return stored

    # -----------------------------
    # Abonnements
    # -----------------------------
    def subscribe(self, room_id: str, listener: Listener) -> Callable[[], None]:
        """Abonne `listener` aux commits d'une room; renvoie la fonction de désabonnement."""
        rid = normalize_room_id(room_id)
        with self._lock:
            self._listeners.setdefault(rid, []).append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                bucket = self._listeners.get(rid, [])
                if listener in bucket:
                    bucket.remove(listener)
                if not bucket:
                    self._listeners.pop(rid, None)

        return _unsubscribe

    def subscribe_all(self, listener: Listener) -> Callable[[], None]:
        """Abonne `listener` aux commits de toutes les rooms."""
        with self._lock:
            self._global_listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._global_listeners:
                    self._global_listeners.remove(listener)

        return _unsubscribe

    def _notify(self, doc: RoomDocument) -> None:
        with self._lock:
            listeners = list(self._global_listeners) + list(self._listeners.get(doc.room_id, []))
        for listener in listeners:
            try:
                listener(doc)
            except Exception:
                # un abonné défaillant n'annule pas un commit déjà écrit
                logger.exception(
                    "Room listener failed",
                    extra={"room_id": doc.room_id, "revision": doc.revision},
                )
