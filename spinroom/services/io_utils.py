"""
Utilitaires IO JSON (orjson) pour les documents de room.
- read_json(Path)        → Any | None (None si fichier manquant)
- write_json(Path, data) → écriture atomique (fichier temporaire puis os.replace)
- json_stems(Path)       → noms (sans extension) des documents d'un dossier

Attention:
- orjson renvoie/attend des bytes; on lit/écrit en mode binaire.
- Un lecteur concurrent ne voit jamais un document à moitié écrit.
"""
import os
from pathlib import Path
from typing import Any, List

import orjson as json

TMP_SUFFIX = ".tmp"


def read_json(path: Path) -> Any:
    if not path.exists():
        return None
    with path.open("rb") as f:
        return json.loads(f.read())


def write_json(path: Path, data: Any) -> None:
    """Crée le dossier parent si besoin; indentation conservée pour l'inspection à la main."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + TMP_SUFFIX)
    tmp.write_bytes(json.dumps(data, option=json.OPT_INDENT_2))
    os.replace(tmp, path)


def json_stems(directory: Path) -> List[str]:
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.json"))
