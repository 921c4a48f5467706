"""
Gestion des pools d'icônes de la guild.

Deux dossiers d'images interchangeables :
- le pool "disponible", où l'on tire la prochaine icône ;
- le pool "utilisé", où l'icône part une fois appliquée.

Quand le pool disponible est vide, `recycle` y renvoie tout le pool utilisé.
Toutes les fonctions sont bloquantes : à appeler depuis la tâche de rotation (via un thread),
jamais depuis un handler d'événement Discord.
"""
from __future__ import annotations

import logging
import os
import random
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from core.errors import ConfigurationError, PoolError, pool_error

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})


@dataclass(frozen=True)
class IconCandidate:
    path: Path
    name: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "name", self.path.name)


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def list_candidates(directory: Optional[os.PathLike | str]) -> List[IconCandidate]:
    """
    Liste les images (non récursif) d'un pool.

    - Chemin non défini : liste vide.
    - Dossier inexistant : créé, liste vide.
    - Chemin existant mais pas un dossier : ConfigurationError.
    """
    if directory is None or str(directory) == "":
        return []
    root = Path(directory)
    if not root.exists():
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise pool_error(f"Impossible de créer le pool {root}", exc) from exc
        logger.info("Pool d'icônes créé: %s", root)
        return []
    if not root.is_dir():
        raise ConfigurationError(f"{root} n'est pas un dossier")
    try:
        return [IconCandidate(p) for p in root.iterdir() if p.is_file() and is_supported(p)]
    except OSError as exc:
        raise pool_error(f"Lecture du pool {root} impossible", exc) from exc


def relocate(source: os.PathLike | str, target_dir: os.PathLike | str) -> Path:
    """
    Déplace `source` dans `target_dir` en conservant son nom.

    Un fichier homonyme déjà présent est supprimé (le fichier entrant gagne).
    Rename atomique si possible, sinon copie puis suppression de la source.
    """
    src = Path(source)
    dest_dir = Path(target_dir)
    target = dest_dir / src.name
    # Déjà à destination : supprimer la "cible" détruirait la source
    if target.resolve() == src.resolve():
        return target
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        if target.exists():
            target.unlink()
    except OSError as exc:
        raise pool_error(f"Préparation de {target} impossible", exc) from exc

    try:
        os.rename(src, target)
        return target
    except OSError as rename_exc:
        # Volumes différents (EXDEV) ou rename refusé : copie + suppression
        try:
            shutil.copy2(src, target)
        except OSError as copy_exc:
            raise pool_error(
                f"Déplacement {src} -> {target} impossible (rename: {rename_exc}; copie)", copy_exc
            ) from copy_exc
        try:
            src.unlink()
        except OSError as exc:
            raise pool_error(f"{src} copié vers {target} mais non supprimé", exc) from exc
        logger.debug("Déplacement par copie %s -> %s (%s)", src, target, rename_exc)
        return target


def recycle(available_dir: os.PathLike | str, spent_dir: Optional[os.PathLike | str]) -> List[Path]:
    """Renvoie toutes les icônes utilisées dans le pool disponible. No-op si le pool utilisé est vide."""
    spent = list_candidates(spent_dir)
    if not spent:
        return []
    moved = [relocate(candidate.path, available_dir) for candidate in spent]
    logger.info("Recyclage: %s icône(s) renvoyée(s) dans %s", len(moved), available_dir)
    return moved


def pick_candidate(
    available_dir: Optional[os.PathLike | str],
    spent_dir: Optional[os.PathLike | str],
    rng: Optional[random.Random] = None,
) -> Optional[IconCandidate]:
    """Tire une icône au hasard, en recyclant d'abord si le pool disponible est vide."""
    candidates = list_candidates(available_dir)
    if not candidates and available_dir:
        recycle(available_dir, spent_dir)
        candidates = list_candidates(available_dir)
    if not candidates:
        return None
    return (rng or random).choice(candidates)


def read_icon(candidate: IconCandidate) -> bytes:
    try:
        return candidate.path.read_bytes()
    except OSError as exc:
        raise pool_error(f"Lecture de {candidate.path} impossible", exc) from exc


__all__ = [
    "SUPPORTED_EXTENSIONS",
    "IconCandidate",
    "PoolError",
    "is_supported",
    "list_candidates",
    "pick_candidate",
    "read_icon",
    "recycle",
    "relocate",
]
