"""
Exceptions partagées par le bot.

- `ConfigurationError` : paramètres invalides (bornes de délai, chemin qui n'est pas un dossier...).
- `PoolError` : échec d'accès ou de déplacement dans un pool d'icônes (sous-classe d'OSError).
- `PoolPermissionError` : cas particulier "permission refusée", rétrogradé en warning par l'appelant.
- `PlatformError` : appel Discord en échec (upload d'icône, guild introuvable...).
"""
from __future__ import annotations


class ConfigurationError(Exception):
    """Configuration invalide ou manquante, détectée au moment de l'utilisation."""


class PoolError(OSError):
    """Echec d'entrée/sortie sur un pool d'icônes."""


class PoolPermissionError(PoolError):
    """Accès refusé par le système de fichiers."""


class PlatformError(Exception):
    """Appel à l'API Discord en échec."""


def pool_error(message: str, exc: BaseException) -> PoolError:
    """Construit l'erreur de pool adaptée à la cause (permission refusée ou non)."""
    if isinstance(exc, PermissionError):
        return PoolPermissionError(f"{message}: {exc}")
    return PoolError(f"{message}: {exc}")


__all__ = [
    "ConfigurationError",
    "PoolError",
    "PoolPermissionError",
    "PlatformError",
    "pool_error",
]
