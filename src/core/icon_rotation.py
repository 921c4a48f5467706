"""
Rotation périodique de l'icône de la guild.

Cycle : Idle -> Applying (une rotation immédiate) -> Waiting -> Applying -> ... -> Stopped.

- Le délai est tiré à chaque cycle dans [min, max] heures, avec la configuration relue à chaque fois.
- Un délai "désactivé" (max = 0 ou tirage à 0 h) ou une ConfigurationError arrête la boucle
  définitivement. Un upload ou un déplacement raté ne l'arrête jamais.
- L'accès disque passe par `asyncio.to_thread` pour ne pas bloquer la boucle d'événements.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import random
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiohttp
import discord

from core import icon_pool
from core.config import Settings
from core.errors import ConfigurationError, PlatformError, PoolError, PoolPermissionError

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600
# Dix ans : au-delà, la valeur est forcément une erreur de saisie
MAX_DELAY_HOURS = 24 * 365 * 10

Uploader = Callable[[bytes], Awaitable[None]]


class RotationState(enum.Enum):
    IDLE = "idle"
    APPLYING = "applying"
    WAITING = "waiting"
    STOPPED = "stopped"


class RotationOutcome(enum.Enum):
    APPLIED = "applied"
    EMPTY = "empty"
    UPLOAD_FAILED = "upload_failed"
    RELOCATE_FAILED = "relocate_failed"
    POOL_FAILED = "pool_failed"


def compute_delay(min_hours: int, max_hours: int, rng: Optional[random.Random] = None) -> Optional[float]:
    """
    Retourne le délai (secondes) avant la prochaine rotation, ou None si la rotation est désactivée.

    Raises:
        ConfigurationError: min > max, bornes négatives ou délai démesuré.
    """
    if max_hours == 0:
        return None
    if min_hours > max_hours:
        raise ConfigurationError(f"Délai minimum ({min_hours} h) supérieur au maximum ({max_hours} h)")
    if min_hours < 0:
        raise ConfigurationError(f"Délai minimum négatif ({min_hours} h)")
    if min_hours == max_hours:
        hours = max_hours
    else:
        hours = (rng or random).randint(min_hours, max_hours)
    if hours == 0:
        return None
    if hours > MAX_DELAY_HOURS:
        raise ConfigurationError(f"Délai de {hours} h trop grand (maximum {MAX_DELAY_HOURS} h)")
    return float(hours * SECONDS_PER_HOUR)


class IconRotationScheduler:
    """
    Tâche de fond unique qui fait tourner l'icône de la guild.

    Attributs :
        state : état courant de la machine (RotationState)
        settings_provider : renvoie l'instantané de configuration courant (relu à chaque cycle)
        upload : coroutine qui applique les octets de l'image comme icône
    """

    def __init__(
        self,
        settings_provider: Callable[[], Settings],
        upload: Uploader,
        *,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings_provider = settings_provider
        self.upload = upload
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.state = RotationState.IDLE

    async def apply_rotation(self) -> RotationOutcome:
        settings = self.settings_provider()
        available, spent = settings.icon_pool_dir, settings.icon_spent_dir
        if available and spent and Path(available).resolve() == Path(spent).resolve():
            raise ConfigurationError(f"ICON_POOL_DIR et ICON_SPENT_DIR désignent le même dossier ({available})")
        try:
            candidate = await asyncio.to_thread(icon_pool.pick_candidate, available, spent, self.rng)
            if candidate is None:
                logger.info("Aucune icône disponible dans %s, rotation ignorée", available)
                return RotationOutcome.EMPTY
            data = await asyncio.to_thread(icon_pool.read_icon, candidate)
        except PoolPermissionError as exc:
            logger.warning("Accès refusé au pool d'icônes: %s", exc)
            return RotationOutcome.POOL_FAILED
        except PoolError:
            logger.exception("Erreur d'accès au pool d'icônes")
            return RotationOutcome.POOL_FAILED

        try:
            await self.upload(data)
        except PlatformError as exc:
            logger.error("Echec upload de l'icône %s: %s", candidate.name, exc)
            return RotationOutcome.UPLOAD_FAILED
        logger.info("Icône de la guild mise à jour: %s", candidate.name)

        # L'icône est déjà appliquée : un échec ici n'est pas annulé
        try:
            await asyncio.to_thread(icon_pool.relocate, candidate.path, spent)
        except PoolPermissionError as exc:
            logger.warning("Icône %s appliquée mais non déplacée: %s", candidate.name, exc)
            return RotationOutcome.RELOCATE_FAILED
        except PoolError:
            logger.exception("Icône %s appliquée mais non déplacée vers %s", candidate.name, spent)
            return RotationOutcome.RELOCATE_FAILED
        return RotationOutcome.APPLIED

    async def run(self) -> None:
        """Boucle principale. Se termine quand la rotation est désactivée ou mal configurée."""
        try:
            while True:
                self.state = RotationState.APPLYING
                try:
                    await self.apply_rotation()
                except ConfigurationError as exc:
                    logger.error("Rotation d'icône arrêtée (configuration): %s", exc)
                    return

                settings = self.settings_provider()
                try:
                    delay = compute_delay(settings.icon_min_delay_hours, settings.icon_max_delay_hours, self.rng)
                except ConfigurationError as exc:
                    logger.error("Rotation d'icône arrêtée (configuration): %s", exc)
                    return
                if delay is None:
                    logger.info("Rotation d'icône désactivée, arrêt de la tâche")
                    return

                self.state = RotationState.WAITING
                logger.info("Prochaine rotation d'icône dans %.0f h", delay / SECONDS_PER_HOUR)
                await self._sleep(delay)
        finally:
            self.state = RotationState.STOPPED


def guild_icon_uploader(client: discord.Client, guild_id: int) -> Uploader:
    """Construit l'uploader qui remplace l'icône de `guild_id` via l'API Discord."""

    async def upload(data: bytes) -> None:
        guild = client.get_guild(guild_id)
        try:
            if guild is None:
                guild = await client.fetch_guild(guild_id)
            await guild.edit(icon=data, reason="Rotation d'icône")
        except discord.HTTPException as exc:
            raise PlatformError(f"guild {guild_id}: {exc}") from exc
        except ValueError as exc:
            # Fichier dont le contenu n'est pas une image reconnue (ou vide)
            raise PlatformError(f"guild {guild_id}: image refusée ({exc})") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PlatformError(f"guild {guild_id}: erreur réseau ({exc!r})") from exc

    return upload


__all__ = [
    "IconRotationScheduler",
    "RotationOutcome",
    "RotationState",
    "compute_delay",
    "guild_icon_uploader",
]
