"""
Classe principale du bot Discord.

Responsabilités :
- Crée le client Discord et l'arbre de commandes slash (ensemble fermé, réponse "inconnue" sinon).
- Branche la synchronisation d'accès au salon vidéo sur les événements vocaux.
- Au premier `on_ready` : présence, synchronisation des commandes, démarrage de la rotation d'icône.

Note : l'enregistrement local des commandes et des événements se fait dans `setup_hook`,
la synchronisation avec Discord une fois le client prêt.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import discord
from discord import app_commands

from core import config
from core.config import Settings
from core.icon_rotation import IconRotationScheduler, guild_icon_uploader

logger = logging.getLogger(__name__)

MSG_UNKNOWN_COMMAND = "Commande inconnue."
MSG_COMMAND_ERROR = "Une erreur est survenue pendant la commande."


class BotTree(app_commands.CommandTree):
    """Arbre de commandes avec une branche de repli pour les commandes inconnues."""

    async def on_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        if isinstance(error, app_commands.CommandNotFound):
            logger.warning("Commande inconnue reçue: %s", (interaction.data or {}).get("name"))
            message = MSG_UNKNOWN_COMMAND
        else:
            logger.error("Erreur commande %s", getattr(interaction.command, "name", "?"), exc_info=error)
            message = MSG_COMMAND_ERROR
        try:
            if interaction.response.is_done():
                await interaction.followup.send(message, ephemeral=True)
            else:
                await interaction.response.send_message(message, ephemeral=True)
        except discord.HTTPException:
            logger.debug("Impossible de répondre à l'interaction %s", interaction.id)


class Bot(discord.Client):
    """
    Client Discord étendu, encapsulant l'état applicatif.

    Attributs principaux :
        settings : instantané de configuration (jamais modifié après le chargement)
        tree : Arbre des commandes slash (BotTree)
        icon_scheduler : tâche de rotation d'icône (None tant qu'elle n'est pas démarrée)
    """

    def __init__(self, settings: Settings):
        super().__init__(intents=config.INTENTS)
        self.settings = settings
        self.tree = BotTree(self)
        self.icon_scheduler: Optional[IconRotationScheduler] = None
        self._icon_task: Optional[asyncio.Task] = None
        self._commands_synced = False

    async def setup_hook(self):
        """
        Prépare les sous-systèmes avant la mise en ligne.

        Séquence :
        1. Enregistrement local des commandes (closed set)
        2. Handler des événements vocaux
        """
        try:
            from commands import load_all_commands  # type: ignore
            await load_all_commands(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur chargement des commandes")
        try:
            from events.voice import setup as setup_voice  # type: ignore
            setup_voice(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur setup events")

    async def on_ready(self):
        """
        Log d'état lorsque le bot est prêt, puis initialisations uniques
        (les reconnexions déclenchent aussi `on_ready`).
        """
        logger.info("Connecté: %s (%s)", self.user, getattr(self.user, 'id', '?'))
        try:
            await self.change_presence(status=discord.Status.online, activity=discord.Game(name=self.settings.activity_name))
        except Exception:  # noqa: BLE001
            logger.exception("Erreur mise à jour de la présence")

        if not self._commands_synced:
            try:
                synced = await self.tree.sync()
                self._commands_synced = True
                logger.info("Slash commands synchronisées: %s", ", ".join(f"/{c.name}" for c in synced))
            except Exception:  # noqa: BLE001
                logger.exception("Erreur sync slash commands")

        self.start_icon_rotation()

    def start_icon_rotation(self) -> Optional[asyncio.Task]:
        if self._icon_task is not None:
            return self._icon_task
        if not self.settings.rotation_enabled:
            logger.info("Rotation d'icône désactivée (ICON_SPENT_DIR non défini)")
            return None
        self.icon_scheduler = IconRotationScheduler(
            lambda: self.settings,
            guild_icon_uploader(self, self.settings.guild_id),
        )
        self._icon_task = asyncio.create_task(self.icon_scheduler.run(), name="icon-rotation")
        self._icon_task.add_done_callback(_log_task_end)
        logger.info("Rotation d'icône démarrée (%s -> %s)", self.settings.icon_pool_dir, self.settings.icon_spent_dir)
        return self._icon_task

    async def close(self):  # type: ignore[override]
        """Fermeture propre : annule la rotation d'icône avant de fermer le client."""
        if self._icon_task is not None and not self._icon_task.done():
            self._icon_task.cancel()
            try:
                await self._icon_task
            except asyncio.CancelledError:
                pass
            logger.info("Rotation d'icône arrêtée")
        await super().close()


def _log_task_end(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("La tâche de rotation d'icône s'est arrêtée sur une erreur", exc_info=exc)
