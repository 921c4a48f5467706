"""
Handler des mises à jour d'état vocal.

Transmet chaque événement au synchroniseur d'accès. Une erreur inattendue est journalisée
sans bloquer le flux d'événements Discord.
"""
from __future__ import annotations

import logging
import discord

from core.access_sync import setup_access_sync

logger = logging.getLogger(__name__)


def setup(bot: discord.Client):
    sync = setup_access_sync(bot)

    @bot.event
    async def on_voice_state_update(member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        try:
            await sync.handle_voice_state_update(member, before, after)
        except Exception:  # noqa: BLE001
            logger.exception("Echec synchronisation accès pour %s", getattr(member, "id", "?"))

    return sync


__all__ = ["setup"]
