"""
Synchronisation de l'accès au salon vidéo.

Les membres présents dans le salon vocal (compagnon) voient le salon vidéo (restreint) :
- arrivée dans le salon vocal -> overwrite "view_channel" sur le salon vidéo ;
- arrivée en stream dans le salon vocal -> en plus, déplacement vers le salon vidéo ;
- départ des deux salons suivis vers ailleurs (ou déconnexion) -> suppression de l'overwrite.

Aucun état n'est conservé entre deux événements : Discord reste la source de vérité.
Chaque appel est indépendant, journalisé en cas d'échec, jamais rejoué ni annulé.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional

import discord

from core.config import Settings

logger = logging.getLogger(__name__)


class AccessAction(enum.Enum):
    GRANT = "grant"
    MOVE = "move"
    REVOKE = "revoke"


class Location(enum.Enum):
    NONE = "none"
    COMPANION = "companion"
    RESTRICTED = "restricted"
    OTHER = "other"


@dataclass(frozen=True)
class PresenceTransition:
    """Transition vocale d'un membre : (salon précédent, nouveau salon) + drapeau de stream."""

    guild_id: Optional[int]
    user_id: Optional[int]
    before_channel_id: Optional[int]
    after_channel_id: Optional[int]
    self_stream: bool = False


def locate(settings: Settings, channel_id: Optional[int]) -> Location:
    if channel_id is None:
        return Location.NONE
    if channel_id == settings.voice_channel_id:
        return Location.COMPANION
    if channel_id == settings.video_channel_id:
        return Location.RESTRICTED
    return Location.OTHER


def plan_actions(settings: Settings, transition: PresenceTransition) -> List[AccessAction]:
    """Calcule les appels à effectuer pour une transition. Liste vide si l'événement ne nous concerne pas."""
    if transition.user_id is None or transition.guild_id is None:
        return []
    if transition.guild_id != settings.guild_id:
        return []

    tracked = (Location.COMPANION, Location.RESTRICTED)
    before = locate(settings, transition.before_channel_id)
    after = locate(settings, transition.after_channel_id)

    actions: List[AccessAction] = []
    if after is Location.COMPANION:
        actions.append(AccessAction.GRANT)
        if transition.self_stream:
            actions.append(AccessAction.MOVE)
    if before in tracked and after not in tracked:
        actions.append(AccessAction.REVOKE)
    return actions


def transition_from_voice_states(
    member: Optional[discord.Member],
    before: Optional[discord.VoiceState],
    after: discord.VoiceState,
) -> PresenceTransition:
    guild = getattr(member, "guild", None)
    before_channel = getattr(before, "channel", None)
    after_channel = getattr(after, "channel", None)
    return PresenceTransition(
        guild_id=getattr(guild, "id", None),
        user_id=getattr(member, "id", None),
        before_channel_id=getattr(before_channel, "id", None),
        after_channel_id=getattr(after_channel, "id", None),
        self_stream=bool(getattr(after, "self_stream", False)),
    )


class AccessSynchronizer:
    """Applique sur Discord les actions calculées par `plan_actions`."""

    def __init__(self, settings_provider):
        self.settings_provider = settings_provider

    async def handle_voice_state_update(
        self,
        member: Optional[discord.Member],
        before: Optional[discord.VoiceState],
        after: discord.VoiceState,
    ) -> List[AccessAction]:
        settings: Settings = self.settings_provider()
        transition = transition_from_voice_states(member, before, after)
        actions = plan_actions(settings, transition)
        if not actions:
            return []

        channel = await self._restricted_channel(member.guild, settings.video_channel_id)
        if channel is None:
            return []

        for action in actions:
            if action is AccessAction.GRANT:
                logger.info("[%s] a rejoint le salon vocal -> accès au salon vidéo", member.display_name)
                await self._call(action, member, channel.set_permissions(member, view_channel=True, reason="Présence salon vocal"))
            elif action is AccessAction.MOVE:
                logger.info("[%s] stream dans le salon vocal -> déplacement vers le salon vidéo", member.display_name)
                await self._call(action, member, member.move_to(channel, reason="Stream dans le salon vocal"))
            elif action is AccessAction.REVOKE:
                logger.info("[%s] a quitté les salons suivis -> retrait de l'accès au salon vidéo", member.display_name)
                await self._call(action, member, channel.set_permissions(member, overwrite=None, reason="Départ du salon vocal"))
        return actions

    async def _restricted_channel(self, guild: discord.Guild, channel_id: int):
        channel = guild.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await guild.fetch_channel(channel_id)
        except discord.HTTPException:
            logger.warning("Salon vidéo %s introuvable dans la guild %s", channel_id, guild.id)
            return None

    async def _call(self, action: AccessAction, member: discord.Member, coro) -> bool:
        try:
            await coro
            return True
        except discord.HTTPException:
            logger.exception("Echec %s pour le membre %s (%s)", action.value, member.display_name, member.id)
            return False


def setup_access_sync(bot) -> AccessSynchronizer:
    """Crée le synchroniseur et l'attache au bot (`bot.access_sync`)."""
    sync = AccessSynchronizer(lambda: bot.settings)
    bot.access_sync = sync  # type: ignore[attr-defined]
    return sync


__all__ = [
    "AccessAction",
    "AccessSynchronizer",
    "Location",
    "PresenceTransition",
    "locate",
    "plan_actions",
    "setup_access_sync",
    "transition_from_voice_states",
]
