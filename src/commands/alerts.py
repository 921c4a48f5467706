"""
Commande slash `/alerts`.

Ajoute ou retire le rôle d'alertes (ALERTS_ROLE_ID) au membre qui l'invoque.
Toutes les réponses sont éphémères.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import discord

from commands import CommandName
from core.config import Settings

logger = logging.getLogger(__name__)

MSG_NO_GUILD = "Cette commande n'est utilisable que dans une guilde."
MSG_WRONG_GUILD = "Cette commande n'est pas disponible sur ce serveur."
MSG_NOT_CONFIGURED = "Le rôle d'alertes n'est pas configuré. Contactez un administrateur."
MSG_MEMBER_UNKNOWN = "Impossible de retrouver votre profil sur ce serveur."
MSG_ADDED = "Rôle d'alertes ajouté !"
MSG_REMOVED = "Rôle d'alertes retiré !"
MSG_ADD_FAILED = "Impossible d'ajouter le rôle d'alertes. Contactez un administrateur."
MSG_REMOVE_FAILED = "Impossible de retirer le rôle d'alertes. Contactez un administrateur."


@dataclass(frozen=True)
class RoleToggleResult:
    added: bool  # True = ajout tenté, False = retrait tenté
    success: bool

    @property
    def message(self) -> str:
        if self.added:
            return MSG_ADDED if self.success else MSG_ADD_FAILED
        return MSG_REMOVED if self.success else MSG_REMOVE_FAILED


async def toggle_role(member: discord.Member, role_id: int) -> RoleToggleResult:
    """Retire le rôle si le membre l'a, l'ajoute sinon."""
    has_role = any(r.id == role_id for r in member.roles)
    role = discord.Object(id=role_id)
    try:
        if has_role:
            await member.remove_roles(role, reason="/alerts")
        else:
            await member.add_roles(role, reason="/alerts")
    except discord.HTTPException:
        logger.exception("Echec %s du rôle %s pour %s", "retrait" if has_role else "ajout", role_id, member.id)
        return RoleToggleResult(added=not has_role, success=False)
    return RoleToggleResult(added=not has_role, success=True)


async def _resolve_member(guild: discord.Guild, user_id: int) -> Optional[discord.Member]:
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id)
    except discord.HTTPException:
        logger.warning("Membre %s introuvable dans la guild %s", user_id, guild.id)
        return None


async def handle_alerts(interaction: discord.Interaction, settings: Settings) -> Optional[RoleToggleResult]:
    guild = interaction.guild
    if guild is None:
        await interaction.response.send_message(MSG_NO_GUILD, ephemeral=True)
        return None
    if guild.id != settings.guild_id:
        await interaction.response.send_message(MSG_WRONG_GUILD, ephemeral=True)
        return None
    if not settings.alerts_role_id:
        await interaction.response.send_message(MSG_NOT_CONFIGURED, ephemeral=True)
        return None

    member = await _resolve_member(guild, interaction.user.id)
    if member is None:
        await interaction.response.send_message(MSG_MEMBER_UNKNOWN, ephemeral=True)
        return None

    result = await toggle_role(member, settings.alerts_role_id)
    await interaction.response.send_message(result.message, ephemeral=True)
    if result.success:
        logger.info("[%s] rôle d'alertes %s", interaction.user.name, "ajouté" if result.added else "retiré")
    return result


def register(bot: discord.Client):
    @bot.tree.command(name=CommandName.ALERTS.value, description="Active ou retire le rôle d'alertes")
    async def alerts(interaction: discord.Interaction):  # noqa: D401
        await handle_alerts(interaction, bot.settings)

__all__ = ["register", "handle_alerts", "toggle_role", "RoleToggleResult"]
