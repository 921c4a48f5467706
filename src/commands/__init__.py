"""
Registre des commandes slash du bot Discord.

Convention :
- L'ensemble des commandes est fermé : `CommandName` énumère les noms connus et `COMMANDS`
	associe chacun au module qui expose `register(bot)`.
- Toute autre commande reçue tombe dans la branche "inconnue" de l'arbre (voir `core.bot.BotTree`).
"""
from __future__ import annotations

import enum
import importlib
import logging
import discord

logger = logging.getLogger(__name__)


class CommandName(str, enum.Enum):
	ALERTS = "alerts"


COMMANDS = {
	CommandName.ALERTS: "commands.alerts",
}


async def load_all_commands(bot: discord.Client):
	for name, module_name in COMMANDS.items():
		try:
			module = importlib.import_module(module_name)
			result = module.register(bot)
			if hasattr(result, '__await__'):
				await result
			logger.debug("Commande chargée: /%s (%s)", name.value, module_name)
		except Exception:  # noqa: BLE001
			logger.exception("Echec chargement commande /%s", name.value)

__all__ = ["CommandName", "COMMANDS", "load_all_commands"]
