"""
Entrée principale du bot Discord.

Ce script garantit que le dossier courant est ajouté à sys.path pour permettre les imports absolus
(core, commands, etc.), même si le lancement se fait via `python src/run.py`.

Sans BOT_TOKEN, un fichier de configuration à compléter est écrit et le processus s'arrête
sans se connecter.
"""
from __future__ import annotations

import sys
import os

 # Ajoute dynamiquement le répertoire courant à sys.path si nécessaire
_CURRENT_DIR = os.path.dirname(__file__)
if _CURRENT_DIR not in sys.path:
    sys.path.insert(0, _CURRENT_DIR)

from core.logging_config import setup_logging  # noqa: E402
from core import config, bot as bot_module  # noqa: E402
from core.errors import ConfigurationError  # noqa: E402


def main() -> int:
    setup_logging()  # Niveau provisoire (LOG_LEVEL de l'environnement)
    try:
        settings = config.load_settings()
    except ConfigurationError as exc:
        print(f"Configuration invalide: {exc}", file=sys.stderr)
        return 1
    setup_logging(settings.log_level, force=True)

    # Vérifie la présence du token Discord
    if not settings.token:
        path = config.write_template()
        print(f"BOT_TOKEN manquant : complétez {path} puis relancez le bot", file=sys.stderr)
        return 1

    bot = bot_module.Bot(settings)
    try:
        bot.run(settings.token, log_handler=None)
    except KeyboardInterrupt:
        print("Arrêt manuel")
    return 0


# Démarre le bot si le script est exécuté directement
if __name__ == "__main__":
    sys.exit(main())
