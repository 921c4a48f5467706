"""
Configuration centrale du bot Discord.

Ce module lit un fichier au format dotenv (`.env` par défaut, ou le chemin indiqué par
BOT_CONFIG_FILE) et produit un instantané immuable `Settings` :
- Le token du bot (BOT_TOKEN, obligatoire)
- La guild suivie, le salon vocal (compagnon) et le salon vidéo (restreint)
- Le rôle d'alertes (ALERTS_ROLE_ID, 0 = désactivé)
- Les pools d'icônes et les bornes du délai de rotation

Les variables d'environnement du processus priment sur le fichier, comme avec `load_dotenv()`.
Si le token est absent, `write_template` génère un fichier à compléter.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import discord
from dotenv import dotenv_values

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "BOT_CONFIG_FILE"
DEFAULT_CONFIG_FILE = ".env"

# Intents non privilégiés : guilds + voice_states suffisent
INTENTS = discord.Intents.default()

# (clé, valeur par défaut, commentaire du template)
_TEMPLATE_KEYS = (
    ("BOT_TOKEN", "", "Token du bot Discord (obligatoire)"),
    ("GUILD_ID", "0", "ID de la guild suivie"),
    ("VOICE_CHANNEL_ID", "0", "Salon vocal public qui donne accès au salon vidéo"),
    ("VIDEO_CHANNEL_ID", "0", "Salon vidéo dont la visibilité est accordée aux membres du salon vocal"),
    ("ALERTS_ROLE_ID", "0", "Rôle ajouté/retiré par /alerts (0 = désactivé)"),
    ("ICON_POOL_DIR", "icons", "Dossier des icônes disponibles"),
    ("ICON_SPENT_DIR", "", "Dossier des icônes déjà utilisées (vide = rotation désactivée)"),
    ("ICON_MIN_DELAY_HOURS", "24", "Délai minimum entre deux rotations (heures)"),
    ("ICON_MAX_DELAY_HOURS", "0", "Délai maximum entre deux rotations (heures, 0 = désactivé)"),
    ("ACTIVITY_NAME", "with commands", "Texte de l'activité affichée par le bot"),
    ("LOG_LEVEL", "INFO", "Niveau de log"),
)
KNOWN_KEYS = tuple(key for key, _, _ in _TEMPLATE_KEYS)
_DEFAULTS = {key: default for key, default, _ in _TEMPLATE_KEYS}


@dataclass(frozen=True)
class Settings:
    """
    Instantané de configuration, partagé en lecture seule.

    Attributs :
        token : token Discord (vide = non configuré)
        guild_id : guild suivie
        voice_channel_id : salon compagnon
        video_channel_id : salon restreint
        alerts_role_id : rôle d'alertes, None si non configuré
        icon_pool_dir : pool des icônes disponibles
        icon_spent_dir : pool des icônes utilisées, None si la rotation est désactivée
        icon_min_delay_hours / icon_max_delay_hours : bornes du délai (min <= max vérifié à l'usage)
    """

    token: str = ""
    guild_id: int = 0
    voice_channel_id: int = 0
    video_channel_id: int = 0
    alerts_role_id: Optional[int] = None
    icon_pool_dir: Optional[Path] = Path("icons")
    icon_spent_dir: Optional[Path] = None
    icon_min_delay_hours: int = 24
    icon_max_delay_hours: int = 0
    activity_name: str = "with commands"
    log_level: str = "INFO"

    @property
    def rotation_enabled(self) -> bool:
        return self.icon_spent_dir is not None


def config_path(path: str | os.PathLike | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.getenv(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE)


def _int(values: Mapping[str, str], key: str) -> int:
    raw = (values.get(key) or "").strip()
    if not raw:
        return int(_DEFAULTS[key])
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} doit être un entier (reçu {raw!r})") from None


def _path(values: Mapping[str, str], key: str) -> Optional[Path]:
    raw = (values.get(key) or "").strip()
    return Path(raw).expanduser() if raw else None


def read_values(path: str | os.PathLike | None = None) -> dict[str, str]:
    """Lit le fichier (s'il existe) puis applique les variables d'environnement connues."""
    file = config_path(path)
    values: dict[str, str] = {}
    if file.is_file():
        values.update({k: v for k, v in dotenv_values(file).items() if v is not None})
    for key in KNOWN_KEYS:
        if key in os.environ:
            values[key] = os.environ[key]
    return values


def settings_from_values(values: Mapping[str, str]) -> Settings:
    alerts = _int(values, "ALERTS_ROLE_ID")
    pool_dir = values.get("ICON_POOL_DIR")
    return Settings(
        token=(values.get("BOT_TOKEN") or "").strip(),
        guild_id=_int(values, "GUILD_ID"),
        voice_channel_id=_int(values, "VOICE_CHANNEL_ID"),
        video_channel_id=_int(values, "VIDEO_CHANNEL_ID"),
        alerts_role_id=alerts or None,
        icon_pool_dir=_path(values, "ICON_POOL_DIR") if pool_dir is not None else Path(_DEFAULTS["ICON_POOL_DIR"]),
        icon_spent_dir=_path(values, "ICON_SPENT_DIR"),
        icon_min_delay_hours=_int(values, "ICON_MIN_DELAY_HOURS"),
        icon_max_delay_hours=_int(values, "ICON_MAX_DELAY_HOURS"),
        activity_name=(values.get("ACTIVITY_NAME") or _DEFAULTS["ACTIVITY_NAME"]).strip(),
        log_level=(values.get("LOG_LEVEL") or _DEFAULTS["LOG_LEVEL"]).strip().upper(),
    )


def load_settings(path: str | os.PathLike | None = None) -> Settings:
    settings = settings_from_values(read_values(path))
    if not settings.token:
        logger.warning("BOT_TOKEN manquant dans %s", config_path(path))
    return settings


def _quote(value: str) -> str:
    """Echappe une valeur pour une chaîne entre guillemets doubles relue par python-dotenv."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def write_template(path: str | os.PathLike | None = None) -> Path:
    """
    Ecrit un fichier de configuration à compléter.

    Les valeurs déjà présentes dans le fichier sont conservées, les clés manquantes
    reçoivent leur valeur par défaut.
    """
    file = config_path(path)
    existing: dict[str, str] = {}
    if file.is_file():
        existing = {k: v for k, v in dotenv_values(file).items() if v is not None}
    lines = []
    for key, default, comment in _TEMPLATE_KEYS:
        value = _quote(existing.get(key, default))
        lines.append(f"# {comment}")
        lines.append(f'{key}="{value}"')
    file.parent.mkdir(parents=True, exist_ok=True)
    file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info("Template de configuration écrit: %s", file)
    return file


__all__ = [
    "INTENTS",
    "KNOWN_KEYS",
    "Settings",
    "config_path",
    "load_settings",
    "read_values",
    "settings_from_values",
    "write_template",
]
