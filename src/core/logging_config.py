"""
Configuration centralisée du logging pour le bot Discord.

Objectifs :
- Un seul setup idempotent (évite la duplication des handlers)
- Déduplication des messages identiques sur une fenêtre glissante (échecs répétés de rotation,
  rafales d'événements vocaux)
- Niveau fixé par LOG_LEVEL ou par l'instantané de configuration
"""
from __future__ import annotations

import logging
import os
import threading
import time
from typing import Optional

_INITIALIZED = False

DEFAULT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
DEDUP_WINDOW_SECONDS = 60.0
_MAX_TRACKED = 5000


class DeduplicateFilter(logging.Filter):
    """Ignore un message identique (logger, niveau, texte) déjà émis dans la fenêtre."""

    def __init__(self, window: float = DEDUP_WINDOW_SECONDS, clock=time.monotonic):
        super().__init__()
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._last_seen: dict[tuple, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except Exception:  # noqa: BLE001
            rendered = str(record.msg)
        key = (record.name, record.levelno, rendered)
        now = self._clock()
        with self._lock:
            last = self._last_seen.get(key)
            if last is not None and now - last < self.window:
                return False
            self._last_seen[key] = now
            # Borne mémoire : on oublie les entrées expirées, puis tout si nécessaire
            if len(self._last_seen) > _MAX_TRACKED:
                self._last_seen = {k: t for k, t in self._last_seen.items() if now - t < self.window}
                if len(self._last_seen) > _MAX_TRACKED:
                    self._last_seen.clear()
        return True


def setup_logging(level: Optional[str] = None, force: bool = False) -> None:
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for h in root.handlers:
        if not any(isinstance(f, DeduplicateFilter) for f in h.filters):
            h.addFilter(DeduplicateFilter())
        h.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root.setLevel(resolved)
    # discord.py est bavard en INFO (gateway, heartbeats)
    logging.getLogger("discord").setLevel(resolved if resolved <= logging.DEBUG else logging.WARNING)
    _INITIALIZED = True


__all__ = ["setup_logging", "DeduplicateFilter"]
