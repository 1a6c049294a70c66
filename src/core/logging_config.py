"""
Configuration centralisée du logging pour le bot TempVoice.

Objectifs :
- Un seul setup idempotent (évite la duplication des handlers)
- Déduplication des messages identiques rapprochés (rafales d'événements vocaux, retries)
- Format et niveaux configurables via variables d'environnement :
    LOG_LEVEL          niveau global (INFO par défaut)
    DISCORD_LOG_LEVEL  niveau du logger de la librairie discord.py (WARNING par défaut)
    LOG_FORMAT         format des lignes
"""
from __future__ import annotations

import logging
import threading
import time
import os

_INITIALIZED = False

DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DISCORD_LEVEL = os.getenv("DISCORD_LOG_LEVEL", "WARNING").upper()
DEFAULT_FORMAT = os.getenv("LOG_FORMAT", '[%(asctime)s] %(levelname)s %(name)s: %(message)s')


class DeduplicateFilter(logging.Filter):
    """Supprime un message identique (logger, niveau, texte) répété dans la fenêtre `window`."""

    def __init__(self, window: float = 2.0, max_entries: int = 5000):
        super().__init__()
        self.window = window
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._seen: dict[tuple, float] = {}

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        try:
            rendered = record.getMessage()
        except Exception:  # noqa: BLE001
            rendered = str(record.msg)
        key = (record.name, record.levelno, rendered)
        now = time.monotonic()
        with self._lock:
            last = self._seen.get(key)
            if last is not None and now - last < self.window:
                return False
            self._seen[key] = now
            # Limite la croissance mémoire (reset si trop gros)
            if len(self._seen) > self.max_entries:
                self._seen.clear()
        return True


def setup_logging(force: bool = False) -> None:
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    formatter = logging.Formatter(DEFAULT_FORMAT)
    for h in root.handlers:
        if not any(isinstance(f, DeduplicateFilter) for f in h.filters):
            h.addFilter(DeduplicateFilter())
        h.setFormatter(formatter)
    root.setLevel(getattr(logging, DEFAULT_LEVEL, logging.INFO))
    logging.getLogger("discord").setLevel(getattr(logging, DISCORD_LEVEL, logging.WARNING))
    _INITIALIZED = True


__all__ = ["setup_logging", "DeduplicateFilter"]
