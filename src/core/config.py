"""
Configuration centrale du bot TempVoice.

Ce module charge les variables d'environnement (.env) et prépare :
- Les intents Discord (members, voice_states, message_content, presences optionnel)
- Le token du bot (BOT_TOKEN, obligatoire)
- L'URL de la base de données (DATABASE_URL, optionnelle ; sinon stockage fichier JSON)
- Les identifiants des salons TempVoice (lobby, catégorie, logs, panneau)

Un warning est émis si BOT_TOKEN est absent pour détecter le problème avant le lancement du bot.
"""
from __future__ import annotations

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
import discord

load_dotenv()

logger = logging.getLogger(__name__)

INTENTS = discord.Intents.default()
INTENTS.message_content = True  # le collecteur lit le texte des messages (name: ..., mentions)
INTENTS.members = True
INTENTS.voice_states = True

# L'intent "presences" est privilégié ; activable via la variable d'environnement ENABLE_PRESENCES
_PRESENCES_ENV = (os.getenv("ENABLE_PRESENCES", "false") or "false").strip().lower()
INTENTS.presences = _PRESENCES_ENV in {"1", "true", "yes", "on"}

BOT_TOKEN = os.getenv("BOT_TOKEN")
DATABASE_URL = os.getenv("DATABASE_URL")


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Variable %s invalide (%r), valeur par défaut utilisée", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Variable %s invalide (%r), valeur par défaut utilisée", name, raw)
        return default


@dataclass(frozen=True)
class TempVoiceConfig:
    """Paramètres consommés par la fonctionnalité TempVoice.

    Les identifiants absents valent None : la création de room est alors désactivée
    (lobby/catégorie) ou le canal correspondant est simplement ignoré (logs/panneau).
    """

    lobby_channel_id: Optional[int] = None
    category_id: Optional[int] = None
    log_channel_id: Optional[int] = None
    panel_channel_id: Optional[int] = None
    owner_id: Optional[int] = None
    default_user_limit: int = 0
    default_bitrate: int = 64000
    create_cooldown: float = 8.0
    collect_timeout: float = 30.0
    state_file: str = "data/tempvoice.json"

    @classmethod
    def from_env(cls) -> "TempVoiceConfig":
        return cls(
            lobby_channel_id=_env_int("TEMPVOICE_LOBBY_CHANNEL_ID"),
            category_id=_env_int("TEMPVOICE_CATEGORY_ID"),
            log_channel_id=_env_int("TEMPVOICE_LOG_CHANNEL_ID"),
            panel_channel_id=_env_int("TEMPVOICE_PANEL_CHANNEL_ID"),
            owner_id=_env_int("BOT_OWNER_ID"),
            default_user_limit=max(0, min(99, _env_int("TEMPVOICE_DEFAULT_USER_LIMIT", 0) or 0)),
            default_bitrate=_env_int("TEMPVOICE_DEFAULT_BITRATE", 64000) or 64000,
            create_cooldown=_env_float("TEMPVOICE_CREATE_COOLDOWN", 8.0),
            state_file=os.getenv("TEMPVOICE_STATE_FILE") or "data/tempvoice.json",
        )


TEMPVOICE = TempVoiceConfig.from_env()


# Avertit si le token du bot est absent
if not BOT_TOKEN:
    logger.warning("BOT_TOKEN manquant dans l'environnement")
if TEMPVOICE.lobby_channel_id is None or TEMPVOICE.category_id is None:
    logger.warning("TEMPVOICE_LOBBY_CHANNEL_ID / TEMPVOICE_CATEGORY_ID non définis : création de rooms désactivée")
