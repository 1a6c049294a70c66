"""
Collecteur de paramètres interactif.

Ouvre une fenêtre unique (30 s par défaut) pendant laquelle le premier message
de l'acteur, dans le salon d'origine, satisfaisant le prédicat de l'action est consommé.
S'appuie sur `Client.wait_for("message")` : un futur résolu une seule fois
(premier message valide ou expiration), sans bloquer les autres événements.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import discord

from .errors import InputTimeout

logger = logging.getLogger(__name__)

NAME_PREFIX = "name:"

MessageCheck = Callable[[discord.Message], bool]


def name_check(message: discord.Message) -> bool:
    return (message.content or "").lower().startswith(NAME_PREFIX)


def mention_check(message: discord.Message) -> bool:
    return bool(message.mentions)


def extract_name(message: discord.Message) -> str:
    return (message.content or "")[len(NAME_PREFIX):].strip()


class ParameterCollector:
    def __init__(self, client: discord.Client, timeout: float = 30.0):
        self.client = client
        self.timeout = timeout

    async def collect(
        self,
        channel_id: Optional[int],
        author_id: int,
        check: MessageCheck,
        *,
        failure: str | None = None,
    ) -> discord.Message:
        def _predicate(message: discord.Message) -> bool:
            if message.author.id != author_id:
                return False
            if channel_id is not None and message.channel.id != channel_id:
                return False
            return check(message)

        try:
            return await self.client.wait_for("message", check=_predicate, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug("Fenêtre de saisie expirée (auteur %s, salon %s)", author_id, channel_id)
            raise InputTimeout(failure) from None


__all__ = ["ParameterCollector", "name_check", "mention_check", "extract_name", "NAME_PREFIX"]
