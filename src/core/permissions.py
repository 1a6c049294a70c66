"""
Utilitaires pour la vérification des permissions Discord via bitmask.

Rappel :
- `discord.Permissions` expose un attribut `.value` (int) contenant les bits cumulés
- On teste un sous-ensemble via : (current & required) == required

Exemples : Administrator = 0x00000008, Manage Channels = 0x00000010

Ce module fournit :
- `has_perms(member, bits)` pour les vérifications ponctuelles (autorisation des rooms)
- le décorateur `require_perms` pour les commandes slash
"""
from __future__ import annotations

from typing import Callable, TypeVar, Awaitable, Any
import functools
import discord

T = TypeVar("T", bound=Callable[..., Awaitable[Any]])

# Extraits de `discord.Permissions` (compléter si besoin futur)
ADMINISTRATOR = 0x00000008
MANAGE_CHANNELS = 0x00000010


def has_perms(member: Any, bits: int) -> bool:
    """
    Indique si `member` possède tous les bits demandés au niveau du serveur.
    Administrator implique toutes les permissions.
    """
    perms = getattr(member, "guild_permissions", None)
    value = getattr(perms, "value", None)
    if not isinstance(value, int):
        return False
    if value & ADMINISTRATOR:
        return True
    return (value & bits) == bits


def require_perms(bits: int, *, ephemeral: bool = True, message: str | None = None):
    """
    Décorateur pour vérifier qu'un utilisateur possède toutes les permissions spécifiées (bitmask).

    Args :
        bits : Masque de bits des permissions requises (ex : MANAGE_CHANNELS = 16)
        ephemeral : Si True, les messages d'erreur sont envoyés en éphémère
        message : Message d'erreur personnalisé (optionnel)

    Note :
    - Ce décorateur suppose que la commande s'exécute dans une guild
    - Si utilisée en DM, l'accès est refusé
    """
    def decorator(func: T) -> T:
        @functools.wraps(func)
        async def wrapper(interaction: discord.Interaction, *args, **kwargs):  # type: ignore[misc]
            if interaction.guild is None:
                await interaction.response.send_message(
                    message or "Commande uniquement disponible dans une guilde.", ephemeral=ephemeral
                )
                return  # type: ignore[return-value]
            if not has_perms(interaction.user, bits):
                default_msg = message or f"Permissions insuffisantes (requis bitmask: {bits})."
                if interaction.response.is_done():
                    await interaction.followup.send(default_msg, ephemeral=ephemeral)
                else:
                    await interaction.response.send_message(default_msg, ephemeral=ephemeral)
                return  # type: ignore[return-value]
            return await func(interaction, *args, **kwargs)
        return wrapper  # type: ignore[return-value]
    return decorator

__all__ = ["require_perms", "has_perms", "ADMINISTRATOR", "MANAGE_CHANNELS"]
