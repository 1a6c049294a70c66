"""Erreurs métier TempVoice.

Chaque erreur porte le message destiné à l'acteur ; le dispatcher le renvoie en éphémère.
"""
from __future__ import annotations


class TempVoiceError(Exception):
    default_message = "Action impossible."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthorized(TempVoiceError):
    default_message = "❌ Tu n'es ni propriétaire, ni co-propriétaire, ni gestionnaire des salons."


class RoomNotFound(TempVoiceError):
    default_message = "Salon introuvable ou non géré."


class InputTimeout(TempVoiceError):
    default_message = "❌ Aucune réponse reçue à temps."


class InvalidTarget(TempVoiceError):
    default_message = "❌ Cible invalide."


class PlatformCommandFailure(TempVoiceError):
    default_message = "❌ Discord a refusé l'opération."


__all__ = [
    "TempVoiceError",
    "Unauthorized",
    "RoomNotFound",
    "InputTimeout",
    "InvalidTarget",
    "PlatformCommandFailure",
]
