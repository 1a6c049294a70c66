"""TempVoice core package.

Les imports sont effectués de manière lazy pour éviter d'exécuter du code
pendant l'initialisation globale si non nécessaire.
"""
from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # aide mypy/IDE sans exécuter les imports au runtime initial
	from .manager import TempVoiceManager, setup_tempvoice_manager  # noqa: F401
	from .models import Room, RoomRegistry  # noqa: F401

__all__ = ["TempVoiceManager", "setup_tempvoice_manager", "Room", "RoomRegistry"]


def __getattr__(name: str):  # lazy resolution
	if name in {"TempVoiceManager", "setup_tempvoice_manager"}:
		mod = import_module("core.tempvoice.manager")
		return getattr(mod, name)
	if name in {"Room", "RoomRegistry"}:
		mod = import_module("core.tempvoice.models")
		return getattr(mod, name)
	raise AttributeError(name)
