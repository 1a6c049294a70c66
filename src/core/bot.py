"""
Classe principale du bot TempVoice.

Responsabilités :
- Crée le client Discord et l'arbre de commandes slash.
- Choisit le stockage durable : Postgres (pool + schéma) si DATABASE_URL, sinon fichier JSON.
- Charge le manager TempVoice (registre relu une seule fois au démarrage).
- Enregistre les commandes et événements.

Note : L'initialisation asynchrone est centralisée dans `setup_hook`, appelé avant `on_ready`.
"""
from __future__ import annotations

import logging
import discord
from discord import app_commands

from core import config, db

logger = logging.getLogger(__name__)

class Bot(discord.Client):
    """
    Client Discord étendu, encapsulant l'état applicatif.

    Attributs principaux :
        tree : Arbre des commandes slash (CommandTree)
        db_pool : Pool asyncpg (None si aucune DB configurée)
        tempvoice : TempVoiceManager (None tant que non initialisé)
    """

    def __init__(self):
        super().__init__(intents=config.INTENTS)
        self.tree = app_commands.CommandTree(self)
        self.db_pool = None  # Sera peuplé si DATABASE_URL défini
        self.tempvoice = None

    async def _build_store(self):
        from core.tempvoice.store import JsonFileStore, PostgresStore  # import local pour éviter cycles
        if config.DATABASE_URL:
            try:
                self.db_pool = await db.get_pool(config.DATABASE_URL)
                store = PostgresStore(self.db_pool)
                await store.setup()
                logger.info("Stockage TempVoice: Postgres")
                return store
            except Exception:  # noqa: BLE001
                logger.exception("Erreur init DB, repli sur le fichier %s", config.TEMPVOICE.state_file)
        logger.info("Stockage TempVoice: fichier %s", config.TEMPVOICE.state_file)
        return JsonFileStore(config.TEMPVOICE.state_file)

    async def setup_hook(self):
        """
        Initialise les sous-systèmes avant la mise en ligne.

        Séquence :
        1. Stockage durable (Postgres ou fichier)
        2. Manager TempVoice
        3. Enregistrement des commandes et événements
        """
        try:
            from core.tempvoice.manager import setup_tempvoice_manager  # type: ignore
            store = await self._build_store()
            await setup_tempvoice_manager(self, config.TEMPVOICE, store)
            logger.info("TempVoice manager initialisé")
        except Exception:  # noqa: BLE001
            logger.exception("Erreur init TempVoice manager")
        # Chargement commandes dynamiques
        try:
            from commands import load_all_commands  # type: ignore
            await load_all_commands(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur chargement commandes dynamiques")
        # Events
        try:
            from events.tempvoice import setup as setup_tempvoice_events  # type: ignore
            setup_tempvoice_events(self)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur setup events")
        # Sync final
        try:
            await self.tree.sync()
            logger.info("Slash commands synchronisées")
        except Exception:  # noqa: BLE001
            logger.exception("Erreur sync slash commands")

    async def on_ready(self):
        logger.info("Connecté: %s (%s)", self.user, getattr(self.user, 'id', '?'))

    async def close(self):  # type: ignore[override]
        """
        Fermeture propre du bot : vide les notifications en attente puis ferme le pool asyncpg.
        """
        try:
            if self.tempvoice is not None:
                await self.tempvoice.close()
        except Exception:  # noqa: BLE001
            logger.exception("Erreur fermeture TempVoice")
        try:
            await db.close_pool()
        except Exception:  # noqa: BLE001
            logger.exception("Erreur fermeture pool")
        await super().close()
