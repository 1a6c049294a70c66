"""Noyau du bot : configuration, logging, client Discord, permissions et fonctionnalité TempVoice."""
