"""Handlers d'événements Discord (chaque module expose `setup(bot)`)."""
