"""Embeds, vues et textes affichés par le bot."""
