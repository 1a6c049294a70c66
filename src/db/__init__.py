"""Requêtes SQL (asyncpg) par fonctionnalité."""
