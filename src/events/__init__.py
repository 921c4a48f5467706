"""Handlers d'événements Discord."""
