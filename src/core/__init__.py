"""Coeur du bot : configuration, logging, accès au salon vidéo, rotation d'icône."""
