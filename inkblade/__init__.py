"""Inkblade: the combat-resolution and typing-feel core of a typing roguelike."""

__version__ = "0.1.0"
