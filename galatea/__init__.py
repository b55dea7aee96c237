"""Galatea — set up servers and workstations from task and stack definitions."""

__version__ = "0.2.0"
