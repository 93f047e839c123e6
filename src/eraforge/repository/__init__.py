"""Persistence adapters for Eraforge save documents."""

from eraforge.repository.json_store import JsonSaveRepository

__all__ = ["JsonSaveRepository"]
