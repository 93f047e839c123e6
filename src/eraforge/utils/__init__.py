"""Utility functions for the Eraforge engine."""

from eraforge.utils.rng import generate_battle_seed, seeded_random

__all__ = [
    "generate_battle_seed",
    "seeded_random",
]
