"""Deterministic Random Number Generator (RNG) helpers for Eraforge.

Battles are precomputed from a seed string so that a battle log can always be
regenerated from the seed stored alongside its result.  All randomness is
derived from engine state (battle kind, target, battle count, timestamp) to
ensure:
- Reproducibility: Same seed always produces same battle log
- Replay: A stored seed regenerates the exact rounds
- Testability: Callers can pin a seed instead of mocking ``random``

Examples:
    >>> seed = generate_battle_seed("mission", "stone_wolves", 3, 1_700_000_000_000)
    >>> seed
    'mission:stone_wolves:3:1700000000000'
    >>> rng = seeded_random(seed)
    >>> 0.0 <= rng.random() < 1.0
    True
"""

import hashlib
import random


def generate_battle_seed(kind: str, target_id: str, battle_number: int, timestamp: int) -> str:
    """Generate deterministic seed for one battle.

    Format: "kind:target_id:battle_number:timestamp"

    Args:
        kind: Battle slot ('mission' or 'conquest')
        target_id: Mission or territory id being fought
        battle_number: How many battles the player has fought before this one
        timestamp: Start time of the battle in epoch milliseconds

    Returns:
        Seed string for RNG in format "kind:target_id:battle_number:timestamp"

    Examples:
        >>> generate_battle_seed("conquest", "territory_river_valley", 0, 5)
        'conquest:territory_river_valley:0:5'

    Raises:
        ValueError: If battle_number or timestamp is negative
    """
    if battle_number < 0:
        raise ValueError(f"battle_number must be non-negative, got {battle_number}")
    if timestamp < 0:
        raise ValueError(f"timestamp must be non-negative, got {timestamp}")

    return f"{kind}:{target_id}:{battle_number}:{timestamp}"


def _seed_to_int(seed: str) -> int:
    """Convert seed string to a stable 64-bit integer for random.Random().

    Args:
        seed: Seed string

    Returns:
        64-bit integer derived from SHA-256(seed)
    """
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    # Use first 8 bytes for a 64-bit integer
    return int.from_bytes(digest[:8], "big", signed=False)


def seeded_random(seed: str) -> random.Random:
    """Create an independent generator seeded from ``seed``.

    Args:
        seed: Deterministic seed string

    Returns:
        ``random.Random`` instance; the same seed yields the same sequence
    """
    return random.Random(_seed_to_int(seed))

