"""Domain layer of the Eraforge simulation.

This package hosts every game rule as a pure function over the
:class:`~eraforge.domain.models.GameState` aggregate:

* Dataclasses describing catalog entries and engine state (see :mod:`models`).
* The immutable reference catalog (see :mod:`catalog`).
* Rule configuration objects (see :mod:`rules_config`).
* One module per subsystem, orchestrated by :mod:`tick`.
"""

from . import (
    achievements,
    catalog,
    combat,
    economy,
    enums,
    military,
    models,
    production,
    research,
    rules_config,
    state,
    tick,
)

__all__ = [
    "achievements",
    "catalog",
    "combat",
    "economy",
    "enums",
    "military",
    "models",
    "production",
    "research",
    "rules_config",
    "state",
    "tick",
]
