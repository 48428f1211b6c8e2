"""Static catalog of interview simulations and their model preferences."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping

from failover.config import ConfigurationError
from failover.resolver import SimulationConfig


DEFAULT_SIMULATIONS = {
    "sim-101-finance": SimulationConfig(
        id="sim-101-finance",
        name="Financial Analyst Interview",
        primary_model="gpt-4o",
        secondary_model="claude-3-sonnet",
    ),
    "sim-202-engineering": SimulationConfig(
        id="sim-202-engineering",
        name="Software Engineer Interview",
        primary_model="claude-3-sonnet",
        secondary_model="gpt-4o",
    ),
}


def load_simulations(path: str | Path | None = None) -> dict[str, SimulationConfig]:
    """Load the simulation catalog.

    Without a path the built-in catalog is returned. Otherwise ``path`` must be a
    JSON list of objects with ``id``, ``name``, ``primaryModel`` and
    ``secondaryModel`` keys.
    """
    if path is None:
        return dict(DEFAULT_SIMULATIONS)

    try:
        items = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot read simulations file {path}: {exc}") from exc
    if not isinstance(items, list):
        raise ConfigurationError("simulations file must contain a JSON list")

    simulations: dict[str, SimulationConfig] = {}
    for item in items:
        config = _parse_simulation(item)
        if config.id in simulations:
            raise ConfigurationError(f"duplicate simulation id {config.id!r}")
        simulations[config.id] = config
    return simulations


def _parse_simulation(item: object) -> SimulationConfig:
    if not isinstance(item, dict):
        raise ConfigurationError(f"simulation entry must be an object, got {item!r}")
    values = {}
    for key in ("id", "name", "primaryModel", "secondaryModel"):
        value = item.get(key)
        if not isinstance(value, str) or not value:
            raise ConfigurationError(f"simulation entry {item!r} is missing {key!r}")
        values[key] = value
    return SimulationConfig(
        id=values["id"],
        name=values["name"],
        primary_model=values["primaryModel"],
        secondary_model=values["secondaryModel"],
    )


def referenced_models(simulations: Mapping[str, SimulationConfig]) -> list[str]:
    models: dict[str, None] = {}
    for config in simulations.values():
        models.setdefault(config.primary_model)
        models.setdefault(config.secondary_model)
    return list(models)


def validate_models(simulations: Mapping[str, SimulationConfig], known_models: Iterable[str]) -> None:
    known = set(known_models)
    problems = []
    for config in simulations.values():
        missing = [m for m in (config.primary_model, config.secondary_model) if m not in known]
        if missing:
            problems.append(f"{config.id}: {', '.join(missing)}")
    if problems:
        raise ConfigurationError("simulations reference unknown models: " + "; ".join(problems))
