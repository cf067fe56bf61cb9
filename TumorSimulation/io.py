"""I/O utilities for simulation input/output.

Handles loading the YAML configuration and writing flat CSV exports of
population trajectories, component snapshots and mutation frequencies.
"""

from __future__ import annotations

import csv
import pathlib
from typing import Any, Iterable, Mapping, Sequence

import yaml

from TumorSimulation.component import TumorComponent
from TumorSimulation.config import SimulationConfig
from TumorSimulation.population import MutationFrequencyMap

TRAJECTORY_FIELDS = ["trial_index", "time_step", "component_count", "cell_count", "mutation_count"]
COMPONENT_FIELDS = [
    "trial_index",
    "component_index",
    "kind",
    "state",
    "cell_count",
    "birth_rate",
    "death_rate",
    "parent_index",
    "genotype_index",
    "original_mutation_count",
    "accumulated_mutation_count",
    "genotype",
]
MUTATION_FREQUENCY_FIELDS = ["trial_index", "mutation_index", "mutation_type", "origin_time", "selection_coeff", "frequency"]


# -----------------------------------------------------------------------------
# Configuration loading
# -----------------------------------------------------------------------------

def _resolve_path(value: str, base_dir: pathlib.Path) -> pathlib.Path:
    path = pathlib.Path(value)
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _require(raw: Mapping[str, Any], key: str) -> Any:
    if key not in raw:
        raise ValueError(f"Missing required config field: {key}")
    return raw[key]


def _optional_int(raw: Mapping[str, Any], key: str) -> int | None:
    value = raw.get(key)
    return int(value) if value is not None else None


def _optional_path(raw: Mapping[str, Any], key: str, base_dir: pathlib.Path) -> str | None:
    value = raw.get(key)
    return str(_resolve_path(str(value), base_dir)) if value is not None else None


def load_simulation_config(path: str | pathlib.Path) -> SimulationConfig:
    """Load and validate simulation configuration from YAML."""
    path = pathlib.Path(path)
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")

    base_dir = path.resolve().parent
    out_path = _resolve_path(str(_require(raw, "out_path")), base_dir)

    cfg = SimulationConfig(
        birth_rate=float(_require(raw, "birth_rate")),
        death_rate=float(_require(raw, "death_rate")),
        max_step_count=int(_require(raw, "max_step_count")),
        out_path=str(out_path),
        component_type=str(raw.get("component_type", "lineage")).lower(),
        initial_cell_count=int(raw.get("initial_cell_count", 1)),
        trial_count=int(raw.get("trial_count", 1)),
        random_seed=int(raw.get("random_seed", 0)),
        max_cell_count=_optional_int(raw, "max_cell_count"),
        explicit_sampling_limit=int(raw.get("explicit_sampling_limit", 10)),
        mutation_sampling_limit=int(raw.get("mutation_sampling_limit", 10)),
        neutral_rate_type=str(raw.get("neutral_rate_type", "zero")).lower(),
        neutral_mean_rate=float(raw.get("neutral_mean_rate", 0.0)),
        selective_rate_type=str(raw.get("selective_rate_type", "zero")).lower(),
        selective_mean_rate=float(raw.get("selective_mean_rate", 0.0)),
        selection_coeff=float(raw.get("selection_coeff", 0.0)),
        resistance_rate_type=str(raw.get("resistance_rate_type", "zero")).lower(),
        resistance_mean_rate=float(raw.get("resistance_mean_rate", 0.0)),
        neoantigen_rate_type=str(raw.get("neoantigen_rate_type", "zero")).lower(),
        neoantigen_mean_rate=float(raw.get("neoantigen_mean_rate", 0.0)),
        max_mutation_count=_optional_int(raw, "max_mutation_count"),
        max_mutation_time=_optional_int(raw, "max_mutation_time"),
        component_out_path=_optional_path(raw, "component_out_path", base_dir),
        mutation_frequency_path=_optional_path(raw, "mutation_frequency_path", base_dir),
    )
    return cfg


# -----------------------------------------------------------------------------
# Row builders
# -----------------------------------------------------------------------------

def build_component_rows(components: Iterable[TumorComponent], trial_index: int = 0) -> list[dict]:
    """One row per component with its size, rates and genotype summary."""
    rows = []
    for component in components:
        genotype = component.genotype
        rows.append({
            "trial_index": trial_index,
            "component_index": component.index,
            "kind": component.kind.value,
            "state": component.state.value,
            "cell_count": component.count_cells(),
            "birth_rate": component.growth_rate.birth_rate,
            "death_rate": component.growth_rate.death_rate,
            "parent_index": component.parent.index if component.parent is not None else "",
            "genotype_index": genotype.index,
            "original_mutation_count": genotype.count_original_mutations(),
            "accumulated_mutation_count": genotype.count_accumulated_mutations(),
            "genotype": genotype.format(),
        })
    return rows


def build_mutation_frequency_rows(freq_map: MutationFrequencyMap, trial_index: int = 0) -> list[dict]:
    return [
        {
            "trial_index": trial_index,
            "mutation_index": mf.mutation.index,
            "mutation_type": mf.mutation.mutation_type.value,
            "origin_time": mf.mutation.origin_time,
            "selection_coeff": mf.mutation.selection_coeff,
            "frequency": mf.frequency,
        }
        for mf in freq_map.list_frequencies()
    ]


# -----------------------------------------------------------------------------
# CSV output
# -----------------------------------------------------------------------------

def _write_csv(rows: Sequence[Mapping[str, object]], fieldnames: list[str], path: str | pathlib.Path) -> pathlib.Path:
    path_obj = pathlib.Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)

    with open(path_obj, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return path_obj


def save_trajectory_csv(rows: Sequence[Mapping[str, object]], path: str | pathlib.Path) -> pathlib.Path:
    """Save per-step population summaries to CSV."""
    if not rows:
        raise ValueError("No trajectory rows to write")
    return _write_csv(rows, TRAJECTORY_FIELDS, path)


def save_component_csv(rows: Sequence[Mapping[str, object]], path: str | pathlib.Path) -> pathlib.Path:
    """Save component snapshot rows to CSV; an extinct tumor writes a header only."""
    return _write_csv(rows, COMPONENT_FIELDS, path)


def save_mutation_frequency_csv(rows: Sequence[Mapping[str, object]], path: str | pathlib.Path) -> pathlib.Path:
    return _write_csv(rows, MUTATION_FREQUENCY_FIELDS, path)


def load_csv_rows(path: str | pathlib.Path) -> list[dict[str, str]]:
    """Load rows written by any of the savers above."""
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = [dict(row) for row in reader]
    return rows
