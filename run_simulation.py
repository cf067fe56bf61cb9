from __future__ import annotations

import argparse
import logging
from typing import Sequence

from TumorSimulation.driver import TumorDriver
from TumorSimulation.io import (
    build_component_rows,
    build_mutation_frequency_rows,
    load_simulation_config,
    save_component_csv,
    save_mutation_frequency_csv,
    save_trajectory_csv,
)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run stochastic tumor growth trials.")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to simulation YAML config (default: config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    sim_config = load_simulation_config(args.config)

    driver = TumorDriver(sim_config)
    results = driver.run()

    trajectory = [row for result in results for row in result.trajectory]
    save_trajectory_csv(trajectory, sim_config.out_path)

    if sim_config.component_out_path is not None:
        component_rows = []
        for result in results:
            component_rows.extend(build_component_rows(result.tumor.view_components(), result.trial_index))
        save_component_csv(component_rows, sim_config.component_out_path)
        print(f"Wrote {len(component_rows)} components to {sim_config.component_out_path}")

    if sim_config.mutation_frequency_path is not None:
        freq_rows = []
        for result in results:
            freq_map = result.tumor.compute_mutation_frequency()
            freq_rows.extend(build_mutation_frequency_rows(freq_map, result.trial_index))
        save_mutation_frequency_csv(freq_rows, sim_config.mutation_frequency_path)
        print(f"Wrote {len(freq_rows)} mutation frequencies to {sim_config.mutation_frequency_path}")

    print(f"Wrote {len(trajectory)} trajectory rows to {sim_config.out_path}")


if __name__ == "__main__":
    main()
