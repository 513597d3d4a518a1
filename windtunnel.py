from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pandas as pd

from model import GossipModel


@dataclass
class ScenarioConfig:
    name: str
    population: int


def evaluate_scenarios(
    scenarios: List[ScenarioConfig],
    seeds: List[int],
    steps: int,
) -> pd.DataFrame:
    """Run every scenario over every seed and return one row of results per run."""
    rows = []
    for scenario in scenarios:
        for seed in seeds:
            model = GossipModel(population=scenario.population, seed=seed)
            for _ in range(steps):
                model.step()
                if not model.running:
                    break
            history = model.datacollector.get_model_vars_dataframe()
            last = model.last_metrics or {}
            rows.append(
                dict(
                    scenario=scenario.name,
                    seed=seed,
                    population=scenario.population,
                    ticks=model.tick_count,
                    statements=int(history["statements"].sum()),
                    hearings=int(history["hearings"].sum()),
                    favorite_changes=int(history["favorite_changes"].sum()),
                    mean_likeability=last.get("mean_likeability", 0.0),
                    mean_known=last.get("mean_known", 0.0),
                    self_favorite_share=last.get("self_favorite_share", 0.0),
                    top_favorite_share=last.get("top_favorite_share", 0.0),
                )
            )
    return pd.DataFrame(rows)
