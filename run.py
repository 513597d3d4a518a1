import argparse
import logging
import os

import numpy as np
import pandas as pd

from model import DEFAULT_POPULATION, GossipModel


parser = argparse.ArgumentParser(description="Simulation core")
parser.add_argument("-p", "--population", type=int, default=DEFAULT_POPULATION,
                    help="Initial population size")
parser.add_argument("--steps", type=int, default=2000,
                    help="Fast ticks to run (0.01 time units each)")
parser.add_argument("--seed", type=int, default=None)
parser.add_argument("--report-every", type=int, default=200)
parser.add_argument("--output", type=str, default="results")
parser.add_argument("--log-level", type=str, default="INFO",
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])

args, unknown = parser.parse_known_args()


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    model = GossipModel(population=args.population, seed=args.seed)

    print("Iniciando simulación de chismes...")

    for step in range(args.steps):
        model.step()
        if args.report_every > 0 and step % args.report_every == 0:
            m = model.last_metrics
            print(
                f"Tick {model.tick_count} | t={model.sim_time:.2f} "
                f"Simpatía media={m.get('mean_likeability', 0.0):.2f} "
                f"Conocidos={m.get('mean_known', 0.0):.1f} "
                f"Favorito propio={m.get('self_favorite_share', 0.0):.2f}"
            )

    df = model.datacollector.get_model_vars_dataframe()
    print("\n" + "=" * 30 + " REPORTE DE CHISMES " + "=" * 30)
    print(f"Declaraciones totales={int(df['statements'].sum())} "
          f"(positivas={int(df['positive_statements'].sum())}, "
          f"negativas={int(df['negative_statements'].sum())})")
    print(f"Escuchas totales={int(df['hearings'].sum())}")
    print(f"Cambios de favorito={int(df['favorite_changes'].sum())}")
    print(f"Rebotes en paredes={int(df['reflections'].sum())}")

    favorites = pd.Series([p.opinions.favorite_id() for p in model.people.values()])
    if not favorites.empty:
        top = favorites.value_counts().head(5)
        print("-- Personas más queridas --")
        for person_id, count in top.items():
            persona = model.people[person_id].persona if person_id in model.people else "?"
            print(f"{person_id} ({persona:12}) favorito de {count}")

    os.makedirs(args.output, exist_ok=True)
    for k, v in model.run_metadata.items():
        df[k] = v

    summary_path = os.path.join(args.output, "summary_evolution.csv")
    try:
        df.to_csv(summary_path)
    except PermissionError:
        summary_path = os.path.join(
            args.output, f"summary_evolution_{int(np.random.randint(1e9))}.csv"
        )
        df.to_csv(summary_path)

    opinions_path = os.path.join(args.output, "final_opinions.csv")
    pd.DataFrame(model.opinion_table()).to_csv(opinions_path, index=False)

    print(f"Datos guardados en {summary_path} y {opinions_path}")


if __name__ == "__main__":
    main()
