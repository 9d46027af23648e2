"""
sweep_sides.py

Solves the same grasp problem with the quadratic decomposition and with the
linear decomposition for several polygon side counts, and records solve time,
objective and the gap between the decomposed and the exact net torque.

Every candidate gets its own problem and solver model.

Usage:
    python scripts/sweep_sides.py --shape cube --sides 4 8 16 32 --out sweep_results
"""

import argparse
import csv
import logging
import os
from datetime import datetime, timezone

import numpy as np
from tqdm import tqdm

from graspmip.geometry.shapes import SHAPES
from graspmip.planners.grasp_planner import NoGraspFoundError, plan_grasp
from graspmip.utils.load_config import load_config

logger = logging.getLogger(__name__)


def write_row(csvfile, row):
    writer = csv.writer(csvfile)
    writer.writerow(row)


def sweep_sides(shape='cube', sides_list=(4, 8, 16), config_path=None, out_dir="sweep_results", verbose=True):
    os.makedirs(out_dir, exist_ok=True)
    out_file = os.path.join(out_dir, f"sides_{shape}.csv")
    if not os.path.exists(out_file):
        with open(out_file, 'w', newline='') as f:
            write_row(f, ["decomposition", "sides", "status", "objective", "runtime",
                          "epsilon", "net_force", "net_torque", "torque_gap", "timestamp"])

    safe_regions = SHAPES[shape]()
    candidates = [('quadratic', None)] + [('linear', s) for s in sides_list]

    for decomposition, sides in tqdm(candidates, desc=f"Sweep {shape}", disable=not verbose):
        overrides = {"decomposition": decomposition}
        if sides is not None:
            overrides["sides"] = sides
        config = load_config(config_path, **overrides)
        timestamp = datetime.now(timezone.utc).isoformat()

        try:
            plan = plan_grasp(safe_regions, config)
        except NoGraspFoundError as e:
            logger.warning("%s/%s: %s", decomposition, sides, e)
            with open(out_file, 'a', newline='') as f:
                write_row(f, [decomposition, sides, e.status_name, "", "", "", "", "", "", timestamp])
            continue

        gap = np.linalg.norm(plan.net_torque - plan.decomposed_torque)
        with open(out_file, 'a', newline='') as f:
            write_row(f, [decomposition, sides, plan.status_name, plan.objective, plan.runtime, plan.epsilon,
                          np.linalg.norm(plan.net_force), np.linalg.norm(plan.net_torque), gap, timestamp])

    print("Sweep completed. Results saved in:", out_file)
    return out_file


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument('--shape', default='cube', choices=sorted(SHAPES))
    parser.add_argument('--sides', type=int, nargs='+', default=[4, 8, 16])
    parser.add_argument('--config', default=None)
    parser.add_argument('--out', default='sweep_results')
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)
    sweep_sides(args.shape, args.sides, args.config, args.out)
