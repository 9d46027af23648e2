import argparse
import logging

import numpy as np

from graspmip.geometry.shapes import SHAPES
from graspmip.planners.grasp_planner import NoGraspFoundError, plan_grasp
from graspmip.utils.load_config import load_config


def main():
    parser = argparse.ArgumentParser(description="Plan a multi-finger grasp over the safe regions of a simple shape")
    parser.add_argument('--shape', default='cube', choices=sorted(SHAPES))
    parser.add_argument('--config', default=None, help="YAML file overriding config/default.yaml")
    parser.add_argument('--n_contacts', type=int, default=None)
    parser.add_argument('--decomposition', default=None, choices=['linear', 'quadratic'])
    parser.add_argument('--sides', type=int, default=None)
    parser.add_argument('--mu_object', type=float, default=None)
    parser.add_argument('--inward_forces', action='store_true', default=None,
                        help="open friction cones around the inward normal (squeezing grasp); outward by default")
    parser.add_argument('--plot', action='store_true')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    config = load_config(args.config,
                         n_contacts=args.n_contacts,
                         decomposition=args.decomposition,
                         sides=args.sides,
                         mu_object=args.mu_object,
                         inward_forces=args.inward_forces)
    safe_regions = SHAPES[args.shape]()

    try:
        plan = plan_grasp(safe_regions, config)
    except NoGraspFoundError as e:
        print(e)
        raise SystemExit(1)

    np.set_printoptions(precision=4, suppress=True)
    print(f"Grasp on '{args.shape}' ({plan.status_name}, {plan.runtime:.2f}s, objective {plan.objective:.4g})")
    for c in plan.contacts:
        print(f"  finger {c.finger}: region {c.region} {c.region_name:>8}  p = {c.position}  f = {c.force}")
    print(f"  epsilon = {plan.epsilon:.4f}")
    print(f"  net force = {plan.net_force}")
    print(f"  net torque = {plan.net_torque}  (decomposed {plan.decomposed_torque})")

    if args.plot:
        from graspmip.planners.visualize_grasp import plot_grasp
        plot_grasp(plan, safe_regions, title=f"{args.shape}: {config.decomposition} decomposition")


if __name__ == "__main__":
    main()
