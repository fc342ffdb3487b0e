#!/usr/bin/env python3
"""
LJ Energy Report

Places particles on a simple cubic lattice, builds the link-cell list and
prints the total energy, virial and long-range corrections in LJ units.
"""

import argparse
import sys
import time

from ljmc_sim import KernelParams, make_system, utils


def build_params(args: argparse.Namespace) -> KernelParams:
    """Merge a parameter file (if any) with command-line overrides."""
    config = utils.load_params(args.params) if args.params else {}
    if args.n is not None:
        config["n"] = args.n
    if args.r_cut is not None:
        config["r_cut"] = args.r_cut
    if args.box is not None:
        config["box"] = args.box
    elif args.density is not None:
        config["box"] = utils.box_for_density(config.get("n", 0), args.density)

    params = KernelParams.from_dict(config)
    params.capacity = max(params.capacity, params.n)
    return params


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Report the LJ energy of a cubic lattice configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--params",
        type=str,
        default=None,
        help="JSON or TOML parameter file (box, r_cut, capacity, n)",
    )
    parser.add_argument(
        "--n",
        type=int,
        default=None,
        help="Number of lattice particles",
    )
    parser.add_argument(
        "--box",
        type=float,
        default=None,
        help="Box length in sigma units",
    )
    parser.add_argument(
        "--density",
        type=float,
        default=None,
        help="Number density, used to set the box when --box is not given",
    )
    parser.add_argument(
        "--r-cut",
        type=float,
        default=None,
        help="Potential cutoff in sigma units",
    )

    args = parser.parse_args(argv)
    try:
        params = build_params(args)
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    print(f"Lennard-Jones energy: N={params.n}, box={params.box:.5f}, r_cut={params.r_cut:.5f}")
    start_time = time.time()

    system = make_system(params)
    system.load_positions(utils.cubic_lattice(params.n))
    system.build_index()
    total = system.energy()

    elapsed_time = time.time() - start_time

    if total.overlap:
        print("Overlap in initial configuration")
        return 1

    pot_lrc, vir_lrc = system.energy_lrc()
    n = max(params.n, 1)
    print(f"   Cells per side:       {system.cell_list.sc}")
    print(f"   Potential energy:     {total.pot:15.6f}")
    print(f"   Virial:               {total.vir:15.6f}")
    print(f"   LRC potential:        {pot_lrc:15.6f}")
    print(f"   LRC virial:           {vir_lrc:15.6f}")
    print(f"   Energy per particle:  {(total.pot + pot_lrc) / n:15.6f}")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")

    return 0


if __name__ == "__main__":
    sys.exit(main())
