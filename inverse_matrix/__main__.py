import argparse
from typing import List, Optional

from .benchmark import run_benchmark
from .gauss_jordan import PivotStrategy


def _positive_int(s: str) -> int:
    v = int(s)
    if v < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {s}")
    return v


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inverse_matrix",
        description="Invert random square matrices with Gauss-Jordan elimination and time it.",
    )
    parser.add_argument("--size", type=_positive_int, action="append",
                        help="Matrix dimension; repeat for several sizes (default: 1000).")
    parser.add_argument("--trials", type=_positive_int, default=1)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--low", type=int, default=-99, help="Smallest random entry (inclusive).")
    parser.add_argument("--high", type=int, default=99, help="Largest random entry (exclusive).")
    parser.add_argument("--pivoting", default=PivotStrategy.LEGACY.value,
                        choices=[p.value for p in PivotStrategy])
    parser.add_argument("--compare", action="store_true",
                        help="Also time numpy.linalg.inv and torch.linalg.inv.")
    parser.add_argument("--device", default="cpu", choices=["cpu", "cuda"],
                        help="Device for the torch comparison.")
    parser.add_argument("--plot", default=None, help="Save a time-vs-size plot to this path.")
    parser.add_argument("--show", action="store_true", help="Print each matrix and its inverse.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    if ns.low >= ns.high:
        parser.error(f"--low ({ns.low}) must be smaller than --high ({ns.high})")

    results = run_benchmark(
        sizes=ns.size or [1000],
        trials=ns.trials,
        seed=ns.seed,
        low=ns.low,
        high=ns.high,
        pivoting=ns.pivoting,
        device=ns.device,
        compare=ns.compare,
        plot_path=ns.plot,
        show=ns.show,
    )
    return 0 if all(r.succeeded for r in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
