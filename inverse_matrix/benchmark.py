import os
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import torch

from .gauss_jordan import PivotStrategy, invert


@dataclass
class InversionTiming:
    size: int
    succeeded: bool
    seconds: float
    max_error: float
    inverse: Optional[np.ndarray] = field(default=None, repr=False)


def random_matrix(size: int, low: int = -99, high: int = 99, seed: Optional[int] = None) -> np.ndarray:
    """
    Square matrix of integer-valued doubles drawn uniformly from [low, high).

    Random data like this is usually, but not always, invertible.
    """
    if size < 1:
        raise ValueError(f"size must be positive, got {size}")
    if low >= high:
        raise ValueError(f"empty value range [{low}, {high})")
    rng = np.random.default_rng(seed)
    return rng.integers(low, high, size=(size, size)).astype(np.float64)


def format_matrix(A) -> str:
    return "\n".join(" ".join(str(x) for x in row) for row in np.asarray(A).tolist())


def print_matrix(A):
    print(format_matrix(A))


def time_inversion(A: np.ndarray, pivoting=PivotStrategy.LEGACY, trials: int = 1) -> InversionTiming:
    """
    Time the in-place Gauss-Jordan inversion of A.

    Every trial works on a fresh copy, so A itself is left untouched.
    max_error is max |A @ A_inv - I| for the last trial (nan on failure),
    inverse is that trial's result (None on failure).
    """
    if trials < 1:
        raise ValueError(f"trials must be positive, got {trials}")
    n = A.shape[0]
    A_inv = np.empty_like(A, dtype=np.float64)

    total = 0.0
    ok = False
    for _ in range(trials):
        scratch = np.array(A, dtype=np.float64)
        start = time.perf_counter()
        ok = invert(scratch, A_inv, pivoting)
        total += time.perf_counter() - start
        if not ok:
            break

    if not ok:
        return InversionTiming(size=n, succeeded=False, seconds=total / trials, max_error=float("nan"))
    error = float(np.max(np.abs(A @ A_inv - np.eye(n))))
    return InversionTiming(size=n, succeeded=True, seconds=total / trials, max_error=error, inverse=A_inv)


def time_reference(A: np.ndarray, backend: str = "numpy", trials: int = 1, device: str = "cpu") -> float:
    """Mean seconds per call of numpy.linalg.inv or torch.linalg.inv on A."""
    if backend == "numpy":
        start = time.perf_counter()
        for _ in range(trials):
            np.linalg.inv(A)
        return (time.perf_counter() - start) / trials

    if backend != "torch":
        raise ValueError(f"Unknown backend: {backend}")

    if device == "cuda" and not torch.cuda.is_available():
        print("WARNING: CUDA not available, falling back to CPU")
        device = "cpu"
    A_t = torch.from_numpy(A).to(device)
    sync = torch.cuda.synchronize if A_t.is_cuda else (lambda: None)

    # Warmup
    torch.linalg.inv(A_t)
    sync()
    start = time.perf_counter()
    for _ in range(trials):
        torch.linalg.inv(A_t)
    sync()
    return (time.perf_counter() - start) / trials


def plot_timings(results: Sequence[InversionTiming], path: str,
                 numpy_times: Optional[Sequence[float]] = None,
                 torch_times: Optional[Sequence[float]] = None):
    sizes = [r.size for r in results]

    plt.figure()
    plt.plot(sizes, [r.seconds for r in results], marker="o", label="Gauss-Jordan")
    if numpy_times:
        plt.plot(sizes, numpy_times, marker="o", label="numpy.linalg.inv")
    if torch_times:
        plt.plot(sizes, torch_times, marker="o", label="torch.linalg.inv")
    plt.xlabel("Matrix size (N x N)")
    plt.ylabel("Time per inversion (s)")
    plt.yscale("log")
    plt.title("Matrix Inversion Benchmark")
    plt.legend()
    plt.grid(True)
    plt.tight_layout()

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    plt.savefig(path)
    plt.close()


def run_benchmark(sizes: Sequence[int] = (1000,), trials: int = 1, seed: Optional[int] = None,
                  low: int = -99, high: int = 99, pivoting=PivotStrategy.LEGACY,
                  device: str = "cpu", compare: bool = False,
                  plot_path: Optional[str] = None, show: bool = False) -> List[InversionTiming]:
    """
    Invert one random matrix per size and print the timings.
    """
    pivoting = PivotStrategy(pivoting)
    results = []
    numpy_times, torch_times = [], []

    for size in sizes:
        A = random_matrix(size, low=low, high=high, seed=seed)
        if show:
            print_matrix(A)

        print(f"\n{'='*60}")
        print(f"Inverting {size} by {size} random matrix ({pivoting.value} pivoting).")
        print(f"{'='*60}")

        result = time_inversion(A, pivoting=pivoting, trials=trials)
        results.append(result)
        if result.succeeded:
            print(f"Found inverse in {result.seconds:.4f} seconds (error: {result.max_error:.2e})")
            if show:
                print_matrix(result.inverse)
        else:
            print("No inverse")

        if compare and not result.succeeded:
            # The reference routines raise on singular input
            numpy_times.append(float("nan"))
            torch_times.append(float("nan"))
        elif compare:
            t_numpy = time_reference(A, "numpy", trials=trials)
            t_torch = time_reference(A, "torch", trials=trials, device=device)
            numpy_times.append(t_numpy)
            torch_times.append(t_torch)
            print(f"numpy.linalg.inv: {t_numpy:.6f} s")
            print(f"torch.linalg.inv: {t_torch:.6f} s ({device})")
            print(f"Speedup (numpy vs Gauss-Jordan): {result.seconds/t_numpy:.1f}x")

    if plot_path:
        plot_timings(results, plot_path,
                     numpy_times=numpy_times or None, torch_times=torch_times or None)
        print(f"\nBenchmark plot saved to {plot_path}")

    return results
