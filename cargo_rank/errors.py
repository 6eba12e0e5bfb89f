"""
cargo_rank/errors.py — Exception taxonomy for the ranking core and loader.

A ranking either completes for the whole graph or fails outright; there is
no partial-result mode. A single-package graph is not an error: the rank
iterator assigns it 1.0 directly.
"""


class CargoRankError(Exception):
    """Base class for every error raised by cargo_rank."""


class EmptyGraphError(CargoRankError, ValueError):
    """No packages were supplied, so there is nothing to rank."""

    def __init__(self, message: str = "cannot rank an empty package collection") -> None:
        super().__init__(message)


class DidNotConvergeError(CargoRankError):
    """Power iteration hit max_iterations before the L1 delta met the threshold."""

    def __init__(self, iterations: int, last_delta: float, threshold: float) -> None:
        self.iterations = iterations
        self.last_delta = last_delta
        self.threshold = threshold
        super().__init__(
            f"rank did not converge after {iterations} iterations "
            f"(last delta {last_delta:.3e} > threshold {threshold:.3e})"
        )


class RankingCancelledError(CargoRankError):
    """The caller's cancel event was set while iterating."""

    def __init__(self, iterations: int) -> None:
        self.iterations = iterations
        super().__init__(f"ranking cancelled after {iterations} iterations")


class IndexFormatError(CargoRankError, ValueError):
    """A registry index line is not a valid package record."""
