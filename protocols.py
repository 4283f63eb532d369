"""Protocols shared by the scheduler, pricing engine and snapshot consumers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from simulation.snapshot import SimulationSnapshot


@runtime_checkable
class RandomSource(Protocol):
    """Uniform random numbers in [0, 1).

    Every stochastic decision (random event activation, demand variation,
    price volatility) draws from one of these so runs can be replayed.
    """

    def random(self) -> float:
        ...


@runtime_checkable
class SnapshotObserver(Protocol):
    """Callable notified with the freshly published snapshot."""

    def __call__(self, snapshot: SimulationSnapshot) -> None:
        ...
