"""Centralized configuration for clusterlayout."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class LayoutConfig:
    """Configuration for the clustered layering pipeline.

    fails: non-improving sweeps tolerated before a restart.
    runs: restart rounds (random permutation of all sibling orders between rounds).
    seed: seed of the permutation generator; None draws from system entropy.
    virtual_clusters: group adjacent siblings into synthetic clusters before
        building the layer trees.
    """

    fails: int = 4
    runs: int = 15
    seed: int | None = 0
    virtual_clusters: bool = False

    def validate(self) -> None:
        if self.fails < 0:
            raise ValueError(f"fails must be >= 0, got {self.fails}")
        if self.runs < 1:
            raise ValueError(f"runs must be >= 1, got {self.runs}")
