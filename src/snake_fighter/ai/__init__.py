"""Computer-controlled opponents for Snake Fighter."""

from snake_fighter.ai.heuristic import HeuristicController

__all__ = ["HeuristicController"]
