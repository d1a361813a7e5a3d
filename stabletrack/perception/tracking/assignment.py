from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
from scipy.optimize import linear_sum_assignment

# Stand-in for infinite cost; linear_sum_assignment rejects inf entries
INFEASIBLE_COST = 1e5

METHODS = ("hungarian", "greedy")

# Equal totals within this tolerance count as a tie
TIE_TOLERANCE = 1e-9


@dataclass
class AssignmentResult:
    matches: List[Tuple[int, int]] = field(default_factory=list)
    unmatched_tracks: List[int] = field(default_factory=list)
    unmatched_detections: List[int] = field(default_factory=list)


def _optimal_total(cost: np.ndarray) -> float:
    if cost.size == 0:
        return 0.0
    rows, cols = linear_sum_assignment(cost)
    return float(cost[rows, cols].sum())


def _hungarian(cost: np.ndarray, feasible: np.ndarray) -> List[Tuple[int, int]]:
    """
    Optimal matching; among equal-cost optima the lexicographically smallest one.

    Rows are fixed in ascending order. For each row the solver's column is kept
    unless a lower feasible column reaches the same optimal total.
    """
    n_tracks, n_dets = cost.shape
    size = max(n_tracks, n_dets)
    padded = np.full((size, size), INFEASIBLE_COST)
    padded[:n_tracks, :n_dets] = np.where(feasible, cost, INFEASIBLE_COST)

    rows = list(range(size))
    cols = list(range(size))
    matches = []
    for r in range(n_tracks):
        sub = padded[np.ix_(rows, cols)]
        sub_rows, sub_cols = linear_sum_assignment(sub)
        best = float(sub[sub_rows, sub_cols].sum())
        tol = max(TIE_TOLERANCE, TIE_TOLERANCE * 1e-3 * abs(best))
        # rows[0] == r and the square solve returns rows in order
        chosen = cols[int(sub_cols[0])]
        for j, c in enumerate(cols):
            if c >= chosen:
                break
            if c >= n_dets or not feasible[r, c]:
                continue
            rest = np.delete(sub[1:], j, axis=1)
            if sub[0, j] + _optimal_total(rest) <= best + tol:
                chosen = c
                break
        rows.remove(r)
        cols.remove(chosen)
        if chosen < n_dets and feasible[r, chosen]:
            matches.append((r, chosen))
    return matches


def _greedy(cost: np.ndarray, feasible: np.ndarray) -> List[Tuple[int, int]]:
    candidates = sorted((float(cost[r, c]), int(r), int(c)) for r, c in zip(*np.nonzero(feasible)))
    used_rows, used_cols = set(), set()
    matches = []
    for _, r, c in candidates:
        if r in used_rows or c in used_cols:
            continue
        matches.append((r, c))
        used_rows.add(r)
        used_cols.add(c)
    return matches


def solve(cost_matrix: np.ndarray, method: str = "hungarian") -> AssignmentResult:
    """
    Minimum-cost one-to-one matching between rows (tracks) and columns (detections).

    Entries that are not finite are never matched. "hungarian" is optimal over the
    feasible pairs; "greedy" repeatedly takes the cheapest remaining pair. Both break
    ties by the lowest track index and then the lowest detection index.
    """
    if method not in METHODS:
        raise ValueError(f"Unknown assignment method {method!r}; expected one of {METHODS}")

    cost = np.asarray(cost_matrix, dtype=np.float64)
    n_tracks, n_dets = cost.shape
    if n_tracks == 0 or n_dets == 0:
        return AssignmentResult(unmatched_tracks=list(range(n_tracks)), unmatched_detections=list(range(n_dets)))

    feasible = np.isfinite(cost)
    matches = _hungarian(cost, feasible) if method == "hungarian" else _greedy(cost, feasible)
    matches.sort()

    matched_rows = {r for r, _ in matches}
    matched_cols = {c for _, c in matches}
    return AssignmentResult(
        matches=matches,
        unmatched_tracks=[r for r in range(n_tracks) if r not in matched_rows],
        unmatched_detections=[c for c in range(n_dets) if c not in matched_cols],
    )
