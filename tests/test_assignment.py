import numpy as np
import pytest

from stabletrack.perception.tracking.assignment import solve

INF = float("inf")


def test_hungarian_finds_minimum_total_cost():
    result = solve(np.array([[0.1, 0.2], [0.15, 0.9]]))
    assert result.matches == [(0, 1), (1, 0)]
    assert result.unmatched_tracks == []
    assert result.unmatched_detections == []


def test_greedy_takes_cheapest_pair_first():
    result = solve(np.array([[0.1, 0.2], [0.15, 0.9]]), method="greedy")
    assert result.matches == [(0, 0), (1, 1)]


def test_infeasible_entries_are_never_matched():
    for method in ("hungarian", "greedy"):
        result = solve(np.array([[INF, 0.2], [INF, 0.3]]), method=method)
        assert result.matches == [(0, 1)]
        assert result.unmatched_tracks == [1]
        assert result.unmatched_detections == [0]


def test_all_infeasible_leaves_everything_unmatched():
    result = solve(np.full((2, 3), INF))
    assert result.matches == []
    assert result.unmatched_tracks == [0, 1]
    assert result.unmatched_detections == [0, 1, 2]


def test_empty_matrices():
    result = solve(np.zeros((0, 3)))
    assert result.unmatched_detections == [0, 1, 2]
    result = solve(np.zeros((2, 0)))
    assert result.unmatched_tracks == [0, 1]


def test_greedy_ties_go_to_lowest_indices():
    result = solve(np.full((2, 2), 0.2), method="greedy")
    assert result.matches == [(0, 0), (1, 1)]


def test_rectangular_more_tracks_than_detections():
    result = solve(np.array([[0.4], [0.1], [0.3]]))
    assert result.matches == [(1, 0)]
    assert result.unmatched_tracks == [0, 2]


def test_unknown_method_raises():
    with pytest.raises(ValueError):
        solve(np.zeros((1, 1)), method="auction")


def test_hungarian_ties_go_to_lowest_indices():
    result = solve(np.full((2, 2), 0.2))
    assert result.matches == [(0, 0), (1, 1)]


def test_hungarian_picks_lexicographically_smallest_optimum():
    # both (0,1),(1,2),(2,0) and (0,2),(1,1),(2,0) total 0.5
    cost = np.array([[0.2, 0.2, 0.2], [0.2, 0.2, 0.2], [0.1, 0.3, 0.3]])
    assert solve(cost).matches == [(0, 1), (1, 2), (2, 0)]
    assert solve(cost).matches == solve(cost, method="greedy").matches


def test_hungarian_tie_break_keeps_optimality():
    # row 0 prefers column 0 on a tie, but only the (0,1) optimum is cheaper overall
    cost = np.array([[0.3, 0.3], [0.1, 0.4]])
    assert solve(cost).matches == [(0, 1), (1, 0)]


def test_hungarian_tie_break_with_infeasible_cells():
    cost = np.array([[0.2, 0.2, INF], [INF, 0.2, 0.2], [0.2, INF, 0.2]])
    assert solve(cost).matches == [(0, 0), (1, 1), (2, 2)]
