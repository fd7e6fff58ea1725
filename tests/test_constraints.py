"""Tests for the CP-SAT model builders."""

from __future__ import annotations

import pytest
from conftest import make_instance
from ortools.sat.python import cp_model

from acp_scheduler.constraints import (
    add_fixed_items_constraints,
    add_objective_upper_bound,
    build_item_product_tuples,
    build_transition_tuples,
    create_acp_model,
)
from acp_scheduler.data_loader import IDLE, parse_instance
from acp_scheduler.errors import InfeasibleScheduleError, ModelError


def test_item_product_tuples(forced_sequence_instance):
    tuples = build_item_product_tuples(forced_sequence_instance)
    assert tuples[:2] == [(0, 0), (1, 1)]
    # one idle slot plus the spare index
    assert tuples[2:] == [(2, IDLE), (3, IDLE)]


def test_transition_tuples(forced_sequence_instance):
    tuples = build_transition_tuples(forced_sequence_instance)
    k = forced_sequence_instance.num_products
    assert len(tuples) == len(set(tuples)) == 2 * k * k + 3 * k + 1
    assert (0, 0, 1, 1, 5) in tuples
    assert (IDLE, 1, 0, 0, 7) in tuples
    assert (1, 1, IDLE, 1, 0) in tuples
    assert (IDLE, IDLE, 0, 0, 0) in tuples
    assert (IDLE, IDLE, IDLE, IDLE, 0) in tuples
    # a product can never run with a different state
    assert not any(t[0] != IDLE and t[0] != t[1] for t in tuples)


def test_model_dimensions(sample_text):
    inst = parse_instance(sample_text)
    acp_model = create_acp_model(inst)
    assert len(acp_model.items) == 15
    assert len(acp_model.products) == 15
    assert len(acp_model.states) == 15
    assert len(acp_model.deliveries) == 15
    assert len(acp_model.earliness) == inst.num_items
    assert len(acp_model.transition_costs) == 14
    assert acp_model.num_product_tuples == 16
    assert acp_model.num_transition_tuples == 2 * 64 + 3 * 8 + 1
    assert acp_model.objective is not None


def _solve(acp_model):
    solver = cp_model.CpSolver()
    solver.parameters.num_workers = 1
    return solver, solver.Solve(acp_model.model)


def test_optimal_solution_of_forced_sequence(forced_sequence_instance):
    acp_model = create_acp_model(forced_sequence_instance)
    solver, status = _solve(acp_model)
    assert status == cp_model.OPTIMAL
    assert solver.Value(acp_model.objective) == 5


def test_optimal_solution_with_idle_state_carry(idle_state_instance):
    acp_model = create_acp_model(idle_state_instance)
    solver, status = _solve(acp_model)
    assert status == cp_model.OPTIMAL
    assert solver.Value(acp_model.objective) == 10


def test_first_period_state(tiny_instance):
    acp_model = create_acp_model(tiny_instance)
    add_fixed_items_constraints(acp_model, [0, 1], range(2))
    solver, status = _solve(acp_model)
    assert status == cp_model.OPTIMAL
    assert solver.Value(acp_model.products[0]) == 0
    assert solver.Value(acp_model.states[0]) == 0
    assert solver.Value(acp_model.states[1]) == 0
    assert solver.Value(acp_model.objective) == 1


def test_fixed_items_and_bound_can_make_model_infeasible(tiny_instance):
    acp_model = create_acp_model(tiny_instance)
    add_fixed_items_constraints(acp_model, [0, 1], range(2))
    add_objective_upper_bound(acp_model, 0)
    _, status = _solve(acp_model)
    assert status == cp_model.INFEASIBLE


def test_more_items_than_periods():
    inst = make_instance(1, [[0], [0]], 1, [[0, 0], [0, 0]])
    with pytest.raises(InfeasibleScheduleError):
        create_acp_model(inst)


@pytest.mark.parametrize(
    "due_dates, transitions",
    [
        ([[3]], [[0]]),           # due date beyond the horizon
        ([[1, 1]], [[0]]),        # not strictly increasing
        ([[1]], [[0, 1]]),        # transition matrix is not K x K
        ([[1]], [[-2]]),          # negative transition cost
    ],
)
def test_inconsistent_instances(due_dates, transitions):
    inst = make_instance(3, due_dates, 1, transitions)
    with pytest.raises(ModelError):
        create_acp_model(inst)
