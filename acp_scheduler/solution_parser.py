# Solution parser for extracting and evaluating schedules.
# Version: 1.0.0
# Converts solver output and plain item permutations to read-only snapshots.

from dataclasses import dataclass, replace
from typing import Sequence

from ortools.sat.python import cp_model

from .constraints import AcpModel
from .data_loader import IDLE, Instance


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Read-only view of one complete schedule.

    Attributes:
        items: Item scheduled in each period (indices >= M are idle slots).
        products: Product made in each period, -1 when idle.
        states: Last non-idle product up to and including each period.
        deliveries: Period of each item (inverse of items).
        objective: Total cost.
        inventory_cost_total: Weighted earliness part of the objective.
        transition_cost_total: Changeover part of the objective.
        iteration: LNS iteration that produced the schedule (0 for the seed).
        operator: Name of the step that produced it ("seed", "warm_start",
            "random_lns" or "swap").
        wall_time: Seconds since the search started.
    """
    items: tuple[int, ...]
    products: tuple[int, ...]
    states: tuple[int, ...]
    deliveries: tuple[int, ...]
    objective: int
    inventory_cost_total: int
    transition_cost_total: int
    iteration: int = 0
    operator: str = "seed"
    wall_time: float = 0.0

    @property
    def num_periods(self) -> int:
        return len(self.items)

    def stamped(self, iteration: int, operator: str, wall_time: float) -> "ScheduleSnapshot":
        """Copy of the snapshot tagged with where in the search it was found."""
        return replace(self, iteration=iteration, operator=operator, wall_time=wall_time)


def extract_snapshot(
    solver: cp_model.CpSolver,
    acp_model: AcpModel,
    iteration: int = 0,
    operator: str = "seed",
    wall_time: float = 0.0
) -> ScheduleSnapshot:
    """Extract a snapshot from a solved CP-SAT model.

    Args:
        solver: Solver that just returned OPTIMAL or FEASIBLE.
        acp_model: Model whose variables are read.
        iteration: LNS iteration number.
        operator: Name of the step that produced the solution.
        wall_time: Seconds since the search started.

    Returns:
        ScheduleSnapshot with all values copied out of the solver.
    """
    earliness = sum(solver.Value(e) for e in acp_model.earliness)
    transition = sum(solver.Value(t) for t in acp_model.transition_costs)

    return ScheduleSnapshot(
        items=tuple(solver.Value(v) for v in acp_model.items),
        products=tuple(solver.Value(v) for v in acp_model.products),
        states=tuple(solver.Value(v) for v in acp_model.states),
        deliveries=tuple(solver.Value(v) for v in acp_model.deliveries),
        objective=solver.Value(acp_model.objective),
        inventory_cost_total=acp_model.instance.inventory_cost * earliness,
        transition_cost_total=transition,
        iteration=iteration,
        operator=operator,
        wall_time=wall_time,
    )


def compute_states(products: Sequence[int]) -> tuple[int, ...]:
    """Carry the last non-idle product through idle periods.

    Args:
        products: Product per period, -1 when idle.

    Returns:
        State per period, -1 until the first production.
    """
    states = []
    state = IDLE
    for product in products:
        if product != IDLE:
            state = product
        states.append(state)
    return tuple(states)


def decode_items(instance: Instance, items: Sequence[int]) -> ScheduleSnapshot | None:
    """Evaluate a full item permutation without the solver.

    Args:
        instance: Instance the permutation belongs to.
        items: Item scheduled in each period.

    Returns:
        Snapshot with exact costs, or None if the permutation is not a
        valid schedule (not a permutation, an item after its due date, or
        units of one product out of due-date order).
    """
    num_periods = instance.num_periods
    num_items = instance.num_items

    if len(items) != num_periods or sorted(items) != list(range(num_periods)):
        return None

    deliveries = [0] * num_periods
    for period, item in enumerate(items):
        deliveries[item] = period

    due_dates = instance.item_due_dates
    earliness = 0
    for item in range(num_items):
        if deliveries[item] > due_dates[item]:
            return None
        earliness += due_dates[item] - deliveries[item]

    for product in range(instance.num_products):
        product_items = instance.items_of_product(product)
        for first, second in zip(product_items, product_items[1:]):
            if deliveries[first] >= deliveries[second]:
                return None

    item_to_product = instance.item_to_product
    products = tuple(
        item_to_product[item] if item < num_items else IDLE
        for item in items
    )
    states = compute_states(products)

    transition = sum(
        instance.transition_cost(states[p], products[p + 1])
        for p in range(num_periods - 1)
    )
    inventory = instance.inventory_cost * earliness

    return ScheduleSnapshot(
        items=tuple(items),
        products=products,
        states=states,
        deliveries=tuple(deliveries),
        objective=inventory + transition,
        inventory_cost_total=inventory,
        transition_cost_total=transition,
    )


def export_snapshot_to_dict(snapshot: ScheduleSnapshot) -> dict:
    """Export a snapshot to a dictionary for JSON serialization.

    Args:
        snapshot: ScheduleSnapshot to export.

    Returns:
        Dictionary with the complete schedule.
    """
    return {
        "objective": snapshot.objective,
        "inventory_cost": snapshot.inventory_cost_total,
        "transition_cost": snapshot.transition_cost_total,
        "iteration": snapshot.iteration,
        "operator": snapshot.operator,
        "wall_time": round(snapshot.wall_time, 3),
        "products": list(snapshot.products),
        "items": list(snapshot.items),
        "states": list(snapshot.states),
        "deliveries": list(snapshot.deliveries),
    }
