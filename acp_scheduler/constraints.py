# OR-Tools constraint builders for the ACP scheduler.
# Version: 1.0.0
# Defines item/product channeling, changeover tables, earliness and the objective.

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ortools.sat.python import cp_model

from .data_loader import IDLE, Instance
from .errors import InfeasibleScheduleError
from .validator import validate_instance


logger = logging.getLogger(__name__)


@dataclass
class AcpModel:
    """Container for all OR-Tools model components of one instance.

    Attributes:
        model: The CP-SAT model.
        instance: Instance the model was built from.
        items: Item scheduled in each period; the search variables.
        products: Product made in each period, -1 when idle.
        states: Last non-idle product up to each period, -1 before the first.
        deliveries: Period of each item; the last R entries stand in for idle slots.
        earliness: Due date minus delivery of each real item.
        transition_costs: Changeover cost between period p and p + 1.
        objective: Weighted earliness plus changeover cost.
        num_product_tuples: Size of the item/product relation.
        num_transition_tuples: Size of the changeover relation.
    """
    model: cp_model.CpModel
    instance: Instance
    items: list[cp_model.IntVar] = field(default_factory=list)
    products: list[cp_model.IntVar] = field(default_factory=list)
    states: list[cp_model.IntVar] = field(default_factory=list)
    deliveries: list[cp_model.IntVar] = field(default_factory=list)
    earliness: list[cp_model.IntVar] = field(default_factory=list)
    transition_costs: list[cp_model.IntVar] = field(default_factory=list)
    objective: cp_model.IntVar | None = None
    num_product_tuples: int = 0
    num_transition_tuples: int = 0


def build_item_product_tuples(instance: Instance) -> list[tuple[int, int]]:
    """Build the (item, product) relation.

    Real items map to their product; the idle slots M..M+R map to -1.

    Args:
        instance: Instance to encode.

    Returns:
        List of allowed (item, product) pairs.
    """
    tuples = [
        (item, product)
        for item, product in enumerate(instance.item_to_product)
    ]
    for residual in range(instance.num_residuals + 1):
        tuples.append((instance.num_items + residual, IDLE))
    return tuples


def build_transition_tuples(instance: Instance) -> list[tuple[int, int, int, int, int]]:
    """Build the changeover relation.

    Each tuple reads (product[p], state[p], product[p+1], state[p+1], cost).
    The state remembers the last non-idle product so that idle periods
    carry it forward at no cost, and the first activation is free.

    Args:
        instance: Instance to encode.

    Returns:
        De-duplicated list of allowed 5-tuples.
    """
    tuples: dict[tuple[int, int, int, int, int], None] = {}
    for i in range(instance.num_products):
        for j in range(instance.num_products):
            cost = instance.transitions[i][j]
            tuples[(i, i, j, j, cost)] = None
            # Continuation from i through idle periods
            tuples[(IDLE, i, j, j, cost)] = None
        # Idle keeps the state
        tuples[(i, i, IDLE, i, 0)] = None
        tuples[(IDLE, i, IDLE, i, 0)] = None
        # First activation from the initial state
        tuples[(IDLE, IDLE, i, i, 0)] = None
    # Idle prefix before any production
    tuples[(IDLE, IDLE, IDLE, IDLE, 0)] = None
    return list(tuples)


def ensure_schedulable(instance: Instance) -> None:
    """Reject instances that cannot be modeled or cannot possibly be scheduled.

    Raises:
        ModelError: If the instance is inconsistent.
        InfeasibleScheduleError: If there are more items than periods.
    """
    validate_instance(instance)
    if instance.num_items > instance.num_periods:
        raise InfeasibleScheduleError(
            f"{instance.num_items} items cannot fit in {instance.num_periods} periods"
        )


def create_acp_model(instance: Instance) -> AcpModel:
    """Create the CP-SAT model of an ACP instance.

    Args:
        instance: Instance to model.

    Returns:
        AcpModel with all variables, constraints and the objective.

    Raises:
        ModelError: If the instance is inconsistent.
        InfeasibleScheduleError: If there are more items than periods.
    """
    ensure_schedulable(instance)

    logger.debug("Build model")
    acp_model = AcpModel(model=cp_model.CpModel(), instance=instance)
    model = acp_model.model
    num_periods = instance.num_periods
    last_product = instance.num_products - 1

    acp_model.products = [
        model.NewIntVar(IDLE, last_product, f"product_{p}")
        for p in range(num_periods)
    ]
    acp_model.items = [
        model.NewIntVar(0, num_periods - 1, f"item_{p}")
        for p in range(num_periods)
    ]
    acp_model.states = [
        model.NewIntVar(IDLE, last_product, f"state_{p}")
        for p in range(num_periods)
    ]

    add_delivery_constraints(acp_model)
    add_item_product_constraints(acp_model)
    add_transition_constraints(acp_model)
    add_initial_state_constraint(acp_model)
    add_objective_minimize_cost(acp_model)

    return acp_model


def add_delivery_constraints(acp_model: AcpModel) -> None:
    """Create deliveries and earliness, and link deliveries to items.

    Each real item is delivered no later than its due date, units of the
    same product are delivered in due-date order, and items/deliveries
    form inverse permutations.

    Args:
        acp_model: Model to add the variables to.
    """
    model = acp_model.model
    instance = acp_model.instance

    logger.debug("  - build inventory costs")
    for product, dates in enumerate(instance.due_dates):
        previous = None
        for unit, due_date in enumerate(dates):
            delivery = model.NewIntVar(0, due_date, f"delivery_{product}_{unit}")
            if previous is not None:
                # Order deliveries of the same product
                model.Add(previous < delivery)
            earliness = model.NewIntVar(0, due_date, f"earliness_{product}_{unit}")
            model.Add(earliness == due_date - delivery)
            acp_model.deliveries.append(delivery)
            acp_model.earliness.append(earliness)
            previous = delivery

    for residual in range(instance.num_residuals):
        acp_model.deliveries.append(
            model.NewIntVar(0, instance.num_periods - 1, f"inactive_{residual}")
        )

    model.AddInverse(acp_model.items, acp_model.deliveries)


def add_item_product_constraints(acp_model: AcpModel) -> None:
    """Tie the product of each period to the item scheduled there."""
    tuples = build_item_product_tuples(acp_model.instance)
    acp_model.num_product_tuples = len(tuples)
    logger.debug("  - item to product tuple set has %d tuples", len(tuples))

    for item, product in zip(acp_model.items, acp_model.products):
        acp_model.model.AddAllowedAssignments([item, product], tuples)


def add_transition_constraints(acp_model: AcpModel) -> None:
    """Price the changeover between every pair of consecutive periods."""
    model = acp_model.model
    instance = acp_model.instance

    tuples = build_transition_tuples(instance)
    acp_model.num_transition_tuples = len(tuples)
    logger.debug("  - transition cost tuple set has %d tuples", len(tuples))

    products = acp_model.products
    states = acp_model.states
    for p in range(instance.num_periods - 1):
        cost = model.NewIntVar(0, instance.max_transition_cost, f"transition_cost_{p}")
        model.AddAllowedAssignments(
            [products[p], states[p], products[p + 1], states[p + 1], cost],
            tuples
        )
        acp_model.transition_costs.append(cost)


def add_initial_state_constraint(acp_model: AcpModel) -> None:
    """An idle first period has no state yet; a busy one starts its state."""
    model = acp_model.model
    first_product = acp_model.products[0]
    first_state = acp_model.states[0]

    is_idle = model.NewBoolVar("first_product_idle")
    model.Add(first_product == IDLE).OnlyEnforceIf(is_idle)
    model.Add(first_product != IDLE).OnlyEnforceIf(is_idle.Not())

    is_stateless = model.NewBoolVar("first_state_empty")
    model.Add(first_state == IDLE).OnlyEnforceIf(is_stateless)
    model.Add(first_state != IDLE).OnlyEnforceIf(is_stateless.Not())

    model.Add(is_stateless >= is_idle)
    model.Add(first_state == first_product).OnlyEnforceIf(is_idle.Not())


def add_objective_minimize_cost(acp_model: AcpModel) -> cp_model.IntVar:
    """Add the objective: weighted earliness plus changeover cost.

    Args:
        acp_model: Model with earliness and transition cost variables.

    Returns:
        The objective variable.
    """
    model = acp_model.model
    instance = acp_model.instance

    upper_bound = (
        instance.inventory_cost * sum(instance.item_due_dates)
        + max(instance.num_periods - 1, 0) * instance.max_transition_cost
    )
    objective = model.NewIntVar(0, upper_bound, "objective")
    model.Add(
        objective
        == instance.inventory_cost * sum(acp_model.earliness)
        + sum(acp_model.transition_costs)
    )
    model.Minimize(objective)

    acp_model.objective = objective
    return objective


def add_fixed_items_constraints(
    acp_model: AcpModel,
    items: Sequence[int],
    positions: Iterable[int]
) -> None:
    """Freeze the item of the given periods to their values in `items`.

    Args:
        acp_model: Model to constrain.
        items: Reference item permutation.
        positions: Periods to freeze.
    """
    for p in positions:
        acp_model.model.Add(acp_model.items[p] == items[p])


def add_objective_upper_bound(acp_model: AcpModel, bound: int) -> None:
    """Only accept schedules whose objective is at most `bound`."""
    acp_model.model.Add(acp_model.objective <= bound)
