# Consistency checks for instances and schedules.
# Version: 1.0.0
# Validates loaded instances before modeling and reported schedules against invariants.

from typing import TYPE_CHECKING

from .data_loader import IDLE, Instance
from .errors import ModelError

if TYPE_CHECKING:
    from .solution_parser import ScheduleSnapshot


def validate_instance(instance: Instance) -> None:
    """Check that an instance is internally consistent.

    Instances read by the loader always pass; this guards instances built
    in code or received through the web API.

    Args:
        instance: Instance to check.

    Raises:
        ModelError: On the first inconsistency found.
    """
    if instance.num_periods < 1:
        raise ModelError(
            "number of periods must be at least 1",
            {"num_periods": instance.num_periods}
        )
    if instance.num_products < 1:
        raise ModelError(
            "number of products must be at least 1",
            {"num_products": instance.num_products}
        )
    if len(instance.due_dates) != instance.num_products:
        raise ModelError(
            f"expected due dates for {instance.num_products} products",
            {"rows": len(instance.due_dates)}
        )

    for product, dates in enumerate(instance.due_dates):
        for date in dates:
            if not 0 <= date < instance.num_periods:
                raise ModelError(
                    f"due date {date} of product {product} is outside the horizon",
                    {"product": product, "num_periods": instance.num_periods}
                )
        if any(a >= b for a, b in zip(dates, dates[1:])):
            raise ModelError(
                f"due dates of product {product} are not strictly increasing",
                {"product": product}
            )

    if instance.inventory_cost < 0:
        raise ModelError(
            "inventory cost must be non-negative",
            {"inventory_cost": instance.inventory_cost}
        )

    if len(instance.transitions) != instance.num_products or any(
        len(row) != instance.num_products for row in instance.transitions
    ):
        raise ModelError(
            f"transition matrix must be {instance.num_products}x{instance.num_products}"
        )
    if any(cost < 0 for row in instance.transitions for cost in row):
        raise ModelError("transition costs must be non-negative")


def validate_schedule(instance: Instance, snapshot: "ScheduleSnapshot") -> list[str]:
    """Validate a reported schedule against the model's invariants.

    Checks the item permutation, item/product mapping, due dates,
    per-product delivery order, state carry-over and the objective value.

    Args:
        instance: Instance the schedule solves.
        snapshot: Schedule to check.

    Returns:
        List of violation messages (empty if valid).
    """
    violations = []
    num_periods = instance.num_periods
    num_items = instance.num_items

    if len(snapshot.items) != num_periods or len(snapshot.products) != num_periods:
        return [f"Schedule covers {len(snapshot.items)} periods, expected {num_periods}"]

    # Items form a permutation
    if sorted(snapshot.items) != list(range(num_periods)):
        violations.append(f"Items {list(snapshot.items)} are not a permutation of 0..{num_periods - 1}")
        return violations

    # Products follow items
    for p, (item, product) in enumerate(zip(snapshot.items, snapshot.products)):
        expected = instance.item_to_product[item] if item < num_items else IDLE
        if product != expected:
            violations.append(
                f"Period {p}: item {item} should make product {expected}, got {product}"
            )

    # Deliveries are the inverse of items and respect due dates
    for p, item in enumerate(snapshot.items):
        if snapshot.deliveries[item] != p:
            violations.append(
                f"Item {item} is scheduled in period {p} but delivered in "
                f"{snapshot.deliveries[item]}"
            )
    for item in range(num_items):
        due_date = instance.item_due_dates[item]
        delivery = snapshot.deliveries[item]
        if not 0 <= delivery <= due_date:
            violations.append(
                f"Item {item} delivered in period {delivery} after its due date {due_date}"
            )

    # Units of one product keep their due-date order
    for product in range(instance.num_products):
        units = instance.items_of_product(product)
        for first, second in zip(units, units[1:]):
            if snapshot.deliveries[first] >= snapshot.deliveries[second]:
                violations.append(
                    f"Product {product}: item {first} delivered at "
                    f"{snapshot.deliveries[first]}, not before item {second} at "
                    f"{snapshot.deliveries[second]}"
                )

    # State carries the last non-idle product
    state = IDLE
    for p, product in enumerate(snapshot.products):
        if product != IDLE:
            state = product
        if snapshot.states[p] != state:
            violations.append(f"Period {p}: state should be {state}, got {snapshot.states[p]}")

    # Objective matches the schedule
    earliness = sum(
        instance.item_due_dates[item] - snapshot.deliveries[item]
        for item in range(num_items)
    )
    changeover = 0
    state = IDLE
    for p, product in enumerate(snapshot.products):
        if p > 0:
            changeover += instance.transition_cost(state, product)
        if product != IDLE:
            state = product
    expected_objective = instance.inventory_cost * earliness + changeover
    if snapshot.objective != expected_objective:
        violations.append(
            f"Objective is {snapshot.objective}, schedule costs {expected_objective}"
        )

    return violations
