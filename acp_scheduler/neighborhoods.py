# Neighborhood operators and cost filter for the large neighborhood search.
# Version: 1.0.0
# Chooses which periods to re-solve and screens full candidate schedules.

import random
from typing import Sequence

from .data_loader import Instance
from .solution_parser import ScheduleSnapshot, decode_items


class RandomLnsOperator:
    """Relaxes a fixed number of randomly chosen periods.

    Every other period keeps the item of the incumbent schedule; the
    inner search then re-solves only the relaxed ones.

    Attributes:
        num_positions: Number of item variables (periods).
        lns_size: Number of periods relaxed per neighborhood, clipped to num_positions.
    """
    name = "random_lns"

    def __init__(self, num_positions: int, lns_size: int, rng: random.Random) -> None:
        self.num_positions = num_positions
        self.lns_size = min(lns_size, num_positions)
        self._rng = rng

    @property
    def relaxes_everything(self) -> bool:
        """True when a neighborhood is the whole problem."""
        return self.lns_size >= self.num_positions

    def relaxed_positions(self) -> list[int]:
        """Draw the periods to relax for the next neighborhood."""
        return sorted(self._rng.sample(range(self.num_positions), self.lns_size))


class SwapOperator:
    """Exchanges the items of two periods of the incumbent.

    Pairs (i, j) with i < j are visited in lexicographic order; the
    operator is exhausted after one pass and restarts whenever a new
    incumbent is synchronized.
    """
    name = "swap"

    def __init__(self, num_positions: int) -> None:
        self.num_positions = num_positions
        self._items: list[int] = []
        self._index1 = 0
        self._index2 = 0

    def synchronize(self, items: Sequence[int]) -> None:
        """Restart the enumeration around a new incumbent."""
        self._items = list(items)
        self._index1 = 0
        self._index2 = 0

    @property
    def exhausted(self) -> bool:
        return self._index1 >= self.num_positions - 1

    def next_neighbor(self) -> list[int] | None:
        """Return the next swapped permutation, or None once exhausted."""
        self._index2 += 1
        if self._index2 >= self.num_positions:
            self._index1 += 1
            self._index2 = self._index1 + 1
        if self.exhausted:
            return None

        neighbor = list(self._items)
        neighbor[self._index1], neighbor[self._index2] = (
            neighbor[self._index2], neighbor[self._index1]
        )
        return neighbor


class CostFilter:
    """Screens full candidate schedules before they reach the solver.

    The filter is synchronized with the incumbent cost and only lets
    through candidates that are valid schedules and strictly cheaper.
    """

    def __init__(self, instance: Instance) -> None:
        self.instance = instance
        self.current_cost: int | None = None

    def synchronize(self, snapshot: ScheduleSnapshot) -> None:
        self.current_cost = snapshot.objective

    def evaluate(self, items: Sequence[int]) -> ScheduleSnapshot | None:
        """Decode a candidate permutation into a priced schedule."""
        return decode_items(self.instance, items)

    def accept(self, items: Sequence[int]) -> ScheduleSnapshot | None:
        """Return the priced candidate if it improves on the incumbent.

        Args:
            items: Candidate item permutation.

        Returns:
            The candidate's snapshot, or None if it is invalid or not cheaper.
        """
        candidate = self.evaluate(items)
        if candidate is None:
            return None
        if self.current_cost is not None and candidate.objective >= self.current_cost:
            return None
        return candidate
