# Large neighborhood search driver using OR-Tools CP-SAT solver.
# Version: 1.0.0
# Finds a greedy seed schedule, then improves it one neighborhood at a time.

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from ortools.sat.python import cp_model

from .config import SolverConfig
from .constraints import (
    AcpModel,
    add_fixed_items_constraints,
    add_objective_upper_bound,
    create_acp_model,
    ensure_schedulable,
)
from .data_loader import Instance
from .errors import (
    InfeasibleScheduleError,
    NeighborhoodAbort,
    SolverError,
    SolverTimeoutError,
    ValidationError,
)
from .neighborhoods import CostFilter, RandomLnsOperator, SwapOperator
from .solution_parser import ScheduleSnapshot, decode_items, extract_snapshot


logger = logging.getLogger(__name__)

SolutionCallback = Callable[[ScheduleSnapshot], None]


class SearchState(Enum):
    """Lifecycle of one search."""
    INIT = "init"
    SEEDED = "seeded"
    IMPROVING = "improving"
    TERMINATED = "terminated"


@dataclass
class AcpScheduleResult:
    """Result of solving one ACP instance.

    Attributes:
        instance: Instance that was solved.
        config: Settings used for the search.
        status: OPTIMAL if the best schedule was proven optimal, else FEASIBLE.
        state: Final search state.
        termination_reason: Why the search stopped.
        solutions: Every improving schedule, seed first, objective strictly decreasing.
        iterations: Number of neighborhoods tried.
        neighborhoods_aborted: Neighborhoods that gave no improvement.
        solve_time_seconds: Wall time of the whole search.
    """
    instance: Instance
    config: SolverConfig
    status: str = "UNKNOWN"
    state: SearchState = SearchState.INIT
    termination_reason: str = ""
    solutions: list[ScheduleSnapshot] = field(default_factory=list)
    iterations: int = 0
    neighborhoods_aborted: int = 0
    solve_time_seconds: float = 0.0

    @property
    def is_feasible(self) -> bool:
        """Check if a feasible schedule was found."""
        return bool(self.solutions)

    @property
    def seed(self) -> ScheduleSnapshot | None:
        """First reported schedule."""
        return self.solutions[0] if self.solutions else None

    @property
    def best(self) -> ScheduleSnapshot | None:
        """Last (and cheapest) reported schedule."""
        return self.solutions[-1] if self.solutions else None

    @property
    def objective(self) -> int | None:
        return self.best.objective if self.best else None

    @property
    def objective_history(self) -> list[int]:
        return [s.objective for s in self.solutions]


def solve_acp(
    instance: Instance,
    config: SolverConfig | None = None,
    on_solution: SolutionCallback | None = None,
    initial_items: Sequence[int] | None = None
) -> AcpScheduleResult:
    """Solve an ACP instance with large neighborhood search.

    Args:
        instance: Instance to solve.
        config: Search settings (defaults when None).
        on_solution: Called with every improving schedule, seed included.
        initial_items: Optional warm-start item permutation replacing the greedy seed.

    Returns:
        AcpScheduleResult with the stream of improving schedules.

    Raises:
        ModelError: If the instance is inconsistent.
        ValidationError: If initial_items is not a valid schedule.
        InfeasibleScheduleError: If no schedule exists.
        SolverTimeoutError: If the time limit ends before a seed is found.
        SolverError: If CP-SAT rejects the model.
    """
    config = (config or SolverConfig()).validate()
    driver = LnsSearchDriver(instance, config, on_solution)
    return driver.run(initial_items)


def add_greedy_strategy(acp_model: AcpModel) -> None:
    """Branch on the item with the smallest domain, smallest value first."""
    acp_model.model.AddDecisionStrategy(
        acp_model.items,
        cp_model.CHOOSE_MIN_DOMAIN_SIZE,
        cp_model.SELECT_MIN_VALUE
    )


def add_random_strategy(
    acp_model: AcpModel,
    positions: Sequence[int],
    values: Sequence[int],
    rng: random.Random
) -> list[cp_model.IntVar]:
    """Branch on the relaxed items in random order, each on a random value.

    Every relaxed period gets a rank variable tied to its item through a
    private random ordering of `values`. Branching on the smallest rank
    first tries the earliest value of that ordering still in the item's
    domain, which is a uniform draw from the current domain.

    Args:
        acp_model: Model to add the strategy to.
        positions: Relaxed periods.
        values: Item indices the relaxed periods can take.
        rng: Source of randomness.

    Returns:
        The rank variables, in branching order.
    """
    model = acp_model.model
    order = list(positions)
    rng.shuffle(order)

    ranks = []
    for p in order:
        ordering = list(values)
        rng.shuffle(ordering)
        rank = model.NewIntVar(0, len(ordering) - 1, f"rank_{p}")
        model.AddAllowedAssignments(
            [rank, acp_model.items[p]],
            list(enumerate(ordering))
        )
        ranks.append(rank)

    model.AddDecisionStrategy(ranks, cp_model.CHOOSE_FIRST, cp_model.SELECT_MIN_VALUE)
    return ranks


class LnsSearchDriver:
    """Runs the seed search and the LNS loop for one instance.

    Not thread-safe; create one driver per solve.
    """

    def __init__(
        self,
        instance: Instance,
        config: SolverConfig,
        on_solution: SolutionCallback | None = None
    ) -> None:
        self.instance = instance
        self.config = config
        self.on_solution = on_solution
        self.state = SearchState.INIT
        self.result = AcpScheduleResult(instance=instance, config=config)

        self._rng = random.Random(config.seed)
        self._start = 0.0
        self._best: ScheduleSnapshot | None = None
        self._cost_filter = CostFilter(instance)
        self._lns = RandomLnsOperator(instance.num_periods, config.lns_size, self._rng)
        self._swap = SwapOperator(instance.num_periods)
        self._operators = list(config.operators)

        if config.lns_size > instance.num_periods and self._lns.name in self._operators:
            logger.warning(
                "lns_size %d exceeds the %d periods; every neighborhood is the whole problem",
                config.lns_size, instance.num_periods
            )

    def run(self, initial_items: Sequence[int] | None = None) -> AcpScheduleResult:
        """Search until a stop condition holds.

        Returns:
            The filled-in AcpScheduleResult.
        """
        self._start = time.perf_counter()

        if initial_items is not None:
            seed = self._warm_start(initial_items)
        else:
            seed = self._find_seed()
        self._accept(seed)
        self._set_state(SearchState.SEEDED)
        logger.info("Seed solution with objective %d", seed.objective)

        stall = 0
        reason = ""
        while not reason:
            reason = self._stop_reason(stall)
            if reason:
                break

            self.result.iterations += 1
            iteration = self.result.iterations
            operator = self._operators[(iteration - 1) % len(self._operators)]

            try:
                if operator == self._swap.name:
                    snapshot = self._swap_step(iteration)
                else:
                    snapshot = self._lns_step(iteration)
            except NeighborhoodAbort as abort:
                logger.debug("%s", abort)
                self.result.neighborhoods_aborted += 1
                stall += 1
                continue
            except _SearchComplete as complete:
                reason = str(complete)
                break

            stall = 0
            self._accept(snapshot)
            self._set_state(SearchState.IMPROVING)
            logger.info(
                "Iteration %d: objective %d (inventory %d, transitions %d) by %s",
                iteration, snapshot.objective, snapshot.inventory_cost_total,
                snapshot.transition_cost_total, operator
            )

        self.result.termination_reason = reason
        if self.result.status != "OPTIMAL":
            self.result.status = "FEASIBLE"
        self.result.solve_time_seconds = self._elapsed()
        self._set_state(SearchState.TERMINATED)
        logger.info(
            "Search terminated after %d iterations (%s), best objective %d",
            self.result.iterations, reason, self._best.objective
        )
        return self.result

    def _find_seed(self) -> ScheduleSnapshot:
        acp_model = create_acp_model(self.instance)
        add_greedy_strategy(acp_model)

        solver = self._new_solver()
        solver.parameters.stop_after_first_solution = True
        status = solver.Solve(acp_model.model)

        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            if status == cp_model.OPTIMAL:
                self.result.status = "OPTIMAL"
            return extract_snapshot(
                solver, acp_model, 0, "seed", self._elapsed()
            )
        if status == cp_model.INFEASIBLE:
            raise InfeasibleScheduleError("no seed solution meets every due date")
        if status == cp_model.MODEL_INVALID:
            raise SolverError(solver.StatusName(status), acp_model.model.Validate())
        raise SolverTimeoutError(self.config.time_limit_seconds, best_solution_found=False)

    def _warm_start(self, initial_items: Sequence[int]) -> ScheduleSnapshot:
        ensure_schedulable(self.instance)
        snapshot = decode_items(self.instance, initial_items)
        if snapshot is None:
            raise ValidationError(
                field="initial schedule",
                value=list(initial_items),
                reason="not a permutation of items meeting due dates and product order"
            )
        return snapshot.stamped(0, "warm_start", self._elapsed())

    def _lns_step(self, iteration: int) -> ScheduleSnapshot:
        positions = self._lns.relaxed_positions()
        relaxed = set(positions)
        frozen = [p for p in range(self.instance.num_periods) if p not in relaxed]

        acp_model = create_acp_model(self.instance)
        add_fixed_items_constraints(acp_model, self._best.items, frozen)
        add_objective_upper_bound(acp_model, self._best.objective - 1)
        freed = [self._best.items[p] for p in positions]
        add_random_strategy(acp_model, positions, freed, self._rng)

        return self._solve_once(
            acp_model, iteration, self._lns.name, self._lns.relaxes_everything
        )

    def _swap_step(self, iteration: int) -> ScheduleSnapshot:
        neighbor = self._swap.next_neighbor()
        if neighbor is None:
            if self._operators == [self._swap.name]:
                raise _SearchComplete("no more moves")
            raise NeighborhoodAbort(iteration, "EXHAUSTED")

        if self.config.use_cost_filter:
            candidate = self._cost_filter.accept(neighbor)
            if candidate is None:
                raise NeighborhoodAbort(iteration, "FILTERED")
            return candidate.stamped(iteration, self._swap.name, self._elapsed())

        acp_model = create_acp_model(self.instance)
        add_fixed_items_constraints(acp_model, neighbor, range(self.instance.num_periods))
        add_objective_upper_bound(acp_model, self._best.objective - 1)
        return self._solve_once(acp_model, iteration, self._swap.name, proves_optimality=False)

    def _solve_once(
        self,
        acp_model: AcpModel,
        iteration: int,
        operator: str,
        proves_optimality: bool
    ) -> ScheduleSnapshot:
        """One-shot search bounded by the conflict limit."""
        solver = self._new_solver()
        solver.parameters.stop_after_first_solution = True
        solver.parameters.max_number_of_conflicts = self.config.lns_limit
        status = solver.Solve(acp_model.model)

        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            snapshot = extract_snapshot(
                solver, acp_model, iteration, operator, self._elapsed()
            )
            if snapshot.objective >= self._best.objective:
                raise NeighborhoodAbort(iteration, "NOT_IMPROVING")
            return snapshot
        if status == cp_model.MODEL_INVALID:
            raise SolverError(solver.StatusName(status), acp_model.model.Validate())
        if status == cp_model.INFEASIBLE and proves_optimality:
            self.result.status = "OPTIMAL"
            raise _SearchComplete("proven optimal")
        raise NeighborhoodAbort(iteration, solver.StatusName(status))

    def _new_solver(self) -> cp_model.CpSolver:
        solver = cp_model.CpSolver()
        solver.parameters.num_workers = 1
        solver.parameters.search_branching = cp_model.FIXED_SEARCH
        solver.parameters.random_seed = self._rng.randrange(1 << 30)
        remaining = self._remaining_time()
        if remaining is not None:
            solver.parameters.max_time_in_seconds = max(remaining, 0.001)
        return solver

    def _accept(self, snapshot: ScheduleSnapshot) -> None:
        self._best = snapshot
        self._cost_filter.synchronize(snapshot)
        self._swap.synchronize(snapshot.items)
        self.result.solutions.append(snapshot)
        if self.on_solution is not None:
            self.on_solution(snapshot)

    def _stop_reason(self, stall: int) -> str:
        if self.result.status == "OPTIMAL":
            return "proven optimal"
        if self._best.objective == 0:
            self.result.status = "OPTIMAL"
            return "lower bound reached"
        if self.result.iterations >= self.config.max_iterations:
            return "iteration limit"
        if stall >= self.config.max_stall_iterations:
            return "no improvement"
        remaining = self._remaining_time()
        if remaining is not None and remaining <= 0:
            return "time limit"
        return ""

    def _set_state(self, state: SearchState) -> None:
        if state != self.state:
            logger.debug("Search state %s -> %s", self.state.name, state.name)
        self.state = state
        self.result.state = state

    def _elapsed(self) -> float:
        return time.perf_counter() - self._start

    def _remaining_time(self) -> float | None:
        if self.config.time_limit_seconds is None:
            return None
        return self.config.time_limit_seconds - self._elapsed()


class _SearchComplete(Exception):
    """Internal signal that no further neighborhood can help."""
