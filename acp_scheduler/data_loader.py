# Load ACP 2014 challenge instance files for the scheduler.
# Version: 1.0.0
# Parses the positional integer format and structures it for model building.

import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Iterator

from .errors import FileLoadError, LoadError, ValidationError


logger = logging.getLogger(__name__)

# Sentinel product index for a period without production
IDLE = -1


@dataclass(frozen=True)
class Instance:
    """An ACP challenge instance. Immutable once loaded.

    Attributes:
        num_periods: Number of periods in the horizon (P).
        num_products: Number of products (K).
        due_dates: For each product, the strictly increasing periods at
            which one unit of the product is due.
        inventory_cost: Cost per unit per period of early production.
        transitions: K x K changeover costs, transitions[i][j] is the cost
            of producing j right after i.
        source_file: Path of the file the instance came from (not compared).
    """
    num_periods: int
    num_products: int
    due_dates: tuple[tuple[int, ...], ...]
    inventory_cost: int
    transitions: tuple[tuple[int, ...], ...]
    source_file: str = field(default="", compare=False)

    @cached_property
    def num_items(self) -> int:
        """Total number of units to produce (M)."""
        return sum(len(d) for d in self.due_dates)

    @property
    def num_residuals(self) -> int:
        """Number of periods without production (R = P - M)."""
        return self.num_periods - self.num_items

    @cached_property
    def item_to_product(self) -> tuple[int, ...]:
        """Product of each item; items are enumerated product by product."""
        return tuple(
            product
            for product, dates in enumerate(self.due_dates)
            for _ in dates
        )

    @cached_property
    def item_due_dates(self) -> tuple[int, ...]:
        """Due date of each item, in the same enumeration as item_to_product."""
        return tuple(date for dates in self.due_dates for date in dates)

    @cached_property
    def max_transition_cost(self) -> int:
        """Largest entry of the transition matrix."""
        return max((cost for row in self.transitions for cost in row), default=0)

    def items_of_product(self, product: int) -> range:
        """Item indices belonging to a product, in due-date order.

        Args:
            product: Product index.

        Returns:
            Contiguous range of item indices.
        """
        start = sum(len(d) for d in self.due_dates[:product])
        return range(start, start + len(self.due_dates[product]))

    def transition_cost(self, previous_state: int, product: int) -> int:
        """Changeover cost of producing `product` after `previous_state`.

        Idle periods and the first activation are free.
        """
        if previous_state == IDLE or product == IDLE:
            return 0
        return self.transitions[previous_state][product]

    def debug_string(self) -> str:
        return (
            f"AcpData({self.num_periods} periods, {self.num_products} products, "
            f"{self.inventory_cost} cost)"
        )


def load_instance(filepath: str | Path) -> Instance:
    """Load an ACP instance from a file.

    Args:
        filepath: Path to the instance file.

    Returns:
        Parsed Instance.

    Raises:
        FileLoadError: If the file cannot be read.
        LoadError: If the content is malformed.
    """
    filepath = Path(filepath)
    logger.info("Load %s", filepath)

    try:
        text = filepath.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise FileLoadError(str(filepath), e)

    instance = parse_instance(text, source=str(filepath))
    log_instance_summary(instance)
    return instance


def parse_instance(text: str, source: str = "<string>") -> Instance:
    """Parse the content of an ACP instance file.

    Layout: number of periods, number of products, one 0/1 due-date row
    per product, the inventory cost, then one transition row per product.
    Blank lines are ignored.

    Args:
        text: File content.
        source: Name used in error messages.

    Returns:
        Parsed Instance.

    Raises:
        LoadError: If any line is malformed or the content is truncated.
    """
    reader = _LineReader(text, source)

    num_periods = reader.read_scalar("number of periods")
    if num_periods < 1:
        raise reader.error(f"number of periods must be at least 1, got {num_periods}")

    num_products = reader.read_scalar("number of products")
    if num_products < 1:
        raise reader.error(f"number of products must be at least 1, got {num_products}")

    due_dates = []
    for product in range(num_products):
        row = reader.read_row(num_periods, f"due dates of product {product}")
        if any(value not in (0, 1) for value in row):
            raise reader.error("due-date values must be 0 or 1")
        due_dates.append(tuple(p for p, value in enumerate(row) if value == 1))

    inventory_cost = reader.read_scalar("inventory cost")
    if inventory_cost < 0:
        raise reader.error(f"inventory cost must be non-negative, got {inventory_cost}")

    transitions = []
    for product in range(num_products):
        row = reader.read_row(num_products, f"transition costs from product {product}")
        if any(value < 0 for value in row):
            raise reader.error("transition costs must be non-negative")
        transitions.append(tuple(row))

    reader.expect_end()

    return Instance(
        num_periods=num_periods,
        num_products=num_products,
        due_dates=tuple(due_dates),
        inventory_cost=inventory_cost,
        transitions=tuple(transitions),
        source_file=source,
    )


def serialize_instance(instance: Instance) -> str:
    """Write an instance back in the ACP file format.

    Args:
        instance: Instance to serialize.

    Returns:
        File content accepted by parse_instance.
    """
    lines = [str(instance.num_periods), str(instance.num_products)]
    for dates in instance.due_dates:
        due = set(dates)
        lines.append(" ".join("1" if p in due else "0" for p in range(instance.num_periods)))
    lines.append(str(instance.inventory_cost))
    for row in instance.transitions:
        lines.append(" ".join(str(cost) for cost in row))
    return "\n".join(lines) + "\n"


def save_instance(instance: Instance, filepath: str | Path) -> Path:
    """Save an instance to a file in the ACP format."""
    filepath = Path(filepath)
    filepath.write_text(serialize_instance(instance))
    return filepath


def parse_schedule(text: str, num_periods: int) -> list[int]:
    """Parse a warm-start schedule: one item index per period.

    Args:
        text: Whitespace separated item indices.
        num_periods: Expected number of entries.

    Returns:
        List of item indices in period order.

    Raises:
        ValidationError: If a token is not an integer or the length is wrong.
    """
    tokens = text.split()
    try:
        items = [int(token) for token in tokens]
    except ValueError:
        raise ValidationError(
            field="initial schedule",
            value=text.strip()[:80],
            reason="all entries must be integers"
        )
    if len(items) != num_periods:
        raise ValidationError(
            field="initial schedule",
            value=len(items),
            reason=f"expected {num_periods} item indices, one per period"
        )
    return items


def load_schedule(filepath: str | Path, num_periods: int) -> list[int]:
    """Load a warm-start schedule from a file.

    Raises:
        FileLoadError: If the file cannot be read.
        ValidationError: If the content is not a list of item indices.
    """
    filepath = Path(filepath)
    try:
        text = filepath.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise FileLoadError(str(filepath), e)
    return parse_schedule(text, num_periods)


def log_instance_summary(instance: Instance) -> None:
    """Log the size of an instance the way the solver reports it."""
    logger.debug("%s", instance.debug_string())
    logger.info("  - %d periods", instance.num_periods)
    logger.info("  - %d products", instance.num_products)
    logger.info("  - earliness cost is %d", instance.inventory_cost)
    logger.info("  - %d items", instance.num_items)
    logger.info("  - %d non active periods", instance.num_residuals)


class _LineReader:
    """Iterates over the non-blank lines of an instance, tracking line numbers."""

    def __init__(self, text: str, source: str) -> None:
        self.source = source
        self._lines: Iterator[tuple[int, str]] = (
            (number, line)
            for number, line in enumerate(text.splitlines(), start=1)
            if line.strip()
        )
        self.line_number: int | None = None
        self.line: str | None = None

    def error(self, reason: str) -> LoadError:
        return LoadError(self.source, reason, self.line_number, self.line)

    def _next_tokens(self, what: str) -> list[str]:
        try:
            self.line_number, self.line = next(self._lines)
        except StopIteration:
            raise LoadError(
                self.source,
                f"unexpected end of file, expected {what}",
                self.line_number
            )
        return self.line.split()

    def _to_int(self, token: str) -> int:
        try:
            return int(token)
        except ValueError:
            raise self.error(f"{token!r} is not an integer")

    def read_scalar(self, what: str) -> int:
        # Only the first token of a scalar line is meaningful
        return self._to_int(self._next_tokens(what)[0])

    def read_row(self, size: int, what: str) -> list[int]:
        tokens = self._next_tokens(what)
        if len(tokens) != size:
            raise self.error(f"expected {size} values for {what}, found {len(tokens)}")
        return [self._to_int(token) for token in tokens]

    def expect_end(self) -> None:
        extra = next(self._lines, None)
        if extra is not None:
            self.line_number, self.line = extra
            raise self.error("unexpected content after the transition matrix")
