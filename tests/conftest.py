"""Shared fixtures: small ACP instances and a temporary-file helper."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager

import pytest

from acp_scheduler.config import SolverConfig
from acp_scheduler.data_loader import Instance


# Example from the challenge statement: 15 periods, 8 products
SAMPLE_INSTANCE = """15
8
0 0 0 0 0 0 0 0 1 0 0 0 0 0 0
0 0 0 0 0 0 0 0 0 1 0 0 1 0 0
0 0 0 0 0 0 0 0 0 0 1 0 0 0 0
0 0 0 0 0 0 0 0 0 0 0 0 0 1 0
0 0 0 0 0 0 0 0 0 1 1 0 0 0 0
0 0 0 0 0 0 0 0 0 0 1 0 0 0 1
0 0 0 0 0 0 1 0 0 0 0 0 0 0 0
0 0 0 0 0 0 0 0 0 1 0 1 0 0 0
10
  0   78   86   93  120 12 155 20
165    0  193  213  178 12  90 20
214  170    0  190  185 12  40 20
178  177  185    0  196 12 155 66
201  199  215  190    0 12 155 20
201  100   88  190   14  0  75 70
 50  44   155  190   111 12 0  20
201  199  215  190   123 70 155 0
"""


@contextmanager
def temp_file(content: str, suffix: str = ".txt"):
    fd, path = tempfile.mkstemp(suffix=suffix, text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:  # pragma: no cover
            pass


def make_instance(
    num_periods: int,
    due_dates: list[list[int]],
    inventory_cost: int,
    transitions: list[list[int]],
) -> Instance:
    return Instance(
        num_periods=num_periods,
        num_products=len(due_dates),
        due_dates=tuple(tuple(d) for d in due_dates),
        inventory_cost=inventory_cost,
        transitions=tuple(tuple(row) for row in transitions),
    )


@pytest.fixture
def fast_config() -> SolverConfig:
    return SolverConfig(max_iterations=200, max_stall_iterations=50)


@pytest.fixture
def tiny_instance() -> Instance:
    return make_instance(2, [[1]], 1, [[0]])


@pytest.fixture
def forced_sequence_instance() -> Instance:
    return make_instance(3, [[2], [2]], 0, [[0, 5], [7, 0]])


@pytest.fixture
def idle_state_instance() -> Instance:
    return make_instance(4, [[3], [3]], 0, [[0, 10], [10, 0]])


@pytest.fixture
def inventory_heavy_instance() -> Instance:
    return make_instance(3, [[2]], 100, [[0]])


@pytest.fixture
def interleaved_instance() -> Instance:
    """24 periods, two products of 10 units each, changeovers cost 5."""
    return make_instance(
        24,
        [list(range(14, 24)), list(range(14, 24))],
        0,
        [[0, 5], [5, 0]],
    )


@pytest.fixture
def interleaved_schedule() -> list[int]:
    """Alternating products 0/1 over periods 0..19, idle afterwards (cost 95)."""
    items = []
    for unit in range(10):
        items.extend([unit, 10 + unit])
    return items + [20, 21, 22, 23]


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_INSTANCE
