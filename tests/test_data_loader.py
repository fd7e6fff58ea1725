"""Pytest tests for the instance loader.

Each test parses instance text (directly or through a temporary file) and
asserts either the structure of the result or the LoadError raised.
"""

from __future__ import annotations

import logging
import random

import pytest
from conftest import make_instance, temp_file

from acp_scheduler.data_loader import (
    IDLE,
    load_instance,
    load_schedule,
    parse_instance,
    parse_schedule,
    save_instance,
    serialize_instance,
)
from acp_scheduler.errors import FileLoadError, LoadError, ValidationError


def test_parse_sample_instance(sample_text: str):
    inst = parse_instance(sample_text)
    assert inst.num_periods == 15
    assert inst.num_products == 8
    assert inst.due_dates[0] == (8,)
    assert inst.due_dates[1] == (9, 12)
    assert inst.due_dates[4] == (9, 10)
    assert inst.inventory_cost == 10
    assert inst.transitions[0] == (0, 78, 86, 93, 120, 12, 155, 20)
    assert inst.transitions[6][0] == 50
    assert inst.num_items == 12
    assert inst.num_residuals == 3
    assert inst.max_transition_cost == 215


def test_item_enumeration_follows_products(sample_text: str):
    inst = parse_instance(sample_text)
    assert inst.item_to_product[:5] == (0, 1, 1, 2, 3)
    assert inst.item_due_dates[:5] == (8, 9, 12, 10, 13)
    assert list(inst.items_of_product(1)) == [1, 2]
    assert list(inst.items_of_product(7)) == [10, 11]


def test_load_instance_from_file(sample_text: str):
    with temp_file(sample_text) as path:
        inst = load_instance(path)
    assert inst.num_periods == 15
    assert inst.source_file == path


def test_missing_file_raises_file_load_error(tmp_path):
    with pytest.raises(FileLoadError) as excinfo:
        load_instance(tmp_path / "missing.txt")
    assert "missing.txt" in str(excinfo.value)


def test_blank_lines_and_trailing_tokens_are_ignored():
    inst = parse_instance("\n3  extra\n\n1\n0 0 1\n\n0\n0\n\n")
    assert inst.num_periods == 3
    assert inst.due_dates == ((2,),)
    assert inst.transitions == ((0,),)


@pytest.mark.parametrize(
    "content, line_number, fragment",
    [
        ("x\n1\n0 1\n0\n0\n", 1, "'x' is not an integer"),
        ("2\n1\n0 1 0\n0\n0\n", 3, "expected 2 values"),
        ("2\n1\n0 2\n0\n0\n", 3, "0 or 1"),
        ("2\n1\n0 1\n-3\n0\n", 4, "inventory cost must be non-negative"),
        ("2\n1\n0 1\n0\n-1\n", 5, "transition costs must be non-negative"),
        ("2\n0\n", 2, "number of products must be at least 1"),
        ("0\n1\n", 1, "number of periods must be at least 1"),
        ("2\n1\n0 1\n0\n0\n7\n", 6, "unexpected content"),
    ],
)
def test_parse_errors_report_line(content: str, line_number: int, fragment: str):
    with pytest.raises(LoadError) as excinfo:
        parse_instance(content, source="bad.txt")
    assert excinfo.value.line_number == line_number
    assert fragment in str(excinfo.value)
    assert "bad.txt" in str(excinfo.value)


def test_truncated_file():
    with pytest.raises(LoadError) as excinfo:
        parse_instance("3\n2\n0 0 1\n")
    assert "unexpected end of file" in str(excinfo.value)
    assert "due dates of product 1" in str(excinfo.value)


def test_serialize_round_trip(sample_text: str):
    inst = parse_instance(sample_text)
    again = parse_instance(serialize_instance(inst))
    assert again == inst


def test_serialize_keeps_idle_heavy_instance():
    inst = make_instance(5, [[4], []], 3, [[0, 1], [2, 0]])
    text = serialize_instance(inst)
    assert text.splitlines()[3] == "0 0 0 0 0"
    assert parse_instance(text) == inst


def test_transition_cost_is_free_around_idle():
    inst = make_instance(3, [[1], [2]], 0, [[0, 4], [6, 0]])
    assert inst.transition_cost(0, 1) == 4
    assert inst.transition_cost(1, 0) == 6
    assert inst.transition_cost(IDLE, 1) == 0
    assert inst.transition_cost(0, IDLE) == 0


def test_parse_schedule():
    assert parse_schedule("2 0\n1", 3) == [2, 0, 1]


@pytest.mark.parametrize("text", ["0 1", "0 a 2", ""])
def test_parse_schedule_errors(text: str):
    with pytest.raises(ValidationError):
        parse_schedule(text, 3)


def test_load_schedule_from_file():
    with temp_file("1 0\n") as path:
        assert load_schedule(path, 2) == [1, 0]


def _random_instance(seed: int):
    rng = random.Random(seed)
    num_periods = rng.randint(1, 12)
    num_products = rng.randint(1, 4)
    due_dates = [
        sorted(rng.sample(range(num_periods), rng.randint(0, num_periods)))
        for _ in range(num_products)
    ]
    if seed % 3 == 0:
        due_dates[0] = []
    transitions = [
        [rng.randint(0, 300) for _ in range(num_products)]
        for _ in range(num_products)
    ]
    return make_instance(num_periods, due_dates, rng.randint(0, 50), transitions)


@pytest.mark.parametrize("seed", range(20))
def test_round_trip_of_random_instances(seed: int, tmp_path):
    inst = _random_instance(seed)
    assert parse_instance(serialize_instance(inst)) == inst
    path = save_instance(inst, tmp_path / f"random_{seed}.txt")
    assert load_instance(path) == inst


def test_load_logs_instance_summary(sample_text: str, caplog):
    caplog.set_level(logging.DEBUG, logger="acp_scheduler.data_loader")
    with temp_file(sample_text) as path:
        inst = load_instance(path)
    assert inst.debug_string() == "AcpData(15 periods, 8 products, 10 cost)"
    assert inst.debug_string() in caplog.text
    assert "  - 3 non active periods" in caplog.text
