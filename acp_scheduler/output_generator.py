# Output Generation for the ACP scheduler.
# Version: 1.0.0
# Generates solution lines, text reports, and JSON / CSV exports.

import json
from pathlib import Path

import pandas as pd

from .data_loader import IDLE, Instance
from .scheduler import AcpScheduleResult
from .solution_parser import ScheduleSnapshot, export_snapshot_to_dict


def format_solution_line(snapshot: ScheduleSnapshot) -> str:
    """Format a schedule as the product of each period.

    Args:
        snapshot: Schedule to format.

    Returns:
        Product indices separated by single spaces, -1 for idle periods.
    """
    return " ".join(str(product) for product in snapshot.products)


def generate_schedule_report(result: AcpScheduleResult, include_details: bool = True) -> str:
    """Generate a text report for a finished search.

    Args:
        result: AcpScheduleResult to report on.
        include_details: Whether to include the period-by-period table.

    Returns:
        Multi-line report string.
    """
    instance = result.instance
    lines = []

    # Header
    lines.append("=" * 80)
    lines.append("ACP SCHEDULER - SCHEDULE REPORT")
    lines.append("=" * 80)
    lines.append("")

    # Instance info
    if instance.source_file:
        lines.append(f"Instance: {instance.source_file}")
    lines.append(f"Periods: {instance.num_periods}")
    lines.append(f"Products: {instance.num_products}")
    lines.append(f"Items: {instance.num_items} ({instance.num_residuals} idle periods)")
    lines.append(f"Inventory Cost: {instance.inventory_cost} per unit per period")
    lines.append("")

    # Search info
    lines.append(f"Status: {result.status}")
    lines.append(f"Termination: {result.termination_reason}")
    lines.append(
        f"Iterations: {result.iterations} "
        f"({result.neighborhoods_aborted} without improvement)"
    )
    lines.append(f"Solve Time: {result.solve_time_seconds:.2f}s")
    lines.append("")

    best = result.best
    if best is None:
        lines.append("No feasible schedule found.")
        return "\n".join(lines)

    lines.append("-" * 40)
    lines.append("OBJECTIVE")
    lines.append("-" * 40)
    lines.append(f"Total: {best.objective}")
    lines.append(f"  Inventory: {best.inventory_cost_total}")
    lines.append(f"  Transitions: {best.transition_cost_total}")
    lines.append(
        "Improvements: " + " > ".join(str(o) for o in result.objective_history)
    )
    lines.append("")

    if include_details:
        lines.append("-" * 40)
        lines.append("SCHEDULE")
        lines.append("-" * 40)
        lines.append(f"{'Period':>6}  {'Item':>5}  {'Product':>7}  {'Due':>4}  {'Early':>5}")
        due_dates = instance.item_due_dates
        for period, (item, product) in enumerate(zip(best.items, best.products)):
            if product == IDLE:
                lines.append(f"{period:>6}  {'-':>5}  {'idle':>7}  {'':>4}  {'':>5}")
                continue
            due = due_dates[item]
            lines.append(
                f"{period:>6}  {item:>5}  {product:>7}  {due:>4}  {due - period:>5}"
            )
        lines.append("")

    lines.append(format_solution_line(best))
    return "\n".join(lines)


def export_to_json(result: AcpScheduleResult, pretty: bool = True) -> str:
    """Export a finished search to JSON format.

    Args:
        result: AcpScheduleResult to export.
        pretty: Whether to format with indentation.

    Returns:
        JSON string.
    """
    instance = result.instance
    data = {
        "instance": {
            "source_file": instance.source_file,
            "num_periods": instance.num_periods,
            "num_products": instance.num_products,
            "num_items": instance.num_items,
            "inventory_cost": instance.inventory_cost,
        },
        "config": result.config.to_dict(),
        "status": result.status,
        "termination_reason": result.termination_reason,
        "iterations": result.iterations,
        "solve_time_seconds": round(result.solve_time_seconds, 3),
        "objective": result.objective,
        "objective_history": result.objective_history,
        "best": export_snapshot_to_dict(result.best) if result.best else None,
    }

    indent = 2 if pretty else None
    return json.dumps(data, indent=indent)


def export_to_dataframe(snapshot: ScheduleSnapshot, instance: Instance) -> pd.DataFrame:
    """Tabulate a schedule, one row per period.

    Columns: PERIOD, ITEM, PRODUCT, STATE, DUE_DATE, EARLINESS and
    TRANSITION_COST (cost paid between this period and the next).

    Args:
        snapshot: Schedule to tabulate.
        instance: Instance the schedule belongs to.

    Returns:
        DataFrame indexed from 0.
    """
    num_items = instance.num_items
    due_dates = instance.item_due_dates
    rows = []
    for period, item in enumerate(snapshot.items):
        is_real = item < num_items
        if period + 1 < snapshot.num_periods:
            transition = instance.transition_cost(
                snapshot.states[period], snapshot.products[period + 1]
            )
        else:
            transition = 0
        rows.append({
            "PERIOD": period,
            "ITEM": item if is_real else None,
            "PRODUCT": snapshot.products[period],
            "STATE": snapshot.states[period],
            "DUE_DATE": due_dates[item] if is_real else None,
            "EARLINESS": due_dates[item] - period if is_real else 0,
            "TRANSITION_COST": transition,
        })

    df = pd.DataFrame(rows)
    df["ITEM"] = df["ITEM"].astype("Int64")
    df["DUE_DATE"] = df["DUE_DATE"].astype("Int64")
    return df


def save_all_outputs(
    result: AcpScheduleResult,
    report_path: str | Path | None = None,
    json_path: str | Path | None = None,
    csv_path: str | Path | None = None
) -> list[Path]:
    """Write the requested outputs for a finished search.

    Args:
        result: AcpScheduleResult to save.
        report_path: Where to write the text report.
        json_path: Where to write the JSON export.
        csv_path: Where to write the per-period CSV of the best schedule.

    Returns:
        Paths that were written.
    """
    written = []

    if report_path is not None:
        report_path = Path(report_path)
        report_path.write_text(generate_schedule_report(result))
        written.append(report_path)

    if json_path is not None:
        json_path = Path(json_path)
        json_path.write_text(export_to_json(result))
        written.append(json_path)

    if csv_path is not None and result.best is not None:
        csv_path = Path(csv_path)
        export_to_dataframe(result.best, result.instance).to_csv(csv_path, index=False)
        written.append(csv_path)

    return written
