"""
ACP Scheduler - FastAPI Web Backend
"""

import logging
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from acp_scheduler import __version__
from acp_scheduler.config import load_default_config
from acp_scheduler.data_loader import Instance, parse_instance, parse_schedule
from acp_scheduler.errors import (
    ConfigurationError,
    InfeasibleScheduleError,
    LoadError,
    ModelError,
    SolverError,
    SolverTimeoutError,
    ValidationError,
)
from acp_scheduler.output_generator import format_solution_line
from acp_scheduler.scheduler import solve_acp
from acp_scheduler.validator import validate_instance


logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="ACP Scheduler",
    description="ACP 2014 production scheduler with OR-Tools CP-SAT and LNS",
    version=__version__
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class InstanceSummary(BaseModel):
    num_periods: int
    num_products: int
    num_items: int
    num_residuals: int
    inventory_cost: int
    max_transition_cost: int


class SolutionEntry(BaseModel):
    iteration: int
    operator: str
    objective: int
    inventory_cost: int
    transition_cost: int
    line: str


class SolveResponse(BaseModel):
    status: str
    termination_reason: str
    iterations: int
    solve_time_seconds: float
    objective: Optional[int] = None
    instance: InstanceSummary
    solutions: list[SolutionEntry]
    best_products: list[int] = []
    best_items: list[int] = []


def _summarize(instance: Instance) -> InstanceSummary:
    return InstanceSummary(
        num_periods=instance.num_periods,
        num_products=instance.num_products,
        num_items=instance.num_items,
        num_residuals=instance.num_residuals,
        inventory_cost=instance.inventory_cost,
        max_transition_cost=instance.max_transition_cost,
    )


def _read_instance(file: UploadFile) -> Instance:
    try:
        text = file.file.read().decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Instance file is not text: {e}")
    try:
        return parse_instance(text, source=file.filename or "<upload>")
    except LoadError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/config")
async def get_config():
    """Get version and default solver settings."""
    try:
        config = load_default_config()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "version": __version__,
        "solver": config.to_dict(),
    }


@app.post("/api/validate", response_model=InstanceSummary)
def validate_upload(file: UploadFile = File(...)):
    """Parse an uploaded instance and return its size."""
    instance = _read_instance(file)
    try:
        validate_instance(instance)
    except ModelError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _summarize(instance)


@app.post("/api/solve", response_model=SolveResponse)
def solve_upload(
    file: UploadFile = File(...),
    lns_size: Optional[int] = Form(None),
    lns_limit: Optional[int] = Form(None),
    seed: Optional[int] = Form(None),
    max_iterations: Optional[int] = Form(None),
    time_limit_seconds: Optional[float] = Form(None),
    initial_schedule: Optional[str] = Form(None),
):
    """Solve an uploaded instance and return every improving schedule."""
    instance = _read_instance(file)

    try:
        config = load_default_config().with_overrides(
            lns_size=lns_size,
            lns_limit=lns_limit,
            seed=seed,
            max_iterations=max_iterations,
            time_limit_seconds=time_limit_seconds,
        ).validate()
        initial = (
            parse_schedule(initial_schedule, instance.num_periods)
            if initial_schedule else None
        )
        result = solve_acp(instance, config, initial_items=initial)
    except (ConfigurationError, ValidationError, ModelError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (InfeasibleScheduleError, SolverTimeoutError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SolverError as e:
        logger.error("Solver failure: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    best = result.best
    return SolveResponse(
        status=result.status,
        termination_reason=result.termination_reason,
        iterations=result.iterations,
        solve_time_seconds=round(result.solve_time_seconds, 3),
        objective=result.objective,
        instance=_summarize(instance),
        solutions=[
            SolutionEntry(
                iteration=s.iteration,
                operator=s.operator,
                objective=s.objective,
                inventory_cost=s.inventory_cost_total,
                transition_cost=s.transition_cost_total,
                line=format_solution_line(s),
            )
            for s in result.solutions
        ],
        best_products=list(best.products) if best else [],
        best_items=list(best.items) if best else [],
    )
