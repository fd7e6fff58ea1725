# ACP Scheduler - Core Package
# Version: 1.0.0

"""
Production scheduler for the ACP 2014 challenge.

Uses Google OR-Tools CP-SAT solver to sequence product units over a
horizon of periods, minimizing earliness (inventory) and changeover
costs with a greedy seed and large neighborhood search.
"""

__version__ = "1.0.0"

from .errors import (
    SchedulingError,
    LoadError,
    FileLoadError,
    ConfigurationError,
    ValidationError,
    ModelError,
    InfeasibleScheduleError,
    SolverTimeoutError,
    NeighborhoodAbort,
    SolverError,
)

from .config import (
    SolverConfig,
    OPERATOR_NAMES,
    load_config_from_yaml,
    load_default_config,
    save_config_to_yaml,
)

from .data_loader import (
    IDLE,
    Instance,
    load_instance,
    parse_instance,
    serialize_instance,
    save_instance,
    load_schedule,
    parse_schedule,
)

from .validator import (
    validate_instance,
    validate_schedule,
)

from .constraints import (
    AcpModel,
    build_item_product_tuples,
    build_transition_tuples,
    create_acp_model,
)

from .solution_parser import (
    ScheduleSnapshot,
    compute_states,
    decode_items,
    extract_snapshot,
    export_snapshot_to_dict,
)

from .neighborhoods import (
    CostFilter,
    RandomLnsOperator,
    SwapOperator,
)

from .scheduler import (
    AcpScheduleResult,
    LnsSearchDriver,
    SearchState,
    solve_acp,
)

from .output_generator import (
    format_solution_line,
    generate_schedule_report,
    export_to_json,
    export_to_dataframe,
    save_all_outputs,
)
