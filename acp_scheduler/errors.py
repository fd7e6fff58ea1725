# Exception hierarchy for the ACP scheduler.
# Version: 1.0.0
# Structured errors with line-level context for loaders and solver status for the search.

from pathlib import PurePath
from typing import Any


class SchedulingError(Exception):
    """Root of every error raised by the ACP scheduler.

    Callers that only need to know that a run failed can catch this one
    class; the subclasses carry the specifics.

    Attributes:
        message: Human-readable error description.
        details: Key/value context appended to the message.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} [{context}]"


class LoadError(SchedulingError):
    """Raised when an instance file is malformed.

    Covers non-integer tokens, wrong arity on a row, truncated files and
    values outside their allowed range. Always fatal.

    Attributes:
        source: Name of the file (or "<string>") being parsed.
        reason: Explanation of what is wrong.
        line_number: 1-indexed line of the offending input, if known.
        line: Raw text of the offending line, if known.
    """

    def __init__(
        self,
        source: str,
        reason: str,
        line_number: int | None = None,
        line: str | None = None
    ) -> None:
        """Initialize the load error.

        Args:
            source: File name or "<string>".
            reason: Explanation of the problem.
            line_number: Optional 1-indexed line number.
            line: Optional raw text of the offending line.
        """
        self.source = source
        self.reason = reason
        self.line_number = line_number
        self.line = line

        details: dict[str, Any] = {"source": source}
        if line_number is not None:
            details["line"] = line_number

        location = f" at line {line_number}" if line_number is not None else ""
        message = f"Cannot load {source}{location}: {reason}"
        if line is not None:
            message += f". Got: {line.strip()!r}"
        super().__init__(message, details)


class FileLoadError(LoadError):
    """Raised when an instance, schedule or config file cannot be read.

    Attributes:
        filepath: Path that was opened.
        cause: The OSError or decoding error behind the failure.
    """

    def __init__(self, filepath: str, cause: Exception) -> None:
        self.filepath = filepath
        self.cause = cause

        kind = type(cause).__name__
        super().__init__(PurePath(filepath).name, f"{kind} - {cause}")
        self.details = {"filepath": filepath, "cause_type": kind}


class ConfigurationError(SchedulingError):
    """Raised for invalid solver settings.

    Used for errors in the YAML configuration file and for out-of-range
    option values given on the command line or through the web API.

    Attributes:
        config_source: File name or option name the problem came from.
        issue: What is wrong with it.
    """

    def __init__(self, config_source: str, issue: str) -> None:
        self.config_source = config_source
        self.issue = issue
        super().__init__(
            f"Configuration error in {config_source}: {issue}",
            {"source": config_source}
        )


class ValidationError(SchedulingError):
    """Raised when user-supplied data fails validation.

    Used for warm-start schedules that are not a valid item permutation
    and for malformed web API input.

    Attributes:
        field: Name of the rejected input.
        value: The rejected value.
        reason: Why it was rejected.
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}. Got: {value!r}", {"field": field})


class ModelError(SchedulingError):
    """Raised when an instance is internally inconsistent.

    Examples are due dates outside the horizon, due dates that are not
    strictly increasing, or a transition matrix that is not K x K.
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        self.reason = reason
        super().__init__(f"Inconsistent instance: {reason}", details)


class InfeasibleScheduleError(SchedulingError):
    """Raised when the instance admits no schedule at all.

    Either there are more items than periods, or the seed search proved
    that the due dates cannot all be met.

    Attributes:
        reason: Which of the two happened.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Cannot create valid schedule: {reason}", {"reason": reason})


class SolverTimeoutError(SchedulingError):
    """Raised when the time limit ends the search before a seed is found.

    Attributes:
        timeout_seconds: Time limit in force, None if only conflict limits applied.
        best_solution_found: Whether any schedule had been reported.
    """

    def __init__(self, timeout_seconds: float | None, best_solution_found: bool) -> None:
        self.timeout_seconds = timeout_seconds
        self.best_solution_found = best_solution_found

        limit = f"{timeout_seconds}s" if timeout_seconds is not None else "its limits"
        outcome = (
            "the last reported schedule is the best known"
            if best_solution_found
            else "no seed schedule was found"
        )
        super().__init__(
            f"Search stopped after {limit}: {outcome}",
            {"timeout": timeout_seconds, "has_solution": best_solution_found}
        )


class NeighborhoodAbort(SchedulingError):
    """Raised when a neighborhood search gives up without an improvement.

    The inner one-shot search either hit its conflict limit or proved that
    the neighborhood holds no better schedule. The search driver catches it
    and moves on to the next neighborhood.

    Attributes:
        iteration: LNS iteration that was abandoned.
        status: CP-SAT status name of the inner search.
    """

    def __init__(self, iteration: int, status: str) -> None:
        self.iteration = iteration
        self.status = status
        super().__init__(
            f"Neighborhood {iteration} abandoned ({status})",
            {"iteration": iteration, "status": status}
        )


class SolverError(SchedulingError):
    """Raised when CP-SAT rejects the model or fails internally.

    Attributes:
        status: CP-SAT status name.
    """

    def __init__(self, status: str, reason: str = "") -> None:
        self.status = status
        message = f"Solver failed with status {status}"
        if reason:
            message += f": {reason}"
        super().__init__(message, {"status": status})
