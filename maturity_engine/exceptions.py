"""
Error taxonomy for the scoring subsystem.

"No data" is deliberately absent: a control or diagnostic without applicable
measures is a valid state and is returned as ``None``, never raised.
"""

from __future__ import annotations


class MaturityEngineError(Exception):
    """Base class for every error raised by maturity_engine."""


class LoadError(MaturityEngineError):
    """One or more collaborator fetches failed or timed out."""

    def __init__(
        self,
        message: str,
        program_id: int,
        control_id: int | None = None,
        errors: list[BaseException] | None = None,
    ):
        super().__init__(message)
        self.program_id = program_id
        self.control_id = control_id
        self.errors = list(errors or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        causes = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        return f"{base} ({causes})"


class WriteError(MaturityEngineError):
    """A persistence write failed; the optimistic local change was rolled back."""

    def __init__(self, message: str, mutation: str, cause: BaseException | None = None):
        super().__init__(message)
        self.mutation = mutation
        self.cause = cause


class ProgramNotLoadedError(MaturityEngineError):
    """A score was requested for a program whose essential data is not loaded."""

    def __init__(self, program_id: int):
        super().__init__(f"Essential data for program {program_id} is not loaded")
        self.program_id = program_id
