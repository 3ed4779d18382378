"""
Engine error taxonomy.

The numeric building blocks raise these; `engine.evaluate` catches them and
hands them back as `Err` values so callers never see an uncaught exception.
"""
from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    """Base class. `stage` names the pipeline step that failed."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def at_stage(self, stage: str) -> "EngineError":
        self.stage = stage
        return self

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "stage": self.stage, "message": self.message}

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class InvalidParameter(EngineError, ValueError):
    """A precondition on the bond parameters (or a rate input) is violated."""


class DegenerateInput(EngineError, ValueError):
    """Empty cash-flow vector or zero reference price reached a calculation."""


class NonConvergence(EngineError, ArithmeticError):
    """Root finder stopped without meeting tolerance."""

    def __init__(self, message: str, last_estimate: float, iterations: int, stage: Optional[str] = None):
        super().__init__(message, stage)
        self.last_estimate = last_estimate
        self.iterations = iterations

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["last_estimate"] = self.last_estimate
        out["iterations"] = self.iterations
        return out
