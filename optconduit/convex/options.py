"""Solver configuration for nonlinear solves of quadratic problems."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping

from .core import EngineInitializationError, ReturnStatus

# Host option keys and the fields they set.
_HOST_KEYS = {
    "maxIterations": "max_iterations",
    "maxCpuSeconds": "max_cpu_seconds",
}


@dataclass(frozen=True)
class SolveOptions:
    """
    Options applied to a nonlinear engine before it runs.

    Attributes:
        tol: Convergence tolerance.
        max_iterations: Iteration cap.
        max_cpu_seconds: CPU-time cap in seconds.
        constr_viol_tol: Largest constraint violation accepted at a solution.
        mu_strategy: Barrier-parameter update strategy.
        print_level: Engine console verbosity (0 is silent).
        engine: Name of the engine to run (``"scipy"`` or ``"ipopt"``).
    """

    tol: float = 1e-7
    max_iterations: int = 3000
    max_cpu_seconds: float = 1e6
    constr_viol_tol: float = 1e-4
    mu_strategy: str = "adaptive"
    print_level: int = 0
    engine: str = "scipy"

    def validate(self) -> None:
        """Reject option values no engine can run with."""
        if not self.tol > 0.0:
            raise EngineInitializationError(
                f"tol must be positive, got {self.tol}", ReturnStatus.INVALID_OPTION
            )
        if int(self.max_iterations) < 0:
            raise EngineInitializationError(
                f"max_iterations must be non-negative, got {self.max_iterations}",
                ReturnStatus.INVALID_OPTION,
            )
        if not self.max_cpu_seconds > 0.0:
            raise EngineInitializationError(
                f"max_cpu_seconds must be positive, got {self.max_cpu_seconds}",
                ReturnStatus.INVALID_OPTION,
            )
        if not self.constr_viol_tol > 0.0:
            raise EngineInitializationError(
                f"constr_viol_tol must be positive, got {self.constr_viol_tol}",
                ReturnStatus.INVALID_OPTION,
            )

    def engine_settings(self) -> Dict[str, Any]:
        """
        Engine option table, including the constant-derivative hints.

        Constraints of a quadratic program are linear and its Hessian does not
        depend on the iterate, so the Jacobian and Hessian are declared
        constant.
        """
        return {
            "tol": float(self.tol),
            "max_iter": int(self.max_iterations),
            "max_cpu_time": float(self.max_cpu_seconds),
            "constr_viol_tol": float(self.constr_viol_tol),
            "mu_strategy": self.mu_strategy,
            "jac_c_constant": "yes",
            "jac_d_constant": "yes",
            "hessian_constant": "yes",
            "print_level": int(self.print_level),
        }

    @classmethod
    def from_host(cls, params: Mapping[str, Any], **overrides: Any) -> "SolveOptions":
        """
        Build options from the host parameter mapping.

        Recognized keys are ``maxIterations`` and ``maxCpuSeconds``; unknown
        keys raise :class:`EngineInitializationError`.
        """
        values: Dict[str, Any] = {}
        for key, value in params.items():
            if key not in _HOST_KEYS:
                raise EngineInitializationError(
                    f"Unknown option {key!r}", ReturnStatus.INVALID_OPTION
                )
            values[_HOST_KEYS[key]] = value
        if "max_iterations" in values:
            values["max_iterations"] = int(values["max_iterations"])
        if "max_cpu_seconds" in values:
            values["max_cpu_seconds"] = float(values["max_cpu_seconds"])
        values.update(overrides)
        return replace(cls(), **values)


__all__ = ["SolveOptions"]
