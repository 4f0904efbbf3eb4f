"""Readiness-driven strength session prescriptions and periodized plans."""

from .core.context import aggregate_context
from .core.forecast import forecast_prs
from .core.planner import generate_algorithmic_plan
from .core.prescription import advise_session, generate_session_prescription
from .core.readiness import compute_readiness
from .core.recovery import plan_recovery_session

__version__ = "0.1.0"
