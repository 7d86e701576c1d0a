"""
Services module - Runtime collaborators

Curve hot reload, background scheduling, and execution hand-off.
"""

from fyarb.services.curve_store import CurveStore
from fyarb.services.execution import DryRunExecutor, ExecutionService, build_router_call
from fyarb.services.scheduler import SchedulerService, create_scheduler_service

__all__ = [
    "CurveStore",
    "DryRunExecutor",
    "ExecutionService",
    "build_router_call",
    "SchedulerService",
    "create_scheduler_service",
]
