"""Phased, dependency-ordered rollout of GitOps applications."""

from logstackctl.rollout.gate import CancellationToken, HealthGate
from logstackctl.rollout.models import (
    DeploymentUnit,
    GateResult,
    HealthState,
    RunConfig,
    SyncState,
    TriggerMethod,
    UnitStatus,
)
from logstackctl.rollout.orchestrator import SyncOrchestrator
from logstackctl.rollout.planner import DependencyPlanner, ExecutionPlan
from logstackctl.rollout.run import DeploymentRun, RunStatus
from logstackctl.rollout.triggers import TriggerPolicy, build_trigger_policy

__all__ = [
    "CancellationToken",
    "DependencyPlanner",
    "DeploymentRun",
    "DeploymentUnit",
    "ExecutionPlan",
    "GateResult",
    "HealthGate",
    "HealthState",
    "RunConfig",
    "RunStatus",
    "SyncOrchestrator",
    "SyncState",
    "TriggerMethod",
    "TriggerPolicy",
    "UnitStatus",
    "build_trigger_policy",
]
