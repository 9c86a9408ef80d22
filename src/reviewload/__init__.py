"""reviewload: staged virtual-user load driver for the PR reviewer assignment service."""

from __future__ import annotations

from reviewload._internal.config import DriverConfig, load_config
from reviewload.dsl.checks import Check, CheckResult
from reviewload.dsl.http_client import HttpClient, RequestMetric
from reviewload.dsl.request_spec import RequestSpec
from reviewload.dsl.scenario import IterationId, IterationScript
from reviewload.engine.runner import LoadTestRunner
from reviewload.patterns.base import LoadPattern
from reviewload.patterns.stages import Stage, StagedPattern
from reviewload.scripts.review_flow import ReviewFlowScript

__version__ = "0.1.0"

__all__ = [
    "Check",
    "CheckResult",
    "DriverConfig",
    "HttpClient",
    "IterationId",
    "IterationScript",
    "LoadPattern",
    "LoadTestRunner",
    "RequestMetric",
    "RequestSpec",
    "ReviewFlowScript",
    "Stage",
    "StagedPattern",
    "load_config",
]
