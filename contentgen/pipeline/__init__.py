"""Workflow planning and execution."""

from contentgen.pipeline.batch import BatchRunner
from contentgen.pipeline.executor import PipelineExecutor, count_words
from contentgen.pipeline.planner import WorkflowPlanner, check_dependencies
from contentgen.pipeline.registry import (
    StepContext,
    StepGeneration,
    StepHandler,
    StepHandlerRegistry,
    default_registry,
)

__all__ = [
    "BatchRunner",
    "PipelineExecutor",
    "count_words",
    "WorkflowPlanner",
    "check_dependencies",
    "StepContext",
    "StepGeneration",
    "StepHandler",
    "StepHandlerRegistry",
    "default_registry",
]
