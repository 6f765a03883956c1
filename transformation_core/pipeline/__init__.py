"""
Transformation Pipeline
=======================

Staged processing of messages: format normalisation, XSLT, functions,
destination formatting and forwarding.

Components:
- PipelineOrchestrator: runs routes and reprocesses stored packets
- TransformationStage / ProcessingOutcome: stage model
- CancellationToken: cooperative cancellation
"""

from transformation_core.pipeline.cancellation import CancellationToken
from transformation_core.pipeline.orchestrator import (
    PipelineOrchestrator,
    ForwardingResult,
    ERROR_RESPONSE_TEXT,
)
from transformation_core.pipeline.stages import (
    ProcessingOutcome,
    TransformationStage,
    RESUMABLE_STAGES,
    infer_starting_stage,
    stages_from,
)

__all__ = [
    "PipelineOrchestrator",
    "ForwardingResult",
    "ERROR_RESPONSE_TEXT",
    "CancellationToken",
    "ProcessingOutcome",
    "TransformationStage",
    "RESUMABLE_STAGES",
    "infer_starting_stage",
    "stages_from",
]
