"""
Pipeline services.

- InboxOrchestrator: permission → fetch → extract → annotate → reconcile → prune
- SourcePruner: fail-open deletion of reconciled source messages
"""

from .orchestrator import (
    ConfirmOutcome,
    InboxOrchestrator,
    PipelineState,
    PipelineStateError,
    log_alert,
)
from .pruner import PruneResult, SourcePruner

__all__ = [
    "ConfirmOutcome",
    "InboxOrchestrator",
    "PipelineState",
    "PipelineStateError",
    "PruneResult",
    "SourcePruner",
    "log_alert",
]
