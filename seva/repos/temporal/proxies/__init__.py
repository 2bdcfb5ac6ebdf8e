"""Workflow-safe proxies for seva repositories."""

from .participant_counter import WorkflowParticipantCounterRepositoryProxy

__all__ = ["WorkflowParticipantCounterRepositoryProxy"]
