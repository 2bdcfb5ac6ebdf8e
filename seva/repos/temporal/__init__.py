"""Temporal activity implementations for seva repositories."""

from .postgresql_participant_counter import (
    TemporalPostgreSQLParticipantCounterRepository,
)

__all__ = ["TemporalPostgreSQLParticipantCounterRepository"]
