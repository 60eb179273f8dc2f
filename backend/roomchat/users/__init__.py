"""Participant registry: handle validation and durable participants."""

from .schemas import HANDLE_PATTERN, Participant, normalize_handle, validate_handle
from .service import ParticipantService

__all__ = [
    "HANDLE_PATTERN",
    "Participant",
    "ParticipantService",
    "normalize_handle",
    "validate_handle",
]
