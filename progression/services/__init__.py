"""Service layer for the progression engine"""
from progression.services.container import ServiceContainer, get_container, init_container
from progression.services.progression_service import ActivityOutcome, ProgressionService, ProgressionView

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "ActivityOutcome",
    "ProgressionService",
    "ProgressionView",
]
