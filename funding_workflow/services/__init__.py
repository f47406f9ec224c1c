"""Stateful services over storage: projects, programs and formalization."""

from .formalization_service import FormalizationService, build_tranches
from .program_service import ProgramService
from .project_service import ProjectService

__all__ = ["FormalizationService", "ProgramService", "ProjectService", "build_tranches"]
