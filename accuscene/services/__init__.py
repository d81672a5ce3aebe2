"""Application services."""

from accuscene.services.investigation_service import InvestigationService

__all__ = ["InvestigationService"]
