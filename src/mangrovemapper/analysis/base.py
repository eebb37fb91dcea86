"""Protocol definitions for change-analysis workflows."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

from mangrovemapper.config import PipelineConfig
from mangrovemapper.core.models import ExportRequest
from mangrovemapper.earthengine.geometry import StudyArea


class ChangeWorkflow(Protocol):
    """Interface shared by the CCDC, anomaly and composite workflows."""

    name: str

    def __init__(self, config: PipelineConfig, study_area: StudyArea) -> None:
        ...

    def build_products(self) -> Dict[str, Any]:
        """Return named lazy ``ee.Image`` products."""

    def export_requests(self, products: Dict[str, Any]) -> List[ExportRequest]:
        """Return the exports to register for the given products."""

    def generation_params(self) -> Dict[str, Any]:
        """Return the parameters recorded alongside submitted exports."""
