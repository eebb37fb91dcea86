"""Change-analysis workflows for mangrovemapper."""

from typing import Dict, Type

from .anomaly import AnomalyWorkflow
from .base import ChangeWorkflow
from .ccdc import CcdcWorkflow
from .composites import CompositesWorkflow

WORKFLOWS: Dict[str, Type[ChangeWorkflow]] = {
    CcdcWorkflow.name: CcdcWorkflow,
    AnomalyWorkflow.name: AnomalyWorkflow,
    CompositesWorkflow.name: CompositesWorkflow,
}

__all__ = ["AnomalyWorkflow", "CcdcWorkflow", "ChangeWorkflow", "CompositesWorkflow", "WORKFLOWS"]
