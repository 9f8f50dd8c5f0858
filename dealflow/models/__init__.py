"""SQLAlchemy model package for the pipeline schema."""

from dealflow.models.base import Base
from dealflow.models.company import Company
from dealflow.models.contact import Contact
from dealflow.models.deal import Deal
from dealflow.models.enums import DealStatus
from dealflow.models.pipeline_stage import PipelineStage
from dealflow.models.user import User

__all__ = [
    "Base",
    "Company",
    "Contact",
    "Deal",
    "DealStatus",
    "PipelineStage",
    "User",
]
