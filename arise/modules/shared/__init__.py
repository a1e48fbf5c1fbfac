from arise.modules.shared.base_service import BaseService
from arise.modules.shared.exceptions import (
    AriseDomainException,
    InsufficientResourcesError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)

__all__ = [
    "AriseDomainException",
    "BaseService",
    "InsufficientResourcesError",
    "NotFoundError",
    "PreconditionError",
    "ValidationError",
]
