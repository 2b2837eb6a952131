"""Constants package for the BoligDeposit privacy service."""

from .auth import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_ROLE, ALGORITHM, ANONYMOUS_USER_ID, SECRET_KEY, SYSTEM_USER_ID
from .gdpr import (
    AuditAction,
    ConsentType,
    DataCategory,
    LawfulBasis,
    ProcessingPurpose,
    RequestStatus,
    RequestType,
    get_processing_purposes,
)

__all__ = [
    # Auth constants
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "ADMIN_ROLE",
    "ANONYMOUS_USER_ID",
    "SYSTEM_USER_ID",
    # GDPR enums
    "AuditAction",
    "ConsentType",
    "DataCategory",
    "LawfulBasis",
    "ProcessingPurpose",
    "RequestStatus",
    "RequestType",
    "get_processing_purposes",
]
