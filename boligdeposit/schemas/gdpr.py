from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from boligdeposit.constants.gdpr import (
    BreachRiskLevel,
    BreachStatus,
    ConsentType,
    DataCategory,
    LawfulBasis,
    ProcessingPurpose,
    RequestStatus,
    RequestType,
)


# ---------------------------------------------------------------------------
# Consent
# ---------------------------------------------------------------------------


class ConsentCreate(BaseModel):
    user_id: str
    consent_type: ConsentType
    granted: bool
    lawful_basis: LawfulBasis
    purposes: list[ProcessingPurpose] = Field(default_factory=list)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    consent_string: Optional[str] = None


class ConsentIn(BaseModel):
    """Consent payload accepted over HTTP; the user id comes from the token."""

    consent_type: ConsentType
    granted: bool
    lawful_basis: LawfulBasis = LawfulBasis.CONSENT
    purposes: list[ProcessingPurpose] = Field(default_factory=list)


class ConsentOut(BaseModel):
    user_id: str
    consent_type: ConsentType
    granted: bool
    lawful_basis: LawfulBasis
    purposes: list[ProcessingPurpose]
    timestamp: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    class Config:
        from_attributes = True


class ConsentValidity(BaseModel):
    consent_type: ConsentType
    valid: bool


# ---------------------------------------------------------------------------
# Processing ledger
# ---------------------------------------------------------------------------


class ProcessingCreate(BaseModel):
    user_id: str
    data_category: DataCategory
    purpose: ProcessingPurpose
    lawful_basis: LawfulBasis
    # Defaults to the configured retention period from the time of recording
    data_retention_until: Optional[datetime] = None
    is_anonymized: bool = False


class ProcessingIn(BaseModel):
    data_category: DataCategory
    purpose: ProcessingPurpose
    lawful_basis: LawfulBasis
    data_retention_until: Optional[datetime] = None


class ProcessingOut(BaseModel):
    id: str
    user_id: str
    data_category: DataCategory
    purpose: ProcessingPurpose
    lawful_basis: LawfulBasis
    processing_date: datetime
    data_retention_until: datetime
    is_anonymized: bool
    audit_hash: str

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Data subject requests
# ---------------------------------------------------------------------------


class SubjectRequestCreate(BaseModel):
    user_id: str
    type: RequestType
    request_details: str = ""


class SubjectRequestIn(BaseModel):
    type: RequestType
    request_details: str = Field(default="", max_length=5000)


class SubjectRequestCreated(BaseModel):
    id: str


class SubjectRequestUpdate(BaseModel):
    status: RequestStatus
    response_data: Optional[str] = None
    rejection_reason: Optional[str] = None


class SubjectRequestOut(BaseModel):
    id: str
    user_id: str
    type: RequestType
    status: RequestStatus
    request_date: datetime
    completion_deadline: datetime
    completed_date: Optional[datetime] = None
    request_details: str
    response_data: Optional[str] = None
    rejection_reason: Optional[str] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Erasure
# ---------------------------------------------------------------------------


class ErasureIn(BaseModel):
    reason: str = Field(default="user_request", max_length=500)


class ErasureOut(BaseModel):
    status: str
    job_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Privacy policy and breaches
# ---------------------------------------------------------------------------


class PolicyAcceptanceIn(BaseModel):
    policy_version: Optional[str] = None


class PolicyAcceptanceOut(BaseModel):
    user_id: str
    policy_version: str
    accepted_at: datetime
    ip_address: Optional[str] = None

    class Config:
        from_attributes = True


class BreachCreate(BaseModel):
    description: str
    risk_level: BreachRiskLevel
    affected_user_ids: list[str] = Field(default_factory=list)
    data_categories: list[DataCategory] = Field(default_factory=list)


class BreachOut(BaseModel):
    id: str
    description: str
    risk_level: BreachRiskLevel
    affected_user_ids: list[str]
    data_categories: list[DataCategory]
    reported_at: datetime
    status: BreachStatus
    notified_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuditIntegrityReport(BaseModel):
    total_entries: int
    failed_entries: int
    checked_at: datetime


def to_audit_details(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    """Serialize an ORM object through its output schema for the audit trail."""
    return schema.model_validate(obj).model_dump(mode="json")
