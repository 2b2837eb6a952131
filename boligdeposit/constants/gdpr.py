"""
GDPR Constants

Enumerations shared by the consent, processing and request services, and the
fixed mapping from cookie categories to processing purposes.
"""

import enum


class ConsentType(str, enum.Enum):
    """Categories of processing a user may opt in to or out of."""

    ESSENTIAL = "essential"  # Required for service operation
    ANALYTICS = "analytics"
    MARKETING = "marketing"
    FUNCTIONAL = "functional"
    THIRD_PARTY = "third_party"  # MitID, payment gateway, maps


class ProcessingPurpose(str, enum.Enum):
    SERVICE_DELIVERY = "service_delivery"
    FRAUD_PREVENTION = "fraud_prevention"
    LEGAL_COMPLIANCE = "legal_compliance"
    ANALYTICS = "analytics"
    MARKETING = "marketing"
    COMMUNICATION = "communication"


class DataCategory(str, enum.Enum):
    """Categories of personal data handled by the platform."""

    PERSONAL_BASIC = "personal_basic"  # Name, email, phone
    FINANCIAL = "financial"  # Income, bank details, deposits
    SPECIAL_CATEGORY = "special_category"  # CPR numbers
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"  # IP addresses, cookies, device info
    COMMUNICATION = "communication"  # Messages, chat logs


class LawfulBasis(str, enum.Enum):
    """GDPR Article 6 basis for processing."""

    CONTRACT = "contract"  # Lease contracts and escrow
    CONSENT = "consent"  # Marketing and analytics
    LEGAL_OBLIGATION = "legal_obligation"  # Tax and regulatory requirements
    LEGITIMATE_INTEREST = "legitimate_interest"  # Fraud prevention
    NONE = "none"  # Recorded when a category is refused


class RequestType(str, enum.Enum):
    ACCESS = "access"
    RECTIFICATION = "rectification"
    ERASURE = "erasure"
    PORTABILITY = "portability"
    RESTRICTION = "restriction"
    OBJECTION = "objection"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


# Allowed data subject request transitions; completed and rejected are terminal
REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED, RequestStatus.REJECTED},
    RequestStatus.IN_PROGRESS: {RequestStatus.COMPLETED, RequestStatus.REJECTED},
    RequestStatus.COMPLETED: set(),
    RequestStatus.REJECTED: set(),
}


CONSENT_PURPOSES: dict[ConsentType, list[ProcessingPurpose]] = {
    ConsentType.ESSENTIAL: [ProcessingPurpose.SERVICE_DELIVERY, ProcessingPurpose.LEGAL_COMPLIANCE],
    ConsentType.ANALYTICS: [ProcessingPurpose.ANALYTICS],
    ConsentType.MARKETING: [ProcessingPurpose.MARKETING, ProcessingPurpose.COMMUNICATION],
    ConsentType.FUNCTIONAL: [ProcessingPurpose.SERVICE_DELIVERY],
    ConsentType.THIRD_PARTY: [ProcessingPurpose.SERVICE_DELIVERY, ProcessingPurpose.ANALYTICS],
}


def get_processing_purposes(consent_type: ConsentType) -> list[ProcessingPurpose]:
    """Return the processing purposes covered by a cookie category."""
    return list(CONSENT_PURPOSES.get(ConsentType(consent_type), []))


# Audit trail actions
class AuditAction(str, enum.Enum):
    CONSENT_RECORDED = "CONSENT_RECORDED"
    DATA_PROCESSED = "DATA_PROCESSED"
    DATA_SUBJECT_REQUEST = "DATA_SUBJECT_REQUEST"
    DATA_SUBJECT_REQUEST_UPDATED = "DATA_SUBJECT_REQUEST_UPDATED"
    DATA_ACCESS_REQUEST = "DATA_ACCESS_REQUEST"
    DATA_PORTABILITY_REQUEST = "DATA_PORTABILITY_REQUEST"
    DATA_ERASED = "DATA_ERASED"
    DATA_ERASURE_ERROR = "DATA_ERASURE_ERROR"
    ANONYMIZATION_PROCESS = "ANONYMIZATION_PROCESS"
    PRIVACY_POLICY_ACCEPTED = "PRIVACY_POLICY_ACCEPTED"
    DATA_BREACH_RECORDED = "DATA_BREACH_RECORDED"


# Secure storage keys for data held on behalf of other parts of the platform
USER_DATA_KEY = "user_data_{user_id}"
PREFERENCES_KEY = "preferences_{user_id}"
FINANCIAL_DATA_KEY = "financial_data_{user_id}"
COMMUNICATION_KEY = "communication_{user_id}"
DOCUMENTS_KEY = "documents_{user_id}"
CONTRACTS_KEY = "contracts_{user_id}"
COOKIE_CONSENT_KEY = "cookie_consent_{user_id}"

COOKIE_NAME = "gdpr_consent"

# Random id given to a visitor on their first banner submission before login
VISITOR_COOKIE_NAME = "gdpr_visitor"

# Contract status that blocks erasure
ACTIVE_CONTRACT_STATUS = "ACTIVE"


class BreachRiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BreachStatus(str, enum.Enum):
    REPORTED = "reported"
    SUBJECTS_NOTIFIED = "subjects_notified"
