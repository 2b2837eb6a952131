from .anonymized_record import AnonymizedRecord
from .audit_log import AuditLogEntry
from .consent_record import ConsentRecord
from .data_breach import DataBreach
from .data_subject_request import DataSubjectRequest
from .erasure_job import ErasureJob, ErasureStatus, ErasureStep
from .privacy_policy import PrivacyPolicyAcceptance
from .processing_record import DataProcessingRecord
from .secure_item import SecureItem

__all__ = [
    "AnonymizedRecord",
    "AuditLogEntry",
    "ConsentRecord",
    "DataBreach",
    "DataProcessingRecord",
    "DataSubjectRequest",
    "ErasureJob",
    "ErasureStatus",
    "ErasureStep",
    "PrivacyPolicyAcceptance",
    "SecureItem",
]
