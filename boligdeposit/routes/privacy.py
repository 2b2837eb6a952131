"""
Privacy & GDPR Routes

Endpoints for the signed-in user's own data:
- Consent management
- Processing ledger
- Data subject requests (access, rectification, erasure, ...)
- Data export (right of access and right to data portability)
- Erasure (right to be forgotten)
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status

from boligdeposit.auth import CurrentUser, get_current_user
from boligdeposit.constants.gdpr import ConsentType
from boligdeposit.deps import get_client_ip, get_gdpr_service
from boligdeposit.exceptions import ErasureBlockedError, ErasureFailedError, RequestNotFoundError
from boligdeposit.schemas.gdpr import (
    ConsentCreate,
    ConsentIn,
    ConsentOut,
    ConsentValidity,
    ErasureIn,
    ErasureOut,
    PolicyAcceptanceIn,
    PolicyAcceptanceOut,
    ProcessingCreate,
    ProcessingIn,
    ProcessingOut,
    SubjectRequestCreate,
    SubjectRequestCreated,
    SubjectRequestIn,
    SubjectRequestOut,
)
from boligdeposit.services.erasure_service import ErasureOutcome
from boligdeposit.services.gdpr_service import GDPRCompliance

router = APIRouter(prefix="/privacy", tags=["Privacy & GDPR"])

logger = logging.getLogger(__name__)


# ============== Consent ==============


@router.get("/consents", response_model=list[ConsentOut])
async def list_consents(
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    return await service.get_consents(current_user.id)


@router.post("/consents", response_model=ConsentOut, status_code=status.HTTP_201_CREATED)
async def record_consent(
    consent: ConsentIn,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    """
    Record a consent decision for one category.

    Replaces the previous decision for the same category. Essential consent
    cannot be withdrawn and is stored as granted.
    """
    return await service.record_consent(
        ConsentCreate(
            user_id=current_user.id,
            consent_type=consent.consent_type,
            granted=consent.granted,
            lawful_basis=consent.lawful_basis,
            purposes=consent.purposes,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
    )


@router.get("/consents/{consent_type}/valid", response_model=ConsentValidity)
async def check_consent(
    consent_type: ConsentType,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    valid = await service.has_valid_consent(current_user.id, consent_type)
    return ConsentValidity(consent_type=consent_type, valid=valid)


@router.post("/policy-acceptance", response_model=PolicyAcceptanceOut, status_code=status.HTTP_201_CREATED)
async def accept_privacy_policy(
    acceptance: PolicyAcceptanceIn,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    return await service.record_privacy_policy_acceptance(
        current_user.id, acceptance.policy_version, ip_address=get_client_ip(request)
    )


# ============== Processing ledger ==============


@router.post("/processing", response_model=ProcessingOut, status_code=status.HTTP_201_CREATED)
async def record_processing(
    processing: ProcessingIn,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    return await service.record_data_processing(
        ProcessingCreate(user_id=current_user.id, **processing.model_dump())
    )


@router.get("/processing", response_model=list[ProcessingOut])
async def list_processing(
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    return await service.get_processing_records(current_user.id)


# ============== Data subject requests ==============


@router.post("/requests", response_model=SubjectRequestCreated, status_code=status.HTTP_201_CREATED)
async def submit_request(
    body: SubjectRequestIn,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    """Submit a data subject request. It must be answered within 30 days."""
    request_id = await service.submit_data_subject_request(
        SubjectRequestCreate(user_id=current_user.id, type=body.type, request_details=body.request_details)
    )
    return SubjectRequestCreated(id=request_id)


@router.get("/requests", response_model=list[SubjectRequestOut])
async def list_requests(
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    return await service.get_user_requests(current_user.id)


@router.get("/requests/{request_id}", response_model=SubjectRequestOut)
async def get_request(
    request_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    record = await service.get_request(request_id)
    # Other users' requests read as missing
    if record.user_id != current_user.id and not current_user.is_admin:
        raise RequestNotFoundError(request_id)
    return record


# ============== Export and erasure ==============


@router.get("/export")
async def export_data(
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
) -> dict[str, Any]:
    """Everything held about the caller (GDPR Article 15)."""
    return await service.generate_data_export(current_user.id)


@router.get("/export/portability")
async def export_portable_data(
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
) -> dict[str, Any]:
    """Data the caller provided, in a machine-readable format (GDPR Article 20)."""
    return await service.generate_portability_export(current_user.id)


@router.post("/erase", response_model=ErasureOut)
async def erase_data(
    body: ErasureIn,
    current_user: CurrentUser = Depends(get_current_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    """
    Erase the caller's personal data (GDPR Article 17).

    Refused with 409 while an active lease contract exists. A run that stops
    partway returns 500 and is resumed by the maintenance job.
    """
    result = await service.erase_user_data(current_user.id, body.reason, token=current_user.token)
    if result.status == ErasureOutcome.BLOCKED:
        raise ErasureBlockedError(current_user.id)
    if result.status == ErasureOutcome.FAILED:
        raise ErasureFailedError(result.job_id, result.error)

    logger.info("User %s erased their data (job %s)", current_user.id, result.job_id)
    return ErasureOut(status=result.status.value, job_id=result.job_id)
