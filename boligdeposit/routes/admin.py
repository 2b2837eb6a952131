"""
Admin Routes

Data protection officer endpoints: request handling, breach register,
erasure recovery and audit integrity. All routes require the admin role.
"""

import logging

from fastapi import APIRouter, Depends, status

from boligdeposit.auth import require_admin
from boligdeposit.deps import get_gdpr_service
from boligdeposit.schemas.gdpr import (
    AuditIntegrityReport,
    BreachCreate,
    BreachOut,
    ErasureOut,
    SubjectRequestOut,
    SubjectRequestUpdate,
)
from boligdeposit.services.gdpr_service import GDPRCompliance

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)


@router.get("/requests/overdue", response_model=list[SubjectRequestOut])
async def list_overdue_requests(service: GDPRCompliance = Depends(get_gdpr_service)):
    """Open requests past their 30-day deadline, oldest deadline first."""
    return await service.get_overdue_requests()


@router.patch("/requests/{request_id}", response_model=SubjectRequestOut)
async def update_request(
    request_id: str,
    update: SubjectRequestUpdate,
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    return await service.update_request_status(request_id, update)


@router.post("/breaches", response_model=BreachOut, status_code=status.HTTP_201_CREATED)
async def record_breach(breach: BreachCreate, service: GDPRCompliance = Depends(get_gdpr_service)):
    return await service.record_data_breach(breach)


@router.post("/erasures/resume", response_model=list[ErasureOut])
async def resume_erasures(service: GDPRCompliance = Depends(get_gdpr_service)):
    results = await service.resume_erasures()
    return [ErasureOut(status=result.status.value, job_id=result.job_id) for result in results]


@router.get("/audit/integrity", response_model=AuditIntegrityReport)
async def audit_integrity(service: GDPRCompliance = Depends(get_gdpr_service)):
    return await service.check_audit_integrity()
