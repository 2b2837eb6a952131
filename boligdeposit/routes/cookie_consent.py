"""
Cookie Consent Routes

Backs the cookie banner shown on first visit. Signed-in users are
recorded under their own user id. A visitor is given a random
``gdpr_visitor`` id on their first submission and recorded under
``anonymous-<id>``; until then only the browser cookie is read.
The ``gdpr_consent`` cookie mirrors the stored decision for fast reads in
the browser.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from boligdeposit.auth import CurrentUser, get_optional_user
from boligdeposit.config import settings
from boligdeposit.constants.gdpr import COOKIE_NAME, VISITOR_COOKIE_NAME, ConsentType
from boligdeposit.deps import get_client_ip, get_gdpr_service
from boligdeposit.schemas.cookie_consent import CookieConsentState, CookieConsentSubmit
from boligdeposit.services.cookie_consent_service import (
    BannerState,
    CookieConsentBanner,
    new_visitor_id,
    visitor_subject_id,
)
from boligdeposit.services.gdpr_service import GDPRCompliance

router = APIRouter(prefix="/cookie-consent", tags=["Cookie Consent"])

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

# Banner copy in display order
CATEGORY_COPY = [
    (
        ConsentType.ESSENTIAL,
        "Nødvendige Cookies",
        "Disse cookies er nødvendige for at hjemmesiden fungerer korrekt. De kan ikke deaktiveres.",
    ),
    (
        ConsentType.ANALYTICS,
        "Analyse Cookies",
        "Hjælper os med at forstå hvordan du bruger hjemmesiden, så vi kan forbedre din oplevelse.",
    ),
    (
        ConsentType.MARKETING,
        "Marketing Cookies",
        "Bruges til at vise dig relevante annoncer og markedsføring baseret på dine interesser.",
    ),
    (
        ConsentType.FUNCTIONAL,
        "Funktionalitets Cookies",
        "Gør det muligt at tilbyde forbedrede funktioner og personalisering, som chatbots og brugerindstillinger.",
    ),
    (
        ConsentType.THIRD_PARTY,
        "Tredjeparts Cookies",
        "Cookies fra eksterne tjenester som MitID integration, betalingsgateway og kortintegrationer.",
    ),
]


def _subject_id(request: Request, user: Optional[CurrentUser]) -> Optional[str]:
    if user:
        return user.id
    return visitor_subject_id(request.cookies.get(VISITOR_COOKIE_NAME))


async def _open_banner(request: Request, user: Optional[CurrentUser], service: GDPRCompliance) -> CookieConsentBanner:
    existing = await service.get_cookie_consent(_subject_id(request, user), request.cookies.get(COOKIE_NAME))
    banner = CookieConsentBanner()
    banner.open(existing)
    return banner


@router.get("", response_model=CookieConsentState)
async def get_cookie_consent(
    request: Request,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    """Current decision, and whether the banner should be shown."""
    banner = await _open_banner(request, user, service)
    return CookieConsentState(state=banner.state.value, choices=banner.choices)


@router.get("/banner", response_class=HTMLResponse)
async def cookie_banner(
    request: Request,
    details: bool = False,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    banner = await _open_banner(request, user, service)
    if details and banner.state == BannerState.VISIBLE_SUMMARY:
        banner.toggle_details()

    return templates.TemplateResponse(
        request,
        "cookie_banner.html",
        {
            "state": banner.state.value,
            "visible": banner.state != BannerState.HIDDEN,
            "detailed": banner.state == BannerState.VISIBLE_DETAILED,
            "choices": {k.value: v for k, v in banner.choices.items()},
            "categories": [(t.value, title, text) for t, title, text in CATEGORY_COPY],
        },
    )


@router.post("", response_model=CookieConsentState)
async def submit_cookie_consent(
    body: CookieConsentSubmit,
    request: Request,
    response: Response,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    service: GDPRCompliance = Depends(get_gdpr_service),
):
    """
    Apply a banner action (accept_all, accept_selected or reject_all).

    Records one consent per category and sets the ``gdpr_consent`` cookie.
    A first-time visitor also gets a ``gdpr_visitor`` id cookie.
    """
    subject_id = _subject_id(request, user)
    visitor_id = None
    if subject_id is None:
        visitor_id = new_visitor_id()
        subject_id = visitor_subject_id(visitor_id)

    banner = CookieConsentBanner()
    banner.open(None)
    choices, cookie_value = await service.submit_cookie_consent(
        banner,
        subject_id,
        body.action,
        body.choices,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )

    max_age = settings.cookie_expiry_days * 24 * 60 * 60
    response.set_cookie(
        COOKIE_NAME,
        cookie_value,
        max_age=max_age,
        path="/",
        secure=True,
        samesite="strict",
    )
    if visitor_id:
        response.set_cookie(
            VISITOR_COOKIE_NAME,
            visitor_id,
            max_age=max_age,
            path="/",
            secure=True,
            httponly=True,
            samesite="strict",
        )
    return CookieConsentState(state=banner.state.value, choices=choices)
