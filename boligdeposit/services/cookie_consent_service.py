"""
Cookie consent banner.

``CookieConsentBanner`` holds the banner's state and the user's current
category choices. It knows nothing about storage: the caller persists the
choices returned by a submit action and then either closes the banner or
reports the failure, which puts it back in the state it was submitted from.
"""

import base64
import binascii
import enum
import json
import logging
import uuid
from typing import Any, Optional

from boligdeposit.constants.auth import ANONYMOUS_USER_ID
from boligdeposit.constants.gdpr import ConsentType, LawfulBasis, get_processing_purposes
from boligdeposit.exceptions import InvalidStatusTransitionError
from boligdeposit.schemas.gdpr import ConsentCreate

logger = logging.getLogger(__name__)


class BannerState(str, enum.Enum):
    HIDDEN = "hidden"
    VISIBLE_SUMMARY = "visible_summary"
    VISIBLE_DETAILED = "visible_detailed"
    SUBMITTED = "submitted"


VISIBLE_STATES = (BannerState.VISIBLE_SUMMARY, BannerState.VISIBLE_DETAILED)


def default_choices() -> dict[ConsentType, bool]:
    """Essential only; every optional category starts refused."""
    return {consent_type: consent_type == ConsentType.ESSENTIAL for consent_type in ConsentType}


def all_choices(granted: bool) -> dict[ConsentType, bool]:
    return {consent_type: granted or consent_type == ConsentType.ESSENTIAL for consent_type in ConsentType}


class CookieConsentBanner:
    def __init__(self):
        self.state = BannerState.HIDDEN
        self.choices = default_choices()
        self._submitted_from: Optional[BannerState] = None

    def _require(self, *allowed: BannerState, target: BannerState) -> None:
        if self.state not in allowed:
            raise InvalidStatusTransitionError(self.state.value, target.value, resource_type="CookieConsentBanner")

    def open(self, existing: Optional[dict[Any, bool]] = None) -> BannerState:
        """Show the banner unless a previous decision exists, in which case load it."""
        self._require(BannerState.HIDDEN, target=BannerState.VISIBLE_SUMMARY)
        if existing:
            self.choices = normalize_choices(existing)
            self.state = BannerState.HIDDEN
        else:
            self.state = BannerState.VISIBLE_SUMMARY
        return self.state

    def toggle_details(self) -> BannerState:
        self._require(*VISIBLE_STATES, target=BannerState.VISIBLE_DETAILED)
        if self.state == BannerState.VISIBLE_SUMMARY:
            self.state = BannerState.VISIBLE_DETAILED
        else:
            self.state = BannerState.VISIBLE_SUMMARY
        return self.state

    def set_choice(self, consent_type: ConsentType, granted: bool) -> None:
        consent_type = ConsentType(consent_type)
        if consent_type == ConsentType.ESSENTIAL:
            return
        self.choices[consent_type] = bool(granted)

    def _submit(self, choices: dict[ConsentType, bool]) -> dict[ConsentType, bool]:
        self._require(*VISIBLE_STATES, target=BannerState.SUBMITTED)
        self._submitted_from = self.state
        self.choices = normalize_choices(choices)
        self.state = BannerState.SUBMITTED
        return dict(self.choices)

    def accept_all(self) -> dict[ConsentType, bool]:
        return self._submit(all_choices(True))

    def accept_selected(self) -> dict[ConsentType, bool]:
        return self._submit(self.choices)

    def reject_all(self) -> dict[ConsentType, bool]:
        return self._submit(all_choices(False))

    def close(self) -> BannerState:
        """Hide the banner once the submitted choices are persisted."""
        self._require(BannerState.SUBMITTED, target=BannerState.HIDDEN)
        self.state = BannerState.HIDDEN
        self._submitted_from = None
        return self.state

    def fail(self) -> BannerState:
        """Persistence failed: return to the visible state so the user can retry."""
        self._require(BannerState.SUBMITTED, target=BannerState.VISIBLE_SUMMARY)
        self.state = self._submitted_from or BannerState.VISIBLE_SUMMARY
        self._submitted_from = None
        return self.state

    def apply(self, action: str, choices: Optional[dict[Any, bool]] = None) -> dict[ConsentType, bool]:
        """Run a submit action by name, applying ``choices`` first for accept_selected."""
        if action == "accept_all":
            return self.accept_all()
        if action == "reject_all":
            return self.reject_all()
        if action == "accept_selected":
            for consent_type, granted in (choices or {}).items():
                self.set_choice(consent_type, granted)
            return self.accept_selected()
        raise ValueError(f"Unknown cookie consent action: {action}")


def normalize_choices(choices: dict[Any, bool]) -> dict[ConsentType, bool]:
    """Fill missing categories as refused and force essential on; unknown keys are dropped."""
    normalized = default_choices()
    for key, granted in choices.items():
        try:
            consent_type = ConsentType(key)
        except ValueError:
            logger.debug("cookie consent: ignoring unknown category %r", key)
            continue
        if consent_type != ConsentType.ESSENTIAL:
            normalized[consent_type] = bool(granted)
    return normalized


def build_consent_requests(
    user_id: str,
    choices: dict[ConsentType, bool],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    consent_string: Optional[str] = None,
) -> list[ConsentCreate]:
    """One consent record per category, with purposes from the fixed category table."""
    return [
        ConsentCreate(
            user_id=user_id,
            consent_type=consent_type,
            granted=granted,
            lawful_basis=LawfulBasis.CONSENT if granted else LawfulBasis.NONE,
            purposes=get_processing_purposes(consent_type),
            ip_address=ip_address,
            user_agent=user_agent,
            consent_string=consent_string,
        )
        for consent_type, granted in normalize_choices(choices).items()
    ]


def encode_consent_string(choices: dict[ConsentType, bool]) -> str:
    payload = {ConsentType(k).value: bool(v) for k, v in choices.items()}
    return base64.b64encode(json.dumps(payload, sort_keys=True).encode("utf-8")).decode("ascii")


def decode_consent_string(value: Optional[str]) -> Optional[dict[ConsentType, bool]]:
    """Decode a cookie value; anything unreadable counts as no decision."""
    if not value:
        return None
    try:
        payload = json.loads(base64.b64decode(value.encode("ascii"), validate=True))
    except (binascii.Error, UnicodeError, ValueError):
        logger.debug("cookie consent: unreadable cookie value")
        return None
    if not isinstance(payload, dict):
        return None
    return normalize_choices(payload)


def new_visitor_id() -> str:
    return uuid.uuid4().hex


def visitor_subject_id(visitor_id: Optional[str]) -> Optional[str]:
    """
    User id under which a visitor's consent is kept before login.

    Each visitor gets their own id so one visitor's choices are never read
    back for another. A missing or malformed visitor cookie gives None.
    """
    if not visitor_id:
        return None
    try:
        parsed = uuid.UUID(visitor_id)
    except ValueError:
        return None
    return f"{ANONYMOUS_USER_ID}-{parsed.hex}"
