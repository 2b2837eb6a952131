"""
Tests for the cookie consent banner and its persistence
"""

import base64
import json

import pytest

from boligdeposit.constants.gdpr import ConsentType, LawfulBasis, ProcessingPurpose
from boligdeposit.exceptions import InvalidStatusTransitionError, StorageError
from boligdeposit.models.consent_record import ConsentRecord
from boligdeposit.services.cookie_consent_service import (
    BannerState,
    CookieConsentBanner,
    build_consent_requests,
    decode_consent_string,
    encode_consent_string,
    new_visitor_id,
    visitor_subject_id,
)


@pytest.fixture
def banner() -> CookieConsentBanner:
    banner = CookieConsentBanner()
    banner.open(None)
    return banner


class TestBannerStates:
    def test_first_visit_shows_summary(self, banner):
        assert banner.state == BannerState.VISIBLE_SUMMARY
        assert banner.choices[ConsentType.ESSENTIAL] is True
        assert banner.choices[ConsentType.ANALYTICS] is False

    def test_existing_decision_keeps_banner_hidden(self):
        banner = CookieConsentBanner()
        banner.open({"analytics": True, "marketing": False})

        assert banner.state == BannerState.HIDDEN
        assert banner.choices[ConsentType.ANALYTICS] is True

    def test_toggle_details(self, banner):
        assert banner.toggle_details() == BannerState.VISIBLE_DETAILED
        assert banner.toggle_details() == BannerState.VISIBLE_SUMMARY

    def test_submit_then_close(self, banner):
        banner.accept_all()
        assert banner.state == BannerState.SUBMITTED

        assert banner.close() == BannerState.HIDDEN

    def test_failed_save_returns_to_visible_state(self, banner):
        banner.toggle_details()
        banner.reject_all()

        assert banner.fail() == BannerState.VISIBLE_DETAILED
        # The user can retry
        banner.accept_all()
        assert banner.state == BannerState.SUBMITTED

    def test_cannot_submit_hidden_banner(self):
        banner = CookieConsentBanner()
        with pytest.raises(InvalidStatusTransitionError):
            banner.accept_all()

    def test_cannot_close_before_submit(self, banner):
        with pytest.raises(InvalidStatusTransitionError):
            banner.close()


class TestBannerChoices:
    def test_accept_all(self, banner):
        assert all(banner.accept_all().values())

    def test_reject_all_keeps_essential(self, banner):
        choices = banner.reject_all()
        assert choices[ConsentType.ESSENTIAL] is True
        assert not any(v for k, v in choices.items() if k != ConsentType.ESSENTIAL)

    def test_accept_selected(self, banner):
        banner.set_choice(ConsentType.ANALYTICS, True)
        banner.set_choice(ConsentType.ESSENTIAL, False)

        choices = banner.accept_selected()
        assert choices[ConsentType.ANALYTICS] is True
        assert choices[ConsentType.MARKETING] is False
        assert choices[ConsentType.ESSENTIAL] is True

    def test_apply_unknown_action(self, banner):
        with pytest.raises(ValueError):
            banner.apply("accept_some")


class TestConsentRequests:
    def test_categories_map_to_purposes(self):
        requests = {r.consent_type: r for r in build_consent_requests("anonymous", {"marketing": True})}

        assert requests[ConsentType.ESSENTIAL].purposes == [
            ProcessingPurpose.SERVICE_DELIVERY,
            ProcessingPurpose.LEGAL_COMPLIANCE,
        ]
        assert requests[ConsentType.ANALYTICS].purposes == [ProcessingPurpose.ANALYTICS]
        assert requests[ConsentType.MARKETING].purposes == [
            ProcessingPurpose.MARKETING,
            ProcessingPurpose.COMMUNICATION,
        ]
        assert requests[ConsentType.FUNCTIONAL].purposes == [ProcessingPurpose.SERVICE_DELIVERY]
        assert requests[ConsentType.THIRD_PARTY].purposes == [
            ProcessingPurpose.SERVICE_DELIVERY,
            ProcessingPurpose.ANALYTICS,
        ]

    def test_lawful_basis_follows_choice(self):
        requests = {r.consent_type: r for r in build_consent_requests("u1", {"marketing": True})}

        assert requests[ConsentType.MARKETING].lawful_basis == LawfulBasis.CONSENT
        assert requests[ConsentType.ANALYTICS].lawful_basis == LawfulBasis.NONE
        assert requests[ConsentType.ANALYTICS].granted is False


class TestConsentString:
    def test_cookie_value_is_base64_json(self):
        value = encode_consent_string({ConsentType.ESSENTIAL: True, ConsentType.ANALYTICS: False})
        assert json.loads(base64.b64decode(value)) == {"analytics": False, "essential": True}

    def test_decode_reads_back(self):
        value = encode_consent_string({ConsentType.ESSENTIAL: True, ConsentType.MARKETING: True})
        choices = decode_consent_string(value)

        assert choices[ConsentType.MARKETING] is True
        assert choices[ConsentType.FUNCTIONAL] is False

    @pytest.mark.parametrize("value", [None, "", "not-base64!!", base64.b64encode(b"[1, 2]").decode()])
    def test_unreadable_values_mean_no_decision(self, value):
        assert decode_consent_string(value) is None


class TestVisitorIds:
    def test_each_visitor_gets_own_subject(self):
        first = visitor_subject_id(new_visitor_id())
        second = visitor_subject_id(new_visitor_id())

        assert first.startswith("anonymous-")
        assert first != second

    @pytest.mark.parametrize("value", [None, "", "anonymous", "../u1"])
    def test_missing_or_malformed_visitor_id(self, value):
        assert visitor_subject_id(value) is None


class TestSubmitCookieConsent:
    @pytest.mark.asyncio
    async def test_records_every_category_and_caches_choices(self, gdpr, banner):
        visitor = visitor_subject_id(new_visitor_id())

        choices, cookie_value = await gdpr.submit_cookie_consent(
            banner, visitor, "accept_selected", {ConsentType.ANALYTICS: True}
        )

        assert banner.state == BannerState.HIDDEN
        assert decode_consent_string(cookie_value) == choices
        consents = await gdpr.get_consents(visitor)
        assert len(consents) == len(ConsentType)
        assert await gdpr.has_valid_consent(visitor, ConsentType.ANALYTICS) is True
        assert await gdpr.has_valid_consent(visitor, ConsentType.MARKETING) is False
        assert await gdpr.get_cookie_consent(visitor) == choices

    @pytest.mark.asyncio
    async def test_visitor_without_id_reads_only_cookie(self, gdpr, banner):
        await gdpr.submit_cookie_consent(banner, visitor_subject_id(new_visitor_id()), "accept_all")

        assert await gdpr.get_cookie_consent(None) is None

        cookie_value = encode_consent_string({ConsentType.ANALYTICS: True})
        choices = await gdpr.get_cookie_consent(None, cookie_value)
        assert choices[ConsentType.ANALYTICS] is True
        assert choices[ConsentType.MARKETING] is False

    @pytest.mark.asyncio
    async def test_visitors_do_not_overwrite_each_other(self, gdpr):
        first = visitor_subject_id(new_visitor_id())
        second = visitor_subject_id(new_visitor_id())
        for subject, action in ((first, "accept_all"), (second, "reject_all")):
            banner = CookieConsentBanner()
            banner.open(None)
            await gdpr.submit_cookie_consent(banner, subject, action)

        assert await gdpr.has_valid_consent(first, ConsentType.MARKETING) is True
        assert await gdpr.has_valid_consent(second, ConsentType.MARKETING) is False

    @pytest.mark.asyncio
    async def test_signed_in_user_falls_back_to_consent_records(self, gdpr, clock, banner):
        await gdpr.submit_cookie_consent(banner, "u1", "accept_all")
        clock.advance(minutes=6)

        choices = await gdpr.get_cookie_consent("u1")
        assert choices[ConsentType.MARKETING] is True

    @pytest.mark.asyncio
    async def test_expired_consent_asks_again(self, gdpr, clock, banner):
        await gdpr.submit_cookie_consent(banner, "u9", "accept_all")
        clock.advance(days=400)

        existing = await gdpr.get_cookie_consent("u9")

        assert existing is None
        next_visit = CookieConsentBanner()
        assert next_visit.open(existing) == BannerState.VISIBLE_SUMMARY

    @pytest.mark.asyncio
    async def test_consent_read_until_expiry(self, gdpr, clock, banner):
        await gdpr.submit_cookie_consent(banner, "u9", "accept_all")
        clock.advance(days=365)

        assert (await gdpr.get_cookie_consent("u9"))[ConsentType.ANALYTICS] is True

    @pytest.mark.asyncio
    async def test_failed_save_keeps_banner_visible(self, gdpr, engine, banner):
        async with engine.begin() as conn:
            await conn.run_sync(ConsentRecord.__table__.drop)

        with pytest.raises(StorageError):
            await gdpr.submit_cookie_consent(banner, "u1", "reject_all")

        assert banner.state == BannerState.VISIBLE_SUMMARY
