from fastapi import Request

from boligdeposit.services.gdpr_service import GDPRCompliance


def get_gdpr_service(request: Request) -> GDPRCompliance:
    """The service object built by ``create_app``."""
    return request.app.state.gdpr


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
