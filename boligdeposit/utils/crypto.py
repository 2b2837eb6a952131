import base64
import hashlib

from cryptography.fernet import Fernet


def derive_storage_key(secret: str) -> bytes:
    """Derive a Fernet key from an application secret."""
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def build_fernet(storage_key: str | None, secret_key: str) -> Fernet:
    key = storage_key.encode("utf-8") if storage_key else derive_storage_key(secret_key)
    return Fernet(key)
