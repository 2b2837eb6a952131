"""
Authentication Constants

Configuration constants for bearer-token verification.
"""

import logging

from decouple import config

logger = logging.getLogger(__name__)

# JWT Configuration
SECRET_KEY = config("SECRET_KEY", default="change-me")
if SECRET_KEY == "change-me":
    logger.warning("Using default SECRET_KEY. This is insecure and should be changed in production!")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=30, cast=int)

# Role claim granting access to the admin routes
ADMIN_ROLE = "admin"

# Prefix of the per-visitor user id recorded for consent given before login
ANONYMOUS_USER_ID = "anonymous"

# User id recorded for scheduled/system actions in the audit trail
SYSTEM_USER_ID = "SYSTEM"
