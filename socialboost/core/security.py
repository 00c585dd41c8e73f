import logging
from datetime import datetime, timedelta
from jose import jwt
from socialboost.core.config import SECRET_KEY, ALGORITHM

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: timedelta = None):
    """
    Issue a signed JWT.

    Login lives in the auth service; this is kept for service-to-service
    tokens and tests.
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=60))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
