import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .models import Customer

logger = logging.getLogger(__name__)

security = HTTPBearer()

CUSTOMER_ROLE = "customer"


class TokenIdentity(BaseModel):
    """Claims carried by an access token issued by the identity provider"""

    sub: str
    roles: list[str] = []


def create_access_token(
    subject: str, roles: list[str], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed access token

    Token issuance normally lives with the identity provider; this is used by
    local tooling and tests.
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode: dict[str, Any] = {"sub": subject, "roles": roles, "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[TokenIdentity]:
    """Verify and decode an access token. Returns None if invalid or expired"""
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if not payload.get("sub"):
        logger.warning("JWT verification failed: token has no subject")
        return None
    return TokenIdentity(sub=payload["sub"], roles=payload.get("roles") or [])


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TokenIdentity:
    identity = verify_access_token(credentials.credentials)
    if identity is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return identity


async def get_current_customer(
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Customer:
    """Resolve the calling customer; only sessions holding the customer role get through"""
    if CUSTOMER_ROLE not in identity.roles:
        logger.warning(f"⚠️ User {identity.sub} without customer role attempted customer endpoint")
        raise HTTPException(status_code=403, detail="Customer access required")

    customer = db.query(Customer).filter(Customer.id == identity.sub).first()
    if not customer:
        # First authenticated customer request provisions the account row
        customer = Customer(id=identity.sub)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        logger.info(f"✅ Provisioned customer record for {identity.sub}")
    return customer
