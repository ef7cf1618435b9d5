import base64
import json
import logging
import time
from dataclasses import dataclass

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


async def get_google_public_keys():
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys:
        logger.debug("✅ Using cached Google public keys")
        return _cached_keys

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(GOOGLE_CERTS_URL)
            if response.status_code == 200:
                _cached_keys = response.json()
                logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


def _b64decode(segment: str) -> bytes:
    segment_padding = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * segment_padding if segment_padding != 4 else ""))


async def verify_firebase_token(token: str) -> dict:
    """
    Verify Firebase ID token with full cryptographic signature verification.
    Uses Google's public keys to verify the JWT signature.
    """
    global _cached_keys

    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
    except (ValueError, TypeError) as e:
        logger.error(f"❌ Failed to decode token header: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256":
        raise HTTPException(status_code=401, detail="Invalid token algorithm")
    if not kid:
        raise HTTPException(status_code=401, detail="Token missing key ID")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, invalidating cache and retrying")
        _cached_keys = None
        public_keys = await get_google_public_keys()
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())

    try:
        cert.public_key().verify(
            _b64decode(signature_b64),
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        payload = json.loads(_b64decode(payload_b64))
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    if payload.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if payload.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if payload.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    # Allow 60 seconds clock skew
    if payload.get("iat", 0) > now + 60:
        logger.warning("⚠️ Token issued in the future")
        raise HTTPException(status_code=401, detail="Invalid token")

    logger.debug(f"✅ Token verified for user: {payload.get('email')}")
    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token, creating a customer profile on first sight"""
    decoded_token = await verify_firebase_token(credentials.credentials)

    # Firebase ID tokens use 'sub' as the user ID claim
    firebase_uid = decoded_token.get("sub") or decoded_token.get("user_id")
    if not firebase_uid:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    email = decoded_token.get("email")
    name = decoded_token.get("name")

    try:
        user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
        if user:
            return user

        # Email registered under a different Firebase UID, e.g. password sign-up then Google auth
        if email:
            existing_user = db.query(User).filter(User.email == email).first()
            if existing_user:
                logger.info(
                    f"🔄 Migrating user {email} from Firebase UID {existing_user.firebase_uid} to {firebase_uid}"
                )
                existing_user.firebase_uid = firebase_uid
                if name and not existing_user.full_name:
                    existing_user.full_name = name
                db.commit()
                db.refresh(existing_user)
                return existing_user

        logger.info(f"🆕 Creating new user: {email}")
        user = User(
            firebase_uid=firebase_uid,
            email=email or f"{firebase_uid}@users.invalid",
            full_name=name,
            role="customer",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to resolve user {firebase_uid}: {str(e)}")
        raise HTTPException(status_code=503, detail="Authentication store unavailable") from e


@dataclass(frozen=True)
class RequestContext:
    """Per-request identity with the role resolved once from the user's profile"""

    user: User
    role: str


async def get_request_context(user: User = Depends(get_current_user)) -> RequestContext:
    return RequestContext(user=user, role=user.role or "customer")


def require_role(*roles: str):
    """
    Create a dependency that only admits the given roles.

    Example usage:
        @router.patch("/admin/bookings/{booking_id}/status")
        async def update_status(ctx: RequestContext = Depends(require_role("admin"))):
            ...
    """

    async def role_guard(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.role not in roles:
            logger.warning(f"⚠️ User {ctx.user.id} with role {ctx.role} denied; needs {roles}")
            raise HTTPException(status_code=403, detail="You do not have access to this resource")
        return ctx

    return role_guard
