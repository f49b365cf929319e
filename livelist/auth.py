"""Authentication utilities for JWT token validation using Supabase JWKS"""
import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx
from fastapi import Header, HTTPException
from jose import JWTError, jwt

from livelist import config
from livelist.errors import AuthenticationError
from livelist.models.profile import AuthenticatedUser

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_jwks() -> dict:
    """
    Fetch and cache Supabase JWKS (JSON Web Key Set) from public endpoint

    The JWKS endpoint is public and doesn't require authentication.
    This is cached to avoid hitting the endpoint on every request.

    Returns:
        JWKS dictionary containing public keys
    """
    if not config.SUPABASE_URL:
        raise ValueError("SUPABASE_URL not configured")

    jwks_url = f"{config.SUPABASE_URL}/auth/v1/.well-known/jwks.json"

    try:
        logger.info(f"Fetching JWKS from: {jwks_url}")
        response = httpx.get(jwks_url, timeout=10.0)
        response.raise_for_status()
        jwks = response.json()
        logger.info(f"Successfully fetched JWKS with {len(jwks.get('keys', []))} keys")
        return jwks
    except Exception as e:
        logger.error(f"Failed to fetch JWKS from {jwks_url}: {e}")
        raise ValueError(f"Failed to fetch Supabase JWKS: {e}")


def _full_name_from_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    metadata = metadata or {}
    return metadata.get("full_name") or metadata.get("name")


def user_from_claims(claims: Dict[str, Any]) -> AuthenticatedUser:
    """Build the principal from verified token claims"""
    user_id = claims.get("sub")
    email = claims.get("email")
    if not user_id or not email:
        raise AuthenticationError("Invalid token: missing user ID or email")
    return AuthenticatedUser(
        id=user_id,
        email=email.lower(),
        full_name=_full_name_from_metadata(claims.get("user_metadata")),
    )


def user_from_session_user(user: Any) -> AuthenticatedUser:
    """Build the principal from a supabase-py session user object"""
    if user is None or not getattr(user, "id", None) or not getattr(user, "email", None):
        raise AuthenticationError("No signed-in user")
    return AuthenticatedUser(
        id=str(user.id),
        email=user.email.lower(),
        full_name=_full_name_from_metadata(getattr(user, "user_metadata", None)),
    )


def verify_access_token(token: str) -> AuthenticatedUser:
    """
    Verify a Supabase access token against the project's JWKS

    Raises:
        AuthenticationError: token missing, malformed, expired or unsigned
    """
    if not token:
        raise AuthenticationError("Unauthorized")

    try:
        jwks = get_supabase_jwks()
    except ValueError as e:
        raise AuthenticationError("Authentication is not properly configured", cause=e)

    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as e:
        raise AuthenticationError("Invalid authentication token", cause=e)

    kid = unverified_header.get('kid')
    if not kid:
        logger.warning("Token missing 'kid' in header")
        raise AuthenticationError("Invalid token: missing key ID")

    jwk = next((key for key in jwks.get('keys', []) if key.get('kid') == kid), None)
    if not jwk:
        logger.warning(f"No matching key found for kid: {kid}")
        raise AuthenticationError("Invalid token: key not found")

    algorithm = jwk.get('alg', 'RS256')

    try:
        payload = jwt.decode(
            token,
            json.dumps(jwk),
            algorithms=[algorithm],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": False  # Supabase tokens may not have aud
            }
        )
    except jwt.ExpiredSignatureError as e:
        logger.warning("Token has expired")
        raise AuthenticationError("Token has expired", cause=e)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {str(e)}")
        raise AuthenticationError("Invalid session", cause=e)

    return user_from_claims(payload)


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> AuthenticatedUser:
    """FastAPI dependency resolving the Bearer token to a user"""
    if not authorization or not authorization.startswith('Bearer '):
        logger.warning("Missing or malformed Authorization header")
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization[len('Bearer '):].strip()
    try:
        user = verify_access_token(token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)

    logger.info(f"Successfully authenticated user: {user.id}")
    return user
