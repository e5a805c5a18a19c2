"""Authentication module using bcrypt credentials and signed JWT bearer tokens.

This module provides:
1. Login against stored account digests
2. Token issuing with a lifetime per credential class (buyer or shop)
3. Stateless token verification and a FastAPI dependency for protecting routes

Tokens are never stored. Validity depends only on the signature and the
expiry, so logging out means the client discards its token.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt
from pydantic import BaseModel

from accounts import AccountManager, hash_password, verify_password
from config import settings_conf
from errors import AuthenticationError

# Configure logging
logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

class AuthError(AuthenticationError):
    """Base exception for authentication errors."""
    pass

class InvalidCredentialsError(AuthError):
    """Raised for an unknown email or a wrong password alike."""
    def __init__(self):
        super().__init__(INVALID_CREDENTIALS)

class MissingTokenError(AuthError):
    """Raised when a protected request carries no bearer credential."""
    def __init__(self):
        super().__init__("Token required")

class InvalidTokenError(AuthError):
    """Raised when a token is malformed, badly signed or expired."""
    pass

class Claims(BaseModel):
    """Verified token payload."""
    sub: str
    email: str
    role: str
    iat: int
    exp: int

    @property
    def account_id(self) -> int:
        return int(self.sub)

@dataclass(frozen=True)
class TokenSigner:
    """Signs and verifies tokens with a secret fixed for the process lifetime."""
    secret: str
    algorithm: str
    buyer_expiry: timedelta
    shop_expiry: timedelta

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> 'TokenSigner':
        secret = settings.get('jwt_secret')
        if not secret:
            logger.warning(
                "No jwt_secret configured, generated a random one. "
                "Tokens will not survive a restart."
            )
            secret = secrets.token_urlsafe(32)
        return cls(
            secret=secret,
            algorithm=settings['jwt_algorithm'],
            buyer_expiry=timedelta(minutes=settings['buyer_token_expiry_minutes']),
            shop_expiry=timedelta(minutes=settings['shop_token_expiry_minutes']),
        )

    def expiry_for(self, role: str) -> timedelta:
        return self.shop_expiry if role == 'seller' else self.buyer_expiry

    def issue(self, account_id: int, email: str, role: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Issue a token for an account.

        Returns:
            Dict containing the token and its expiry timestamp
        """
        now = now or datetime.now(timezone.utc)
        expires_at = now + self.expiry_for(role)
        token = jwt.encode(
            {
                'sub': str(account_id),
                'email': email,
                'role': role,
                'iat': int(now.timestamp()),
                'exp': int(expires_at.timestamp())
            },
            self.secret,
            algorithm=self.algorithm
        )
        return {'token': token, 'expires_at': expires_at}

    def decode(self, token: Optional[str]) -> Claims:
        """Verify a token and return its claims.

        Raises:
            MissingTokenError: If no token was given
            InvalidTokenError: If the signature fails or the token expired
        """
        if not token:
            raise MissingTokenError()
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}")
        try:
            return Claims(**payload)
        except ValueError:
            raise InvalidTokenError("Invalid token: missing claims")

class AuthManager:
    """Issues tokens for valid credentials and verifies presented tokens."""

    def __init__(self, pool=None, token_signer: Optional[TokenSigner] = None) -> None:
        """Initialize auth manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            token_signer: Optional signer, defaults to the process-wide one.
        """
        self.accounts = AccountManager(pool)
        self.signer = token_signer or signer
        self._dummy_hash: Optional[str] = None

    def _timing_dummy(self) -> str:
        # Compared against for unknown emails so both failures cost the same
        if self._dummy_hash is None:
            self._dummy_hash = hash_password(secrets.token_urlsafe(16))
        return self._dummy_hash

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Verify credentials and issue a token.

        Args:
            email: Account email
            password: Plain password

        Returns:
            Dict containing:
                - token: Bearer token for future requests
                - subject_id: Account id
                - role: 'buyer' or 'seller'
                - expires_at: Token expiration timestamp

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong
        """
        account = await self.accounts.get_account_by_email(email)

        if account is None:
            verify_password(password or '', self._timing_dummy())
            logger.warning(f"Login failed for unknown email {email}")
            raise InvalidCredentialsError()

        if not verify_password(password or '', account['password_hash']):
            logger.warning(f"Login failed for {account['email']}")
            raise InvalidCredentialsError()

        issued = self.signer.issue(account['id'], account['email'], account['account_type'])
        return {
            'token': issued['token'],
            'subject_id': account['id'],
            'role': account['account_type'],
            'expires_at': issued['expires_at'].isoformat()
        }

    def verify(self, token: Optional[str]) -> Claims:
        """Verify a token. Pure function of the token, secret and clock."""
        return self.signer.decode(token)

def extract_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an Authorization header value.

    Accepts ``Bearer <token>`` as well as a bare token.
    """
    if not authorization or not authorization.strip():
        return None
    scheme, _, value = authorization.strip().partition(' ')
    if not value:
        return scheme
    if scheme.lower() != 'bearer':
        raise InvalidTokenError(f"Unsupported authorization scheme: {scheme}")
    return value.strip()

# Process-wide signer, built once from settings and never mutated
signer = TokenSigner.from_settings(settings_conf)

# Create global instance
manager = AuthManager()

# FastAPI security scheme. auto_error is off so bare tokens reach extract_token
auth_scheme = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token required"
)

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> Claims:
    """FastAPI dependency for getting the authenticated account.

    The verified claims are also attached to ``request.state.claims``.

    Raises:
        HTTPException: If authentication fails
    """
    try:
        token = credentials.credentials if credentials else extract_token(
            request.headers.get('Authorization')
        )
        claims = manager.verify(token)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": e.kind, "message": str(e)},
            headers={"WWW-Authenticate": "Bearer"}
        )
    request.state.claims = claims
    return claims

# Export public interface
__all__ = [
    'manager',
    'signer',
    'get_current_user',
    'extract_token',
    'AuthManager',
    'TokenSigner',
    'Claims',
    'AuthError',
    'InvalidCredentialsError',
    'MissingTokenError',
    'InvalidTokenError'
]
