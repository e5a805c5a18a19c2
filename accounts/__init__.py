"""Accounts module for buyer and shop credentials.

This module provides:
1. Registration with a salted bcrypt digest per account
2. Lookup by id or by email
3. Partial profile updates and unconditional deletion
"""

import logging
from typing import Dict, Any, Optional

import bcrypt
from asyncpg.pool import Pool
from asyncpg.exceptions import UniqueViolationError
from pydantic import EmailStr, TypeAdapter, ValidationError as PydanticValidationError

from config import settings_conf
from database import get_pool
from database.exceptions import STORAGE_ERRORS
from errors import ConflictError, NotFoundError, ValidationError, TransactionError

logger = logging.getLogger(__name__)

ACCOUNT_TYPES = ('buyer', 'seller')
MIN_PASSWORD_LENGTH = 5
MIN_USERNAME_LENGTH = 3

_email_adapter = TypeAdapter(EmailStr)

# Columns a caller may set at registration or through update_account
PROFILE_FIELDS = (
    'username',
    'name',
    'shop_name',
    'mobile_number',
    'date_of_birth',
    'country',
    'security_question',
    'security_answer',
    'street',
    'city',
    'state',
    'zipcode',
    'shipping_country',
)

# Never returned outside this module
PRIVATE_FIELDS = ('password_hash', 'security_answer')

class AccountExistsError(ConflictError):
    """Raised when registering an email that already has an account."""
    pass

class AccountNotFoundError(NotFoundError):
    """Raised when an account id or email does not resolve."""
    pass

def normalize_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()

def validate_email(email: Optional[str]) -> str:
    """Check an address is well formed and return it normalized.

    Raises:
        ValidationError: If the address is malformed
    """
    try:
        return normalize_email(_email_adapter.validate_python(normalize_email(email)))
    except PydanticValidationError:
        raise ValidationError('email', "A valid email is required")

def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Return a bcrypt digest with a fresh random salt."""
    salt = bcrypt.gensalt(rounds=rounds or settings_conf['bcrypt_rounds'])
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of a password against a stored digest."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed digest in storage
        logger.error("Stored password digest is malformed")
        return False

def public_account(row) -> Dict[str, Any]:
    account = dict(row)
    for field in PRIVATE_FIELDS:
        account.pop(field, None)
    return account

class AccountManager:
    """Manages account records."""

    def __init__(self, pool: Optional[Pool] = None) -> None:
        """Initialize account manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure database pool is available."""
        if not self.pool:
            self.pool = await get_pool()

    async def register(
        self,
        email: str,
        password: str,
        account_type: str = 'buyer',
        **profile: Any
    ) -> Dict[str, Any]:
        """Create a new account.

        Args:
            email: Unique login email
            password: Plain password, stored only as a bcrypt digest
            account_type: 'buyer' or 'seller'
            **profile: Any of PROFILE_FIELDS

        Returns:
            The created account without its digest

        Raises:
            ValidationError: If email, password, username or account type is invalid
            AccountExistsError: If the email is already registered
        """
        email = validate_email(email)
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                'password',
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(
                'account_type',
                f"account_type must be one of {', '.join(ACCOUNT_TYPES)}"
            )
        unknown = set(profile) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], f"Unknown account field: {sorted(unknown)[0]}")
        username = (profile.get('username') or '').strip()
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                'username',
                f"Username must be at least {MIN_USERNAME_LENGTH} characters"
            )
        profile['username'] = username

        fields = {k: v for k, v in profile.items() if v is not None}
        columns = ['email', 'password_hash', 'account_type', *fields]
        values = [email, hash_password(password), account_type, *fields.values()]
        placeholders = ', '.join(f'${i}' for i in range(1, len(values) + 1))

        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    existing = await conn.fetchval(
                        'SELECT id FROM accounts WHERE email = $1',
                        email
                    )
                    if existing is not None:
                        raise AccountExistsError(f"Account {email} already exists")

                    row = await conn.fetchrow(
                        f'''
                        INSERT INTO accounts ({', '.join(columns)})
                        VALUES ({placeholders})
                        RETURNING *
                        ''',
                        *values
                    )
        except UniqueViolationError:
            # Lost a race with a concurrent registration
            raise AccountExistsError(f"Account {email} already exists")
        except STORAGE_ERRORS as e:
            logger.error(f"Database error registering {email}: {e}")
            raise TransactionError(f"Failed to register account: {e}") from e

        logger.info(f"Registered {account_type} account {row['id']}")
        return public_account(row)

    async def get_account(self, account_id: int) -> Dict[str, Any]:
        """Get an account by id.

        Raises:
            AccountNotFoundError: If no account has this id
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT * FROM accounts WHERE id = $1',
                account_id
            )
        if not row:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return public_account(row)

    async def get_account_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get the full account row, digest included, or None."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                'SELECT * FROM accounts WHERE email = $1',
                normalize_email(email)
            )
        return dict(row) if row else None

    async def update_account(self, account_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update of profile and shipping attributes.

        Raises:
            ValidationError: If a field is not updatable
            AccountNotFoundError: If no account has this id
        """
        for field in updates:
            if field not in PROFILE_FIELDS:
                raise ValidationError(field, f"Field {field} cannot be updated")
        if 'username' in updates and len((updates['username'] or '').strip()) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                'username',
                f"Username must be at least {MIN_USERNAME_LENGTH} characters"
            )
        if not updates:
            return await self.get_account(account_id)

        assignments = ', '.join(
            f"{field} = ${i}" for i, field in enumerate(updates, start=2)
        )

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'''
                UPDATE accounts
                SET {assignments}, updated_at = now()
                WHERE id = $1
                RETURNING *
                ''',
                account_id,
                *updates.values()
            )
        if not row:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return public_account(row)

    async def delete_account(self, account_id: int) -> None:
        """Delete an account. Orders referencing it are left as they are.

        Raises:
            AccountNotFoundError: If no account has this id
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                'DELETE FROM accounts WHERE id = $1',
                account_id
            )
        if result == 'DELETE 0':
            raise AccountNotFoundError(f"Account {account_id} not found")
        logger.info(f"Deleted account {account_id}")

# Export public interface
__all__ = [
    'AccountManager',
    'AccountExistsError',
    'AccountNotFoundError',
    'hash_password',
    'verify_password',
    'normalize_email',
    'validate_email',
    'ACCOUNT_TYPES'
]
