"""
=====================================================
Voice Lead Agent - Authentication Service
=====================================================
Login and session tokens for business owners using the dashboard
and the business-config API.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import bcrypt
from loguru import logger

from services.database import Database


class AuthService:
    """
    Authentication service for business owners

    Features:
    - Email/password login with bcrypt
    - Opaque session tokens (Bearer header or cookie)
    - Rate limiting for login attempts
    """

    def __init__(
        self,
        database: Database,
        session_expiry_hours: int = 24,
        max_login_attempts: int = 5,
        lockout_minutes: int = 15,
    ):
        self.database = database
        self.session_expiry_hours = session_expiry_hours
        self.max_login_attempts = max_login_attempts
        self.lockout_minutes = lockout_minutes
        self._login_attempts: Dict[str, list] = {}  # IP -> [timestamps]

    # ============================================================
    # PASSWORD HANDLING
    # ============================================================

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt"""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        """Verify a password against its hash"""
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except ValueError:
            # Malformed stored hash
            return False

    # ============================================================
    # RATE LIMITING
    # ============================================================

    def check_rate_limit(self, ip_address: str) -> Tuple[bool, int]:
        """
        Check if IP is rate limited

        Returns:
            (is_allowed, seconds_remaining)
        """
        now = datetime.now()
        cutoff = now - timedelta(minutes=self.lockout_minutes)

        if ip_address in self._login_attempts:
            self._login_attempts[ip_address] = [
                ts for ts in self._login_attempts[ip_address]
                if ts > cutoff
            ]

        attempts = self._login_attempts.get(ip_address, [])

        if len(attempts) >= self.max_login_attempts:
            oldest = min(attempts)
            unlock_time = oldest + timedelta(minutes=self.lockout_minutes)
            remaining = (unlock_time - now).total_seconds()
            return False, max(0, int(remaining))

        return True, 0

    def record_failed_attempt(self, ip_address: str):
        """Record a failed login attempt"""
        self._login_attempts.setdefault(ip_address, []).append(datetime.now())

    def _clear_login_attempts(self, ip_address: str):
        self._login_attempts.pop(ip_address, None)

    # ============================================================
    # LOGIN
    # ============================================================

    async def authenticate_user(self, email: str, password: str, ip_address: str = "") -> Tuple[bool, Optional[Dict], str]:
        """
        Authenticate an owner with email and password

        Returns:
            (success, user_dict, error_message)
        """
        allowed, wait_seconds = self.check_rate_limit(ip_address)
        if not allowed:
            return False, None, f"Too many login attempts. Try again in {wait_seconds} seconds."

        pool = await self.database.get_pool()
        row = await pool.fetchrow(
            """
            SELECT id, email, password_hash, business_id, is_active, is_superuser
            FROM business_users
            WHERE lower(email) = lower($1)
            """,
            email
        )

        if not row:
            self.record_failed_attempt(ip_address)
            return False, None, "Invalid email or password"

        if not row['is_active']:
            return False, None, "Account is disabled"

        if not self.verify_password(password, row['password_hash']):
            self.record_failed_attempt(ip_address)
            return False, None, "Invalid email or password"

        self._clear_login_attempts(ip_address)

        return True, {
            'id': row['id'],
            'email': row['email'],
            'business_id': row['business_id'],
            'is_superuser': row['is_superuser'],
        }, ""

    # ============================================================
    # SESSION MANAGEMENT
    # ============================================================

    @staticmethod
    def generate_session_token() -> str:
        """Generate a secure session token"""
        return secrets.token_urlsafe(32)

    async def create_session(self, user_id: int, ip_address: str = "", user_agent: str = "") -> Tuple[str, datetime]:
        """
        Create a new session for user

        Returns:
            (session token, expiry)
        """
        token = self.generate_session_token()
        expires_at = datetime.now(timezone.utc) + timedelta(hours=self.session_expiry_hours)

        pool = await self.database.get_pool()
        await pool.execute(
            """
            INSERT INTO user_sessions (user_id, session_token, expires_at, ip_address, user_agent)
            VALUES ($1, $2, $3, $4, $5)
            """,
            user_id, token, expires_at, ip_address, user_agent
        )
        await pool.execute(
            "UPDATE business_users SET last_login = NOW() WHERE id = $1",
            user_id
        )

        logger.info(f"Session created for user {user_id}")
        return token, expires_at

    async def validate_session(self, token: str) -> Optional[Dict]:
        """
        Validate a session token

        Returns:
            User dict if valid, None otherwise
        """
        if not token:
            return None

        pool = await self.database.get_pool()
        row = await pool.fetchrow(
            """
            SELECT s.user_id, s.expires_at, u.email, u.business_id, u.is_active, u.is_superuser
            FROM user_sessions s
            JOIN business_users u ON s.user_id = u.id
            WHERE s.session_token = $1
            """,
            token
        )

        if not row:
            return None

        if row['expires_at'] < datetime.now(timezone.utc):
            await pool.execute(
                "DELETE FROM user_sessions WHERE session_token = $1",
                token
            )
            return None

        if not row['is_active']:
            return None

        return {
            'id': row['user_id'],
            'email': row['email'],
            'business_id': row['business_id'],
            'is_superuser': row['is_superuser'],
        }

    async def invalidate_session(self, token: str):
        """Invalidate (logout) a session"""
        pool = await self.database.get_pool()
        await pool.execute(
            "DELETE FROM user_sessions WHERE session_token = $1",
            token
        )
        logger.info("Session invalidated")

    # ============================================================
    # USER MANAGEMENT
    # ============================================================

    async def create_user(self, email: str, password: str, business_id: str, is_superuser: bool = False) -> Tuple[bool, str]:
        """
        Create a new owner account

        Returns:
            (success, error_message)
        """
        pool = await self.database.get_pool()

        existing = await pool.fetchval(
            "SELECT 1 FROM business_users WHERE lower(email) = lower($1)",
            email
        )
        if existing:
            return False, "Email already exists"

        await pool.execute(
            """
            INSERT INTO business_users (email, password_hash, business_id, is_superuser)
            VALUES ($1, $2, $3, $4)
            """,
            email, self.hash_password(password), business_id, is_superuser
        )

        logger.info(f"Owner account created: {email} (business {business_id})")
        return True, ""
