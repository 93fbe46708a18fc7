"""Authentication service - handles login/logout and session management."""
import logging

from ...infrastructure.repositories import AsyncSessionRepository, AsyncUserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations.

    Responsibilities:
    - User authentication
    - Session management
    """

    def __init__(
        self,
        user_repository: AsyncUserRepository,
        session_repository: AsyncSessionRepository
    ):
        self.user_repo = user_repository
        self.session_repo = session_repository

    async def login(self, username: str, password: str, expires_hours: int = 24 * 7) -> tuple[dict, str] | None:
        """Authenticate and open a session.

        Returns:
            (user dict, session id), or None if the credentials are wrong
        """
        user = await self.user_repo.authenticate(username, password)
        if not user:
            logger.info("Failed login for %r", username)
            return None
        session_id = await self.session_repo.create(user["id"], expires_hours)
        return user, session_id

    async def get_session(self, session_id: str) -> dict | None:
        """Get valid session by ID.

        Args:
            session_id: Session ID

        Returns:
            Session dict if valid, None otherwise
        """
        return await self.session_repo.get_valid(session_id)

    async def logout(self, session_id: str) -> bool:
        return await self.session_repo.delete(session_id)
