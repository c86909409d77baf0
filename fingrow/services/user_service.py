"""
User service.

Registration (with inviter assignment), the root account and
soft-disable. Users referenced by orders or earnings are never deleted.
"""

import secrets
import string

from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.config.business_constants import (
    INVITE_CODE_MAX_ATTEMPTS,
    INVITE_CODE_SUFFIX_LENGTH,
)
from fingrow.models.user import User
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.base_service import BaseService, transaction
from fingrow.services.core_config import CoreConfig
from fingrow.services.referral.graph import ReferralGraph
from fingrow.utils.exceptions import NotFoundError, PreconditionError


INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits


class UserService(BaseService):
    """User registration and account management."""

    def __init__(
        self,
        session: AsyncSession,
        config: CoreConfig | None = None,
        referral_graph: ReferralGraph | None = None,
    ) -> None:
        """
        Initialize user service.

        Args:
            session: Async database session
            config: Root invite code and referral rules
            referral_graph: Inviter assignment (same session by default)
        """
        super().__init__(session, config)
        self.user_repo = UserRepository(session)
        self.referral_graph = referral_graph or ReferralGraph(session, self.config)

    async def get_user(self, user_id: int) -> User:
        """
        Get user by ID.

        Raises:
            NotFoundError: Unknown user
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    @transaction
    async def register(
        self,
        username: str,
        invite_code: str | None = None,
        is_admin: bool = False,
    ) -> User:
        """
        Register a user and attach them to the referral tree.

        With an invite code the code's owner becomes the inviter (BIC);
        without one the user is attached to the root account (NIC).

        Args:
            username: Unique username
            invite_code: Inviter's invite code, optional
            is_admin: Grant admin role

        Returns:
            Created user

        Raises:
            PreconditionError: Empty or taken username, missing root
            NotFoundError: Unknown invite code
            IntegrityError: Inviter chain would become cyclic
        """
        username = self._clean_username(username)
        if await self.user_repo.get_by_username(username):
            raise PreconditionError(
                f"Username {username!r} is already taken", username=username
            )

        user = await self.user_repo.create(
            username=username,
            invite_code=await self._generate_invite_code(username),
            is_admin=is_admin,
        )
        result = await self.referral_graph.assign_inviter(user.id, invite_code)
        await self.refresh(user)

        self.logger.info(
            "User registered",
            extra={
                "user_id": user.id,
                "username": username,
                "inviter_id": result.inviter_id,
                "assignment": result.assignment.value,
            },
        )
        return user

    @transaction
    async def create_root(
        self, username: str, invite_code: str | None = None
    ) -> User:
        """
        Create the root account NIC registrations attach to.

        Args:
            username: Root username
            invite_code: Root invite code (config.root_invite_code by default)

        Returns:
            Root user

        Raises:
            PreconditionError: A root account already exists
        """
        existing = await self.user_repo.get_root()
        if existing:
            raise PreconditionError(
                f"Root account already exists (user {existing.id})",
                user_id=existing.id,
            )

        code = (invite_code or self.config.root_invite_code).strip().upper()
        if await self.user_repo.get_by_invite_code(code):
            raise PreconditionError(
                f"Invite code {code!r} is already taken", invite_code=code
            )

        user = await self.user_repo.create(
            username=self._clean_username(username),
            invite_code=code,
            is_root=True,
        )
        await self.referral_graph.assign_inviter(user.id)
        await self.refresh(user)

        self.logger.info(
            "Root account created", extra={"user_id": user.id, "invite_code": code}
        )
        return user

    @transaction
    async def deactivate(self, user_id: int) -> User:
        """
        Soft-disable a user.

        Raises:
            NotFoundError: Unknown user
            PreconditionError: The root account cannot be disabled
        """
        user = await self.get_user(user_id)
        if user.is_root:
            raise PreconditionError(
                "Root account cannot be disabled", user_id=user_id
            )

        user.is_active = False
        await self.session.flush()

        self.logger.info("User deactivated", extra={"user_id": user_id})
        return user

    async def _generate_invite_code(self, username: str) -> str:
        prefix = "".join(ch for ch in username.upper() if ch.isalnum())
        for _ in range(INVITE_CODE_MAX_ATTEMPTS):
            suffix = "".join(
                secrets.choice(INVITE_CODE_ALPHABET)
                for _ in range(INVITE_CODE_SUFFIX_LENGTH)
            )
            code = f"{prefix}{suffix}"
            if not await self.user_repo.get_by_invite_code(code):
                return code

        raise PreconditionError(
            f"Could not generate a unique invite code for {username!r}",
            username=username,
        )

    @staticmethod
    def _clean_username(username: str) -> str:
        cleaned = (username or "").strip()
        if not cleaned:
            raise PreconditionError("Username is required")
        return cleaned
