"""
Referral graph.

Owns the single inviter pointer of every user: attaches new users to
the tree and walks ancestor chains for commission distribution.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.models.enums import InviterAssignment
from fingrow.models.user import User
from fingrow.repositories.referral_repository import ReferralRepository
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.base_service import BaseService
from fingrow.services.core_config import CoreConfig
from fingrow.utils.exceptions import (
    ConflictError,
    IntegrityError,
    NotFoundError,
    PreconditionError,
)
from fingrow.utils.key_guard import KeyGuard


# Serializes inviter assignment per new user inside this process
registration_guard = KeyGuard("user")


@dataclass(frozen=True)
class Ancestor:
    """An inviter-chain member; level 1 is the direct inviter."""

    user_id: int
    level: int


@dataclass(frozen=True)
class InviterAssignmentResult:
    """Outcome of attaching a user to the tree."""

    user_id: int
    inviter_id: int | None
    assignment: InviterAssignment
    levels_created: int


class ReferralGraph(BaseService):
    """Inviter-pointer tree: ancestor walks and one-time inviter assignment."""

    def __init__(
        self,
        session: AsyncSession,
        config: CoreConfig | None = None,
        guard: KeyGuard | None = None,
    ) -> None:
        """
        Initialize referral graph.

        Args:
            session: Async database session
            config: Referral depth, rate table and root invite code
            guard: Per-user write guard (shared module guard by default)
        """
        super().__init__(session, config)
        self.guard = guard or registration_guard
        self.user_repo = UserRepository(session)
        self.referral_repo = ReferralRepository(session)

    async def ascend(
        self, user_id: int, max_depth: int | None = None
    ) -> list[Ancestor]:
        """
        Walk inviter pointers upwards from a user.

        Stops at the root (no inviter) or after ``max_depth`` ancestors.
        Every id met is remembered; meeting one twice means the graph
        holds a cycle and the walk is aborted.

        Args:
            user_id: Starting user (not included in the result)
            max_depth: Max ancestors returned; None walks to the root

        Returns:
            Ancestors nearest first, each exactly once

        Raises:
            NotFoundError: If the starting user does not exist
            IntegrityError: If a cycle is detected
        """
        link = await self.user_repo.get_inviter_link(user_id)
        if link is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        visited = {user_id}
        chain: list[Ancestor] = []
        current = link[1]
        level = 1

        while current is not None and (max_depth is None or level <= max_depth):
            if current in visited:
                self.logger.warning(
                    "Referral cycle detected",
                    extra={
                        "user_id": user_id,
                        "repeated_id": current,
                        "chain_ids": [a.user_id for a in chain],
                    },
                )
                raise IntegrityError(
                    f"Referral cycle detected above user {user_id} "
                    f"at user {current}",
                    user_id=user_id,
                    repeated_id=current,
                )

            visited.add(current)
            chain.append(Ancestor(user_id=current, level=level))

            link = await self.user_repo.get_inviter_link(current)
            if link is None:
                self.logger.warning(
                    "Inviter pointer references missing user",
                    extra={"user_id": user_id, "missing_id": current},
                )
                break
            current = link[1]
            level += 1

        self.logger.debug(
            "Referral chain retrieved",
            extra={
                "user_id": user_id,
                "depth": max_depth,
                "chain_length": len(chain),
            },
        )
        return chain

    async def assign_inviter(
        self, new_user_id: int, invite_code: str | None = None
    ) -> InviterAssignmentResult:
        """
        Attach a user to the tree, exactly once.

        With an invite code the code owner becomes the inviter (BIC).
        Without one the root account is used (NIC), so every user has a
        path to the root. The root itself gets no inviter. Referral rows
        are created for each ancestor up to the configured depth.

        Flushes only; the caller commits.

        Args:
            new_user_id: User being attached
            invite_code: Inviter's invite code, if any

        Returns:
            InviterAssignmentResult

        Raises:
            NotFoundError: Unknown user or invite code
            PreconditionError: Inviter already assigned, inactive inviter
                or missing root account
            IntegrityError: Self-invite or an inviter chain containing the user
            ConflictError: Another writer assigned the inviter concurrently
        """
        with self.guard.hold(new_user_id):
            user = await self.user_repo.get_by_id(new_user_id)
            if not user:
                raise NotFoundError(
                    f"User {new_user_id} not found", user_id=new_user_id
                )
            if user.inviter_assignment is not None:
                raise PreconditionError(
                    f"User {new_user_id} already has an inviter",
                    user_id=new_user_id,
                )

            if user.is_root:
                return await self._assign_root(user)

            inviter, assignment = await self._resolve_inviter(invite_code)

            if inviter.id == new_user_id:
                raise IntegrityError(
                    f"User {new_user_id} cannot invite themselves",
                    user_id=new_user_id,
                )

            # Full walk: the new user must not appear anywhere above the inviter
            inviter_chain = await self.ascend(inviter.id)
            if any(a.user_id == new_user_id for a in inviter_chain):
                self.logger.warning(
                    "Referral loop detected",
                    extra={
                        "new_user_id": new_user_id,
                        "inviter_id": inviter.id,
                        "chain_ids": [a.user_id for a in inviter_chain],
                    },
                )
                raise IntegrityError(
                    f"Attaching user {new_user_id} under {inviter.id} "
                    "would create a referral cycle",
                    user_id=new_user_id,
                    inviter_id=inviter.id,
                )

            updated = await self.user_repo.set_inviter_if_unset(
                new_user_id, inviter.id, assignment.value
            )
            if not updated:
                raise ConflictError(
                    f"Inviter of user {new_user_id} was assigned concurrently",
                    user_id=new_user_id,
                )

            depth = self.config.referral_max_depth
            ancestors = [Ancestor(user_id=inviter.id, level=1)] + [
                Ancestor(user_id=a.user_id, level=a.level + 1)
                for a in inviter_chain[: depth - 1]
            ]
            for ancestor in ancestors:
                await self.referral_repo.create(
                    referrer_id=ancestor.user_id,
                    referred_id=new_user_id,
                    level=ancestor.level,
                    commission_rate=self.config.rate_for_level(ancestor.level),
                )

            await self.user_repo.increment_referrals_total(inviter.id)

            self.logger.info(
                "Inviter assigned",
                extra={
                    "user_id": new_user_id,
                    "inviter_id": inviter.id,
                    "assignment": assignment.value,
                    "levels_created": len(ancestors),
                },
            )

            return InviterAssignmentResult(
                user_id=new_user_id,
                inviter_id=inviter.id,
                assignment=assignment,
                levels_created=len(ancestors),
            )

    async def get_direct_invitees(self, user_id: int) -> list[User]:
        """
        Get users directly invited by (or defaulted to) a user.

        Args:
            user_id: Inviter user ID

        Returns:
            List of users
        """
        return await self.user_repo.find_by(inviter_id=user_id)

    async def get_network_counts(self, user_id: int) -> dict[int, int]:
        """
        Get network size per level for the configured depth.

        Args:
            user_id: Ancestor user ID

        Returns:
            Dict mapping level to number of descendants
        """
        return await self.referral_repo.get_level_counts(
            user_id, self.config.referral_max_depth
        )

    async def _assign_root(self, user: User) -> InviterAssignmentResult:
        updated = await self.user_repo.set_inviter_if_unset(
            user.id, None, InviterAssignment.ROOT.value
        )
        if not updated:
            raise ConflictError(
                f"Inviter of user {user.id} was assigned concurrently",
                user_id=user.id,
            )
        self.logger.info("Root account registered", extra={"user_id": user.id})
        return InviterAssignmentResult(
            user_id=user.id,
            inviter_id=None,
            assignment=InviterAssignment.ROOT,
            levels_created=0,
        )

    async def _resolve_inviter(
        self, invite_code: str | None
    ) -> tuple[User, InviterAssignment]:
        if invite_code and invite_code.strip():
            inviter = await self.user_repo.get_by_invite_code(invite_code)
            if not inviter:
                raise NotFoundError(
                    f"Invite code {invite_code!r} not found",
                    invite_code=invite_code,
                )
            if not inviter.is_active:
                raise PreconditionError(
                    f"Inviter {inviter.id} is disabled", inviter_id=inviter.id
                )
            return inviter, InviterAssignment.DIRECT_INVITE

        root = await self.user_repo.get_by_invite_code(self.config.root_invite_code)
        if not root:
            raise PreconditionError(
                "Root account is not configured; cannot register without "
                "an invite code",
                root_invite_code=self.config.root_invite_code,
            )
        return root, InviterAssignment.DEFAULT_ASSIGNED
