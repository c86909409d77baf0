"""Integration tests for registration and the referral tree."""

from decimal import Decimal

import pytest

from fingrow.models.enums import InviterAssignment
from fingrow.repositories.referral_repository import ReferralRepository
from fingrow.repositories.user_repository import UserRepository
from fingrow.services.user_service import INVITE_CODE_ALPHABET
from fingrow.utils.exceptions import NotFoundError, PreconditionError


class TestRootAccount:
    """Test the root of the tree."""

    @pytest.mark.asyncio
    async def test_root_has_no_inviter(self, market):
        root = await market.root()

        assert root.is_root is True
        assert root.inviter_id is None
        assert root.inviter_assignment == InviterAssignment.ROOT
        assert root.invite_code == "FINGROW"

    @pytest.mark.asyncio
    async def test_single_root(self, market):
        await market.root()

        with pytest.raises(PreconditionError):
            await market.users.create_root("another_root")

    @pytest.mark.asyncio
    async def test_root_cannot_be_disabled(self, market):
        root = await market.root()
        root_id = root.id

        with pytest.raises(PreconditionError):
            await market.users.deactivate(root_id)

    @pytest.mark.asyncio
    async def test_registration_without_root_or_code(self, market):
        """NIC registration needs a root account to attach to."""
        with pytest.raises(PreconditionError):
            await market.users.register("orphan")


class TestRegistration:
    """Test inviter assignment on registration."""

    @pytest.mark.asyncio
    async def test_no_invite_code_attaches_to_root(self, market, session):
        """NIC user is default-assigned to the root."""
        root = await market.root()

        user = await market.users.register("alice")

        assert user.inviter_id == root.id
        assert user.inviter_assignment == InviterAssignment.DEFAULT_ASSIGNED
        assert user.is_default_assigned
        await session.refresh(root)
        assert root.referrals_total == 1

    @pytest.mark.asyncio
    async def test_invite_code_attaches_to_owner(self, market):
        """BIC user is attached to the code owner, case-insensitively."""
        await market.root()
        inviter = await market.users.register("bob")

        user = await market.users.register("carol", inviter.invite_code.lower())

        assert user.inviter_id == inviter.id
        assert user.inviter_assignment == InviterAssignment.DIRECT_INVITE

    @pytest.mark.asyncio
    async def test_invite_code_format(self, market):
        await market.root()

        user = await market.users.register("dave.smith")

        assert user.invite_code.startswith("DAVESMITH")
        assert len(user.invite_code) == len("DAVESMITH") + 6
        assert all(ch in INVITE_CODE_ALPHABET for ch in user.invite_code[9:])

    @pytest.mark.asyncio
    async def test_unknown_invite_code(self, market, session):
        """Unknown code fails and leaves no user behind."""
        await market.root()

        with pytest.raises(NotFoundError):
            await market.users.register("erin", "NOSUCHCODE")

        assert await UserRepository(session).get_by_username("erin") is None

    @pytest.mark.asyncio
    async def test_disabled_inviter(self, market):
        await market.root()
        inviter = await market.users.register("frank")
        inviter_id, code = inviter.id, inviter.invite_code
        await market.users.deactivate(inviter_id)

        with pytest.raises(PreconditionError):
            await market.users.register("grace", code)

    @pytest.mark.asyncio
    async def test_username_taken(self, market):
        await market.root()
        await market.users.register("heidi")

        with pytest.raises(PreconditionError):
            await market.users.register("heidi")

    @pytest.mark.asyncio
    async def test_assignment_happens_once(self, market):
        await market.root()
        user = await market.users.register("ivan")
        user_id = user.id

        with pytest.raises(PreconditionError):
            await market.graph.assign_inviter(user_id, None)


class TestReferralRows:
    """Test relationship rows created per ancestor level."""

    @pytest.mark.asyncio
    async def test_rows_for_each_ancestor(self, market, session, core_config):
        root = await market.root()
        m0, m1 = await market.chain(2)

        seller = await market.users.register("seller", m1.invite_code)

        rows = await ReferralRepository(session).get_for_referred(seller.id)
        assert [(r.referrer_id, r.level) for r in rows] == [
            (m1.id, 1),
            (m0.id, 2),
            (root.id, 3),
        ]
        assert [r.commission_rate for r in rows] == [
            core_config.referral_rates[1],
            core_config.referral_rates[2],
            core_config.referral_rates[3],
        ]
        assert all(r.total_earnings == Decimal("0") for r in rows)

    @pytest.mark.asyncio
    async def test_rows_capped_at_max_depth(self, market, session):
        await market.root()
        members = await market.chain(9)

        rows = await ReferralRepository(session).get_for_referred(members[-1].id)

        assert len(rows) == 7
        assert rows[-1].level == 7

    @pytest.mark.asyncio
    async def test_ascend_matches_registration(self, market):
        root = await market.root()
        m0, m1, m2 = await market.chain(3)

        chain = await market.graph.ascend(m2.id)

        assert [(a.user_id, a.level) for a in chain] == [
            (m1.id, 1),
            (m0.id, 2),
            (root.id, 3),
        ]
        assert await market.graph.ascend(m2.id, 1) == chain[:1]

    @pytest.mark.asyncio
    async def test_network_counts(self, market):
        root = await market.root()
        m0, m1 = await market.chain(2)
        await market.users.register("sibling", m0.invite_code)

        counts = await market.graph.get_network_counts(root.id)
        invitees = await market.graph.get_direct_invitees(m0.id)

        assert counts[1] == 1
        assert counts[2] == 2
        assert counts[3] == 0
        assert len(counts) == 7
        assert {u.username for u in invitees} == {m1.username, "sibling"}
