"""
Unit tests for ReferralGraph ancestor walks.

The user repository is mocked with an in-memory inviter map so that
broken trees (cycles, dangling pointers) can be simulated.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fingrow.services.referral.graph import Ancestor, ReferralGraph
from fingrow.utils.exceptions import (
    IntegrityError,
    NotFoundError,
    PreconditionError,
)
from fingrow.utils.key_guard import KeyGuard


def make_graph(mock_session, core_config, inviters: dict[int, int | None]):
    """Build a graph whose users are the keys of ``inviters``."""

    async def get_inviter_link(user_id):
        if user_id not in inviters:
            return None
        return user_id, inviters[user_id]

    graph = ReferralGraph(mock_session, core_config, guard=KeyGuard("user-unit"))
    graph.user_repo = AsyncMock()
    graph.user_repo.get_inviter_link = AsyncMock(side_effect=get_inviter_link)
    graph.referral_repo = AsyncMock()
    return graph


class TestAscend:
    """Test ancestor chain retrieval."""

    @pytest.mark.asyncio
    async def test_chain_shorter_than_depth(self, mock_session, core_config):
        """Walk stops at the root."""
        graph = make_graph(mock_session, core_config, {5: 4, 4: 3, 3: None})

        chain = await graph.ascend(5, 7)

        assert chain == [Ancestor(4, 1), Ancestor(3, 2)]

    @pytest.mark.asyncio
    async def test_depth_limits_chain(self, mock_session, core_config):
        """No more than max_depth ancestors are returned."""
        inviters = {i: i - 1 for i in range(2, 12)}
        inviters[1] = None
        graph = make_graph(mock_session, core_config, inviters)

        chain = await graph.ascend(11, 3)

        assert [a.user_id for a in chain] == [10, 9, 8]
        assert [a.level for a in chain] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_unbounded_walk_reaches_root(self, mock_session, core_config):
        """max_depth=None walks the whole chain."""
        inviters = {i: i - 1 for i in range(2, 12)}
        inviters[1] = None
        graph = make_graph(mock_session, core_config, inviters)

        chain = await graph.ascend(11)

        assert len(chain) == 10
        assert chain[-1] == Ancestor(1, 10)

    @pytest.mark.asyncio
    async def test_root_has_no_ancestors(self, mock_session, core_config):
        """The root's chain is empty."""
        graph = make_graph(mock_session, core_config, {1: None})

        assert await graph.ascend(1, 7) == []

    @pytest.mark.asyncio
    async def test_cycle_detected(self, mock_session, core_config):
        """A loop in the pointers aborts the walk."""
        graph = make_graph(mock_session, core_config, {1: 2, 2: 3, 3: 1})

        with pytest.raises(IntegrityError) as exc_info:
            await graph.ascend(1, 7)

        assert exc_info.value.context["repeated_id"] == 1

    @pytest.mark.asyncio
    async def test_cycle_above_start_detected(self, mock_session, core_config):
        """A loop not containing the start user is still detected."""
        graph = make_graph(mock_session, core_config, {9: 2, 2: 3, 3: 2})

        with pytest.raises(IntegrityError):
            await graph.ascend(9)

    @pytest.mark.asyncio
    async def test_unknown_user(self, mock_session, core_config):
        """Walking from a missing user is NotFound."""
        graph = make_graph(mock_session, core_config, {})

        with pytest.raises(NotFoundError):
            await graph.ascend(42)

    @pytest.mark.asyncio
    async def test_dangling_pointer_ends_walk(self, mock_session, core_config):
        """Inviter pointing to a missing row ends the chain there."""
        graph = make_graph(mock_session, core_config, {5: 4, 4: 77})

        chain = await graph.ascend(5)

        assert [a.user_id for a in chain] == [4, 77]


class TestAssignInviter:
    """Test inviter assignment guards."""

    @pytest.fixture
    def new_user(self):
        user = MagicMock()
        user.id = 50
        user.is_root = False
        user.inviter_assignment = None
        return user

    @pytest.mark.asyncio
    async def test_already_assigned(self, mock_session, core_config, new_user):
        """Inviter pointer is set exactly once."""
        new_user.inviter_assignment = "direct_invite"
        graph = make_graph(mock_session, core_config, {50: 1, 1: None})
        graph.user_repo.get_by_id = AsyncMock(return_value=new_user)

        with pytest.raises(PreconditionError):
            await graph.assign_inviter(50, "ROOTCODE")

    @pytest.mark.asyncio
    async def test_self_invite(self, mock_session, core_config, new_user):
        """A user's own invite code cannot be used."""
        graph = make_graph(mock_session, core_config, {50: None})
        graph.user_repo.get_by_id = AsyncMock(return_value=new_user)
        inviter = MagicMock(id=50, is_active=True)
        graph.user_repo.get_by_invite_code = AsyncMock(return_value=inviter)

        with pytest.raises(IntegrityError):
            await graph.assign_inviter(50, "SELF")

        graph.user_repo.set_inviter_if_unset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inviter_chain_containing_user(
        self, mock_session, core_config, new_user
    ):
        """Attaching under one's own descendant is refused."""
        # 7 was attached (inconsistently) below 50
        graph = make_graph(mock_session, core_config, {7: 50, 50: None})
        graph.user_repo.get_by_id = AsyncMock(return_value=new_user)
        inviter = MagicMock(id=7, is_active=True)
        graph.user_repo.get_by_invite_code = AsyncMock(return_value=inviter)

        with pytest.raises(IntegrityError):
            await graph.assign_inviter(50, "DESC")

        graph.referral_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_invite_code(self, mock_session, core_config, new_user):
        """Unknown code is NotFound rather than a silent NIC fallback."""
        graph = make_graph(mock_session, core_config, {50: None})
        graph.user_repo.get_by_id = AsyncMock(return_value=new_user)
        graph.user_repo.get_by_invite_code = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await graph.assign_inviter(50, "NOPE")

    @pytest.mark.asyncio
    async def test_referral_rows_per_level(self, mock_session, core_config, new_user):
        """One relationship row per ancestor, with the level's rate."""
        graph = make_graph(
            mock_session, core_config, {3: 2, 2: 1, 1: None, 50: None}
        )
        graph.user_repo.get_by_id = AsyncMock(return_value=new_user)
        graph.user_repo.get_by_invite_code = AsyncMock(
            return_value=MagicMock(id=3, is_active=True)
        )
        graph.user_repo.set_inviter_if_unset = AsyncMock(return_value=True)

        result = await graph.assign_inviter(50, "INV3")

        assert result.inviter_id == 3
        assert result.levels_created == 3
        created = [c.kwargs for c in graph.referral_repo.create.await_args_list]
        assert [(c["referrer_id"], c["level"]) for c in created] == [
            (3, 1),
            (2, 2),
            (1, 3),
        ]
        assert created[0]["commission_rate"] == core_config.referral_rates[1]
        graph.user_repo.increment_referrals_total.assert_awaited_once_with(3)
