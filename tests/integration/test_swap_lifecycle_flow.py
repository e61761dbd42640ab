"""
Integration tests for the swap request and swap session state machine

Runs the lifecycle service against an in-memory database.
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from skillswap.database import utcnow
from skillswap.exceptions import AuthorizationDenied, Conflict, NotFound, ValidationError
from skillswap.models import SwapRequest, SwapSession
from skillswap.services.session_activity import get_session_activity
from skillswap.services.swap_lifecycle import get_swap_lifecycle

pytestmark = pytest.mark.integration


@pytest.fixture
async def pair(make_user, make_skill):
    """Two users who each offer what the other wants"""
    alice = await make_user("alice")
    bob = await make_user("bob")
    alice_guitar = await make_skill(alice, "Guitar", "OFFER")
    await make_skill(alice, "Python", "WANT")
    bob_python = await make_skill(bob, "Python", "OFFER")
    await make_skill(bob, "Guitar", "WANT")
    return alice, bob, alice_guitar, bob_python


async def count(db, model, *criteria):
    return (await db.execute(select(func.count(model.id)).where(*criteria))).scalar_one()


class TestCreateRequest:
    """Test request creation rules"""

    @pytest.mark.asyncio
    async def test_creates_pending_request(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair

        request = await get_swap_lifecycle().create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id, " hi ")

        assert request.status == "PENDING"
        assert request.message == "hi"
        assert (request.requester_id, request.receiver_id) == (alice.id, bob.id)

    @pytest.mark.asyncio
    async def test_self_request_rejected(self, db, pair):
        alice, _, alice_guitar, _ = pair

        with pytest.raises(ValidationError):
            await get_swap_lifecycle().create_request(db, alice.id, alice.id, alice_guitar.id, alice_guitar.id)

    @pytest.mark.asyncio
    async def test_unknown_receiver(self, db, pair):
        alice, _, alice_guitar, bob_python = pair

        with pytest.raises(NotFound):
            await get_swap_lifecycle().create_request(db, alice.id, 9999, alice_guitar.id, bob_python.id)

    @pytest.mark.asyncio
    async def test_skills_must_be_each_partys_offer(self, db, pair, make_skill):
        alice, bob, alice_guitar, bob_python = pair
        bob_want = await make_skill(bob, "Knitting", "WANT")

        with pytest.raises(ValidationError) as exc_info:
            await get_swap_lifecycle().create_request(db, alice.id, bob.id, bob_python.id, alice_guitar.id)
        assert exc_info.value.field == "requester_skill_id"

        with pytest.raises(ValidationError) as exc_info:
            await get_swap_lifecycle().create_request(db, alice.id, bob.id, alice_guitar.id, bob_want.id)
        assert exc_info.value.field == "receiver_skill_id"

    @pytest.mark.asyncio
    async def test_duplicate_pending_rejected(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        first = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        with pytest.raises(Conflict) as exc_info:
            await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        assert exc_info.value.details["swap_request_id"] == first.id
        assert await count(db, SwapRequest, SwapRequest.status == "PENDING") == 1

    @pytest.mark.asyncio
    async def test_reverse_direction_is_a_separate_pair(self, db, pair):
        """Only the ordered (requester, receiver) pair is unique while pending"""
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        reverse = await lifecycle.create_request(db, bob.id, alice.id, bob_python.id, alice_guitar.id)

        assert reverse.status == "PENDING"

    @pytest.mark.asyncio
    async def test_new_request_allowed_after_rejection(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        first = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)
        await lifecycle.reject_request(db, first.id, bob.id)

        second = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        assert second.id != first.id


class TestProposeRequest:
    """Test request creation with an automatically chosen skill pair"""

    @pytest.mark.asyncio
    async def test_bidirectional_pair_chosen(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair

        request = await get_swap_lifecycle().propose_request(db, alice.id, bob.id)

        assert (request.requester_skill_id, request.receiver_skill_id) == (alice_guitar.id, bob_python.id)
        assert request.message == "Hi! I'd like to swap Guitar for Python."

    @pytest.mark.asyncio
    async def test_no_overlap(self, db, make_user, make_skill):
        alice = await make_user("alice")
        carol = await make_user("carol")
        await make_skill(alice, "Guitar", "OFFER")
        await make_skill(carol, "Baking", "OFFER")

        with pytest.raises(ValidationError, match="No matching skills"):
            await get_swap_lifecycle().propose_request(db, alice.id, carol.id)


class TestAcceptReject:
    """Test receiver-only transitions out of PENDING"""

    @pytest.mark.asyncio
    async def test_accept_creates_active_session(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        request = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        swap = await lifecycle.accept_request(db, request.id, bob.id)

        assert swap.status == "ACTIVE"
        assert (swap.user1_id, swap.user2_id) == (alice.id, bob.id)
        assert (swap.user1_skill_id, swap.user2_skill_id) == (alice_guitar.id, bob_python.id)
        assert swap.swap_request_id == request.id
        assert swap.started_at is not None
        assert request.status == "ACCEPTED"

    @pytest.mark.asyncio
    async def test_only_receiver_can_accept(self, db, pair, make_user):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        request = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)
        outsider = await make_user("mallory")

        for actor in (alice, outsider):
            with pytest.raises(AuthorizationDenied):
                await lifecycle.accept_request(db, request.id, actor.id)

        assert await count(db, SwapSession) == 0

    @pytest.mark.asyncio
    async def test_double_accept_creates_one_session(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        request = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)
        await lifecycle.accept_request(db, request.id, bob.id)

        with pytest.raises(Conflict) as exc_info:
            await lifecycle.accept_request(db, request.id, bob.id)

        assert exc_info.value.details["status"] == "ACCEPTED"
        assert await count(db, SwapSession, SwapSession.swap_request_id == request.id) == 1

    @pytest.mark.asyncio
    async def test_existing_session_backstop(self, db, pair):
        """A session row already tied to the request blocks a second one"""
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        request = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)
        db.add(
            SwapSession(
                swap_request_id=request.id,
                user1_id=alice.id,
                user2_id=bob.id,
                user1_skill_id=alice_guitar.id,
                user2_skill_id=bob_python.id,
            )
        )
        await db.flush()

        with pytest.raises(Conflict):
            await lifecycle.accept_request(db, request.id, bob.id)
        await db.rollback()

    @pytest.mark.asyncio
    async def test_reject(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        request = await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        rejected = await lifecycle.reject_request(db, request.id, bob.id)

        assert rejected.status == "REJECTED"
        with pytest.raises(Conflict):
            await lifecycle.accept_request(db, request.id, bob.id)
        assert await count(db, SwapSession) == 0

    @pytest.mark.asyncio
    async def test_unknown_request(self, db, pair):
        _, bob, _, _ = pair

        with pytest.raises(NotFound):
            await get_swap_lifecycle().reject_request(db, 12345, bob.id)


class TestListRequests:
    """Test enriched request listings"""

    @pytest.mark.asyncio
    async def test_sent_and_received(self, db, pair):
        alice, bob, alice_guitar, bob_python = pair
        lifecycle = get_swap_lifecycle()
        await lifecycle.create_request(db, alice.id, bob.id, alice_guitar.id, bob_python.id)

        sent = await lifecycle.list_requests(db, alice.id, "sent")
        received = await lifecycle.list_requests(db, alice.id, "received")
        both = await lifecycle.list_requests(db, bob.id)

        assert len(sent) == 1 and received == []
        assert len(both) == 1
        row = sent[0]
        assert row["requester_username"] == "alice"
        assert row["receiver_username"] == "bob"
        assert row["requester_skill_name"] == "Guitar"
        assert row["receiver_skill_name"] == "Python"

    @pytest.mark.asyncio
    async def test_bad_direction(self, db, pair):
        alice, _, _, _ = pair

        with pytest.raises(ValidationError) as exc_info:
            await get_swap_lifecycle().list_requests(db, alice.id, "outgoing")

        assert exc_info.value.field == "type"


class TestSessions:
    """Test completion, admin cancellation and session listings"""

    @pytest.mark.asyncio
    async def test_complete_credits_both_participants(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        swap = await make_swap(alice, bob)

        completed = await get_swap_lifecycle().complete_session(db, swap.id, bob.id)

        assert completed.status == "COMPLETED"
        assert completed.completed_at is not None
        for user in (alice, bob):
            await db.refresh(user)
            assert user.total_swaps == 1

    @pytest.mark.asyncio
    async def test_complete_twice_is_conflict(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        swap = await make_swap(alice, bob)
        lifecycle = get_swap_lifecycle()
        await lifecycle.complete_session(db, swap.id, alice.id)

        with pytest.raises(Conflict):
            await lifecycle.complete_session(db, swap.id, bob.id)

        await db.refresh(alice)
        assert alice.total_swaps == 1

    @pytest.mark.asyncio
    async def test_outsider_cannot_complete(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        outsider = await make_user("mallory")
        swap = await make_swap(alice, bob)

        with pytest.raises(AuthorizationDenied):
            await get_swap_lifecycle().complete_session(db, swap.id, outsider.id)

    @pytest.mark.asyncio
    async def test_force_cancel_leaves_counters(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        admin = await make_user("root", is_admin=True)
        swap = await make_swap(alice, bob)
        lifecycle = get_swap_lifecycle()

        cancelled = await lifecycle.force_cancel_session(db, swap.id, admin.id)

        assert cancelled.status == "CANCELLED"
        assert cancelled.completed_at is None
        with pytest.raises(Conflict):
            await lifecycle.complete_session(db, swap.id, alice.id)
        await db.refresh(alice)
        assert alice.total_swaps == 0

    @pytest.mark.asyncio
    async def test_cancel_requires_active(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        swap = await make_swap(alice, bob, status="COMPLETED")

        with pytest.raises(Conflict):
            await get_swap_lifecycle().force_cancel_session(db, swap.id, alice.id)

    @pytest.mark.asyncio
    async def test_list_sessions_keeps_latest_per_pair(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        now = utcnow()
        await make_swap(alice, bob, status="COMPLETED", started_at=now - timedelta(days=9), completed_at=now - timedelta(days=5))
        latest = await make_swap(bob, alice, started_at=now - timedelta(days=1))
        other = await make_swap(alice, carol, started_at=now - timedelta(days=3))

        sessions = await get_swap_lifecycle().list_sessions(db, alice.id)

        assert [s["id"] for s in sessions] == [latest.id, other.id]
        assert sessions[0]["user1_username"] == "bob"
        assert sessions[0]["user2_skill_name"] == "Skill of alice"

        everything = await get_swap_lifecycle().list_all_sessions(db)
        assert len(everything) == 3

    @pytest.mark.asyncio
    async def test_detail_includes_children(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        swap = await make_swap(alice, bob)
        await get_session_activity().create_message(db, alice.id, swap.id, "hello")

        detail = await get_swap_lifecycle().get_session_detail(db, swap.id, bob.id)

        assert detail["id"] == swap.id
        assert detail["user1_username"] == "alice"
        assert [m["message_text"] for m in detail["messages"]] == ["hello"]
        assert detail["learning_sessions"] == []
        assert detail["resources"] == []

    @pytest.mark.asyncio
    async def test_detail_denied_to_outsider(self, db, make_user, make_swap):
        alice = await make_user("alice")
        bob = await make_user("bob")
        outsider = await make_user("mallory")
        swap = await make_swap(alice, bob)

        with pytest.raises(AuthorizationDenied):
            await get_swap_lifecycle().get_session_detail(db, swap.id, outsider.id)

        with pytest.raises(NotFound):
            await get_swap_lifecycle().get_session_detail(db, 999, alice.id)
