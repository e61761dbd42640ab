"""
Review and Rating Aggregator

Records per-swap reviews and keeps User.rating equal to the mean of every
rating the user has received, rounded half-up to 2 decimals.

The review write is committed first. The recompute is a follow-up in its
own transaction: if it fails the review still stands, the failure is
logged, and the periodic reconcile job repairs the aggregate later.
"""
import logging
from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from skillswap.database import utcnow
from skillswap.exceptions import Conflict, NotFound, ValidationError
from skillswap.models.review import Review
from skillswap.models.swap_session import SwapSession, SwapSessionStatus
from skillswap.models.user import User
from skillswap.services.guards import load_participant_session, optional_text, to_dict

logger = logging.getLogger(__name__)

RATING_PLACES = Decimal("0.01")


def mean_rating(total: int, count: int) -> Optional[float]:
    """Exact mean of integer ratings rounded half-up to 2 places (None when there are none)"""
    if not count:
        return None
    mean = (Decimal(int(total)) / Decimal(int(count))).quantize(RATING_PLACES, rounding=ROUND_HALF_UP)
    return float(mean)


def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5", field="rating")
    return rating


def _pair_filter(user_a: int, user_b: int):
    return or_(
        and_(SwapSession.user1_id == user_a, SwapSession.user2_id == user_b),
        and_(SwapSession.user1_id == user_b, SwapSession.user2_id == user_a),
    )


class RatingAggregator:
    """Review creation, direct rating, and rating recomputation"""

    async def recompute_rating(self, db: AsyncSession, user_id: int) -> Optional[float]:
        """
        Write the mean of all received ratings to User.rating.

        Users with no reviews keep their current rating.

        Returns:
            The new rating, or None when the user has no reviews
        """
        total, count = (
            await db.execute(
                select(func.coalesce(func.sum(Review.rating), 0), func.count(Review.id)).where(
                    Review.reviewee_id == user_id
                )
            )
        ).one()
        rating = mean_rating(total, count)
        if rating is None:
            return None

        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(rating=rating)
            .execution_options(synchronize_session="fetch")
        )
        logger.info(f"Rating for user {user_id} recomputed: {rating:.2f} from {count} reviews")
        return rating

    async def _commit_and_recompute(self, db: AsyncSession, review: Review) -> None:
        await db.commit()
        try:
            await self.recompute_rating(db, review.reviewee_id)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Rating recompute failed for user {review.reviewee_id}: {e}", exc_info=True)
            # Rollback expired the committed review; reload it for the caller
            await db.refresh(review)

    async def create_review(
        self,
        db: AsyncSession,
        reviewer_id: int,
        swap_session_id: int,
        reviewee_id: int,
        rating: Any,
        comment: Optional[str] = None,
    ) -> Review:
        """
        Review the other participant of a COMPLETED swap session.

        Raises:
            ValidationError: Rating outside 1..5, self review, or reviewee not
                the other participant
            NotFound: Unknown swap session
            AuthorizationDenied: Reviewer is not a participant
            Conflict: Session not COMPLETED, or this review already exists
        """
        rating = validate_rating(rating)

        swap_session = await load_participant_session(
            db,
            swap_session_id,
            reviewer_id,
            "review",
            allowed=[SwapSessionStatus.COMPLETED],
        )
        if reviewee_id == reviewer_id:
            raise ValidationError("Cannot review yourself", field="reviewee_id")
        if not swap_session.has_participant(reviewee_id):
            raise ValidationError("Reviewee must be the other user in the swap", field="reviewee_id")

        existing = (
            await db.execute(
                select(Review.id).where(
                    Review.swap_session_id == swap_session_id,
                    Review.reviewer_id == reviewer_id,
                    Review.reviewee_id == reviewee_id,
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise Conflict(
                "You have already reviewed this user for this swap",
                details={"review_id": existing, "swap_session_id": swap_session_id},
            )

        review = Review(
            swap_session_id=swap_session_id,
            reviewer_id=reviewer_id,
            reviewee_id=reviewee_id,
            rating=rating,
            comment=optional_text(comment),
        )
        db.add(review)
        try:
            await db.flush()
        except IntegrityError:
            raise Conflict("You have already reviewed this user for this swap")

        logger.info(f"Review {review.id}: user {reviewer_id} rated user {reviewee_id} {rating}/5")
        await self._commit_and_recompute(db, review)
        return review

    async def rate_direct(
        self,
        db: AsyncSession,
        rater_id: int,
        ratee_id: int,
        rating: Any,
        comment: Optional[str] = None,
    ) -> Tuple[Review, bool]:
        """
        Rate a user you have completed a swap with, without naming the session.

        Re-rating the same user updates the existing review in place.

        Returns:
            (review, created) where created is False for an in-place update

        Raises:
            ValidationError: Rating outside 1..5 or rating yourself
            NotFound: Unknown ratee
            Conflict: No COMPLETED swap session exists for the pair
        """
        rating = validate_rating(rating)
        if rater_id == ratee_id:
            raise ValidationError("Cannot rate yourself", field="user_id")
        if await db.get(User, ratee_id) is None:
            raise NotFound("User not found", details={"user_id": ratee_id})

        completed_pair = and_(
            SwapSession.status == SwapSessionStatus.COMPLETED.value,
            _pair_filter(rater_id, ratee_id),
        )

        swap_session_id = (
            await db.execute(
                select(SwapSession.id)
                .where(completed_pair)
                .order_by(SwapSession.completed_at.desc(), SwapSession.id.desc())
                .limit(1)
            )
        ).scalar_one_or_none()
        if swap_session_id is None:
            raise Conflict(
                "You can only rate users you have completed swaps with",
                details={"user_id": ratee_id},
            )

        review = (
            await db.execute(
                select(Review)
                .join(SwapSession, SwapSession.id == Review.swap_session_id)
                .where(Review.reviewer_id == rater_id, Review.reviewee_id == ratee_id, completed_pair)
                .order_by(Review.created_at.desc(), Review.id.desc())
                .limit(1)
            )
        ).scalar_one_or_none()

        created = review is None
        if created:
            review = Review(
                swap_session_id=swap_session_id,
                reviewer_id=rater_id,
                reviewee_id=ratee_id,
                rating=rating,
                comment=optional_text(comment),
            )
            db.add(review)
        else:
            review.rating = rating
            review.comment = optional_text(comment)
            review.created_at = utcnow()
        await db.flush()

        logger.info(f"User {rater_id} {'rated' if created else 're-rated'} user {ratee_id} {rating}/5")
        await self._commit_and_recompute(db, review)
        return review, created

    async def list_session_reviews(
        self, db: AsyncSession, swap_session_id: int, actor_id: int
    ) -> List[Dict[str, Any]]:
        await load_participant_session(db, swap_session_id, actor_id, "view")
        reviewer = aliased(User)
        reviewee = aliased(User)
        result = await db.execute(
            select(Review, reviewer.username, reviewer.full_name, reviewee.username, reviewee.full_name)
            .join(reviewer, reviewer.id == Review.reviewer_id)
            .join(reviewee, reviewee.id == Review.reviewee_id)
            .where(Review.swap_session_id == swap_session_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        reviews = []
        for review, reviewer_username, reviewer_name, reviewee_username, reviewee_name in result.all():
            row = to_dict(review)
            row.update(
                reviewer_username=reviewer_username,
                reviewer_name=reviewer_name,
                reviewee_username=reviewee_username,
                reviewee_name=reviewee_name,
            )
            reviews.append(row)
        return reviews

    async def list_user_reviews(self, db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
        """Reviews a user has received, newest first"""
        result = await db.execute(
            select(Review, User.username, User.full_name)
            .join(User, User.id == Review.reviewer_id)
            .where(Review.reviewee_id == user_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        reviews = []
        for review, username, full_name in result.all():
            row = to_dict(review)
            row.update(reviewer_username=username, reviewer_name=full_name)
            reviews.append(row)
        return reviews

    async def reconcile_user_stats(self, db: AsyncSession) -> Dict[str, int]:
        """
        Rebuild every derived counter from source rows.

        rating is recomputed for users who have reviews; total_swaps is reset
        to the number of COMPLETED sessions each user took part in.
        """
        ratings_updated = 0
        aggregates = await db.execute(
            select(Review.reviewee_id, func.sum(Review.rating), func.count(Review.id)).group_by(
                Review.reviewee_id
            )
        )
        for reviewee_id, total, count in aggregates.all():
            await db.execute(
                update(User)
                .where(User.id == reviewee_id)
                .values(rating=mean_rating(total, count))
                .execution_options(synchronize_session=False)
            )
            ratings_updated += 1

        completed = Counter()
        pairs = await db.execute(
            select(SwapSession.user1_id, SwapSession.user2_id).where(
                SwapSession.status == SwapSessionStatus.COMPLETED.value
            )
        )
        for user1_id, user2_id in pairs.all():
            completed[user1_id] += 1
            completed[user2_id] += 1

        swaps_corrected = 0
        users = await db.execute(select(User.id, User.total_swaps))
        for user_id, total_swaps in users.all():
            expected = completed.get(user_id, 0)
            if total_swaps != expected:
                await db.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(total_swaps=expected)
                    .execution_options(synchronize_session=False)
                )
                swaps_corrected += 1

        return {"ratings_updated": ratings_updated, "swaps_corrected": swaps_corrected}


# Singleton instance
_rating_aggregator_instance: Optional[RatingAggregator] = None


def get_rating_aggregator() -> RatingAggregator:
    """Get singleton instance of RatingAggregator"""
    global _rating_aggregator_instance
    if _rating_aggregator_instance is None:
        _rating_aggregator_instance = RatingAggregator()
    return _rating_aggregator_instance
