"""In-memory storage of finished reviews."""

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from models import CodeSubmission, ReviewResult

logger = logging.getLogger(__name__)


@dataclass
class StoredReview:
    """A persisted review and the submission it was made for."""

    id: int
    language: str
    review_type: str
    code: str
    results: ReviewResult
    user_id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ReviewStore:
    """Keeps reviews in a dict; ids are assigned sequentially from 1."""

    def __init__(self):
        self._reviews: dict[int, StoredReview] = {}
        self._ids = itertools.count(1)

    def create_review(
        self,
        submission: CodeSubmission,
        results: ReviewResult,
        user_id: int | None = None,
    ) -> StoredReview:
        review = StoredReview(
            id=next(self._ids),
            language=submission.language,
            review_type=submission.review_type.value,
            code=submission.code,
            results=results,
            user_id=user_id,
        )
        self._reviews[review.id] = review
        logger.info("Stored review #%d (%s)", review.id, review.language)
        return review

    def get_review(self, review_id: int) -> StoredReview | None:
        return self._reviews.get(review_id)

    def get_reviews(self, user_id: int | None = None, limit: int | None = None) -> list[StoredReview]:
        """Return reviews newest first, optionally filtered and limited."""
        reviews = list(self._reviews.values())
        if user_id is not None:
            reviews = [r for r in reviews if r.user_id == user_id]
        # Same-timestamp reviews fall back to id order
        reviews.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        if limit:
            reviews = reviews[:limit]
        return reviews
