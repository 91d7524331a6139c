"""
Duplicate Detection Service (Domain Logic).

Finds transactions that were probably entered twice, scores each candidate
pair and applies the reviewer's resolution through the ledger services.

Search flow:
1. Load live transactions inside the requested date window
2. Bucket them by (amount, year-month, type)
3. Score every unordered pair inside a bucket, skipping dismissed pairs
4. Classify by score and keep the tiers at or above the requested minimum
5. Sort by score (desc), then tier (strongest first)
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional, List, assert_never
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from fundledger.app.core.config import settings
from fundledger.app.db.session import transactional
from fundledger.app.domain.duplicates.dismissal_repository import DismissedPairRepository, pair_key
from fundledger.app.domain.duplicates.similarity import string_similarity
from fundledger.app.domain.ledger.transaction_service import TransactionService
from fundledger.app.models.enums import DuplicateMatchType, DuplicateResolution
from fundledger.app.models.transaction import Transaction
from fundledger.app.schemas.duplicate import DuplicateMatch, DuplicateSearchCriteria
from fundledger.app.schemas.transaction import TransactionResponse
from fundledger.app.services.audit import AuditAction, record_audit

logger = logging.getLogger(__name__)

# Score weights
EXACT_AMOUNT_POINTS = 30
TOLERANT_AMOUNT_POINTS = 20
SAME_DATE_POINTS = 25
NEAR_DATE_POINTS = 15
SAME_TYPE_POINTS = 10
SAME_FUND_POINTS = 15
PAYEE_POINTS = 10
DESCRIPTION_POINTS = 10
SAME_CATEGORY_POINTS = 5

PAYEE_SIMILARITY_THRESHOLD = 0.8
DESCRIPTION_SIMILARITY_THRESHOLD = 0.7

MAX_SCORE = 100
ENTRY_WARNING_LIMIT = 5


def bucket_key(transaction: Transaction) -> str:
    return f"{transaction.amount:.2f}|{transaction.date:%Y-%m}|{transaction.type.value}"


def classify_score(score: float) -> Optional[DuplicateMatchType]:
    """Match tier for a score, or None below the reporting threshold."""
    if score >= 80:
        return DuplicateMatchType.EXACT
    if score >= 50:
        return DuplicateMatchType.LIKELY
    if score >= 30:
        return DuplicateMatchType.POSSIBLE
    return None


def score_pair(
    first: Transaction,
    second: Transaction,
    criteria: DuplicateSearchCriteria,
) -> Optional[tuple[float, List[str]]]:
    """
    Weighted similarity of two transactions.

    Returns (score, matching criteria), or None when the pair is rejected
    outright (dates too far apart or different types).
    """
    score = 0.0
    reasons = []

    if first.amount == second.amount:
        score += EXACT_AMOUNT_POINTS
        reasons.append("Exact amount match")
    elif criteria.amount_tolerance_percent > 0:
        allowed = first.amount * criteria.amount_tolerance_percent / 100
        if abs(first.amount - second.amount) <= allowed:
            score += TOLERANT_AMOUNT_POINTS
            reasons.append(f"Amount within {criteria.amount_tolerance_percent}% tolerance")

    days_apart = abs((first.date - second.date).days)
    if days_apart == 0:
        score += SAME_DATE_POINTS
        reasons.append("Same date")
    elif days_apart <= criteria.date_range_days:
        score += NEAR_DATE_POINTS
        reasons.append(f"Dates within {days_apart} days")
    else:
        return None

    if first.type != second.type:
        return None
    score += SAME_TYPE_POINTS
    reasons.append("Same transaction type")

    if criteria.match_fund and first.fund_id is not None and first.fund_id == second.fund_id:
        score += SAME_FUND_POINTS
        reasons.append("Same fund")

    if criteria.match_payee and first.payee and second.payee:
        similarity = string_similarity(first.payee, second.payee)
        if similarity >= PAYEE_SIMILARITY_THRESHOLD:
            score += PAYEE_POINTS * similarity
            reasons.append(f"Payee similarity: {similarity:.0%}")

    if criteria.match_description and first.description and second.description:
        similarity = string_similarity(first.description, second.description)
        if similarity >= DESCRIPTION_SIMILARITY_THRESHOLD:
            score += DESCRIPTION_POINTS * similarity
            reasons.append(f"Description similarity: {similarity:.0%}")

    if criteria.match_category and first.category_id == second.category_id:
        score += SAME_CATEGORY_POINTS
        reasons.append("Same category")

    return min(score, MAX_SCORE), reasons


class DuplicateDetectionService:

    def __init__(
        self,
        db: AsyncSession,
        transaction_service: Optional[TransactionService] = None,
        dismissals: Optional[DismissedPairRepository] = None,
    ):
        self.db = db
        self.transactions = transaction_service or TransactionService(db)
        self.dismissals = dismissals or DismissedPairRepository(db)

    async def find_duplicates(self, criteria: Optional[DuplicateSearchCriteria] = None) -> List[DuplicateMatch]:
        """Ranked candidate duplicate pairs for the given criteria."""
        criteria = criteria or DuplicateSearchCriteria()

        stmt = (
            select(Transaction)
            .options(selectinload(Transaction.splits))
            .where(Transaction.is_deleted == False)  # noqa: E712
            .order_by(Transaction.id)
        )
        if criteria.start_date:
            stmt = stmt.where(Transaction.date >= criteria.start_date)
        if criteria.end_date:
            stmt = stmt.where(Transaction.date <= criteria.end_date)

        result = await self.db.execute(stmt)
        candidates = list(result.scalars().all())

        buckets = defaultdict(list)
        for transaction in candidates:
            buckets[bucket_key(transaction)].append(transaction)

        dismissed = await self.dismissals.load_keys()
        matches = []
        for members in buckets.values():
            if len(members) < 2:
                continue
            for i, first in enumerate(members):
                for second in members[i + 1:]:
                    if pair_key(first.id, second.id) in dismissed:
                        continue
                    match = self.analyze_match(first, second, criteria)
                    if match is not None:
                        matches.append(match)

        matches.sort(key=lambda m: (-m.similarity_score, m.match_type.rank))

        logger.info(
            "Duplicate scan finished",
            extra={
                "candidates": len(candidates),
                "buckets": len(buckets),
                "matches": len(matches),
            }
        )
        return matches

    def analyze_match(
        self,
        first: Transaction,
        second: Transaction,
        criteria: DuplicateSearchCriteria,
    ) -> Optional[DuplicateMatch]:
        """Score one pair; None if rejected or weaker than the minimum tier."""
        scored = score_pair(first, second, criteria)
        if scored is None:
            return None

        score, reasons = scored
        match_type = classify_score(score)
        if match_type is None or match_type.rank > criteria.minimum_match_type.rank:
            return None

        return DuplicateMatch(
            transaction1_id=first.id,
            transaction2_id=second.id,
            transaction1=TransactionResponse.model_validate(first),
            transaction2=TransactionResponse.model_validate(second),
            similarity_score=Decimal(str(round(score, 2))),
            matching_criteria=reasons,
            match_type=match_type,
        )

    async def resolve_duplicate(
        self,
        transaction1_id: int,
        transaction2_id: int,
        resolution: DuplicateResolution,
    ) -> None:
        """
        Apply a reviewer decision to a duplicate pair.

        Keep / Dismiss only remember the pair; the other resolutions
        soft-delete one side through the transaction service, which keeps
        aggregates consistent.
        """
        logger.info(
            "Resolving duplicate pair",
            extra={
                "transaction1_id": transaction1_id,
                "transaction2_id": transaction2_id,
                "resolution": resolution.value,
            }
        )

        if resolution in (DuplicateResolution.KEEP, DuplicateResolution.DISMISS):
            await self.dismiss_pair(transaction1_id, transaction2_id)
        elif resolution == DuplicateResolution.DELETE_1:
            await self.transactions.soft_delete(transaction1_id)
        elif resolution == DuplicateResolution.DELETE_2:
            await self.transactions.soft_delete(transaction2_id)
        elif resolution == DuplicateResolution.MERGE_INTO_1:
            await self.transactions.soft_delete(transaction2_id)
            logger.info("Merged transaction %s into %s", transaction2_id, transaction1_id)
        elif resolution == DuplicateResolution.MERGE_INTO_2:
            await self.transactions.soft_delete(transaction1_id)
            logger.info("Merged transaction %s into %s", transaction1_id, transaction2_id)
        else:
            assert_never(resolution)

        await record_audit(
            self.transactions.audit,
            AuditAction.DUPLICATE_RESOLVED,
            "Transaction",
            transaction1_id,
            f"Resolved duplicate pair #{transaction1_id} / #{transaction2_id} as {resolution.value}",
            new_values={
                "transaction1_id": transaction1_id,
                "transaction2_id": transaction2_id,
                "resolution": resolution,
            }
        )

    async def dismiss_pair(self, transaction1_id: int, transaction2_id: int) -> None:
        """Remember a pair as reviewed so later scans skip it."""
        async with transactional(self.db):
            await self.dismissals.add(transaction1_id, transaction2_id)

    async def is_dismissed_pair(self, transaction1_id: int, transaction2_id: int) -> bool:
        return await self.dismissals.contains(transaction1_id, transaction2_id)

    async def get_duplicate_count(self) -> int:
        """Number of likely-or-better duplicates, for the dashboard badge."""
        criteria = DuplicateSearchCriteria(
            date_range_days=settings.duplicate_date_range_days,
            minimum_match_type=DuplicateMatchType(settings.duplicate_dashboard_min_match),
        )
        return len(await self.find_duplicates(criteria))

    async def check_entry(
        self,
        entry_date: date,
        amount: Decimal,
        payee: Optional[str] = None,
    ) -> List[Transaction]:
        """Live transactions that look like the entry about to be recorded."""
        stmt = (
            select(Transaction)
            .where(
                Transaction.is_deleted == False,  # noqa: E712
                Transaction.date == entry_date,
                Transaction.amount == amount,
            )
            .order_by(Transaction.id)
            .limit(ENTRY_WARNING_LIMIT)
        )
        if payee:
            stmt = stmt.where(func.lower(func.trim(Transaction.payee)) == payee.strip().lower())

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
