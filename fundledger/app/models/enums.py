"""
Ledger enumerations.

Defines the closed sets of values used by funds, grants, donors,
categories and transactions.
"""

import enum


class TransactionType(str, enum.Enum):
    """Transaction type for income/expense classification."""
    INCOME = "Income"
    EXPENSE = "Expense"
    TRANSFER = "Transfer"


class CategoryType(str, enum.Enum):
    """Whether a category tracks income or expense."""
    INCOME = "Income"
    EXPENSE = "Expense"


class FundType(str, enum.Enum):
    """
    Fund restriction status.

    Types:
        UNRESTRICTED: Usable for any purpose
        RESTRICTED: Designated for a specific purpose by donor or grantor
        TEMPORARILY_RESTRICTED: Time or purpose constrained
        PERMANENTLY_RESTRICTED: Endowment-style, principal never spent
    """
    UNRESTRICTED = "Unrestricted"
    RESTRICTED = "Restricted"
    TEMPORARILY_RESTRICTED = "TemporarilyRestricted"
    PERMANENTLY_RESTRICTED = "PermanentlyRestricted"


class GrantStatus(str, enum.Enum):
    """Grant lifecycle status."""
    PENDING = "Pending"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    EXPIRED = "Expired"
    REJECTED = "Rejected"


class DonorType(str, enum.Enum):
    """Donor categorization."""
    INDIVIDUAL = "Individual"
    SMALL_BUSINESS = "SmallBusiness"
    CORPORATE = "Corporate"
    FOUNDATION = "Foundation"
    GOVERNMENT = "Government"
    OTHER = "Other"


class RecurrencePattern(str, enum.Enum):
    """Supported schedules for recurring transaction templates."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class DuplicateMatchType(str, enum.Enum):
    """
    Duplicate match tier, strongest first.

    Tiers:
        EXACT: score >= 80
        LIKELY: score >= 50
        POSSIBLE: score >= 30
    """
    EXACT = "Exact"
    LIKELY = "Likely"
    POSSIBLE = "Possible"

    @property
    def rank(self) -> int:
        return _MATCH_RANK[self]


_MATCH_RANK = {
    DuplicateMatchType.EXACT: 0,
    DuplicateMatchType.LIKELY: 1,
    DuplicateMatchType.POSSIBLE: 2,
}


class DuplicateResolution(str, enum.Enum):
    """Reviewer decision for a duplicate match."""
    KEEP = "Keep"  # Both are genuine, remember the pair as reviewed
    DISMISS = "Dismiss"  # Not duplicates, remember the pair as reviewed
    DELETE_1 = "Delete1"  # Soft-delete transaction 1
    DELETE_2 = "Delete2"  # Soft-delete transaction 2
    MERGE_INTO_1 = "MergeInto1"  # Keep transaction 1, soft-delete transaction 2
    MERGE_INTO_2 = "MergeInto2"  # Keep transaction 2, soft-delete transaction 1
