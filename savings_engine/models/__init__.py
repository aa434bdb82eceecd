"""
Data Models Package

This package contains all Pydantic models used by the Savings Engine.
All data flowing through the engine must conform to these schemas.
"""

from savings_engine.models.entry import (
    ENTRY_KIND_ADAPTER,
    ClassificationResult,
    ClassificationSource,
    ClassifiedEntry,
    EntryCategory,
    EntryDraft,
    EntryKind,
    EntryMetadata,
    EntryUpdate,
    ExpenseKind,
    FinancialEntry,
    Frequency,
    IncomeKind,
    InvestmentKind,
    LoanKind,
    TypeHint,
    ValidationIssue,
    ValidationResult,
    parse_amount,
)
from savings_engine.models.dashboard import (
    Category,
    Dashboard,
    EstimateKey,
    MonthlyMetrics,
    NudgeKind,
    OnboardingState,
    OnboardingStatus,
    PotentialSavingsRecord,
    SavingEstimate,
    SavingStatus,
    SavingsProjection,
    SkippedEntry,
    estimate_key,
)
from savings_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entry models
    "ENTRY_KIND_ADAPTER",
    "ClassificationResult",
    "ClassificationSource",
    "ClassifiedEntry",
    "EntryCategory",
    "EntryDraft",
    "EntryKind",
    "EntryMetadata",
    "EntryUpdate",
    "ExpenseKind",
    "FinancialEntry",
    "Frequency",
    "IncomeKind",
    "InvestmentKind",
    "LoanKind",
    "TypeHint",
    "ValidationIssue",
    "ValidationResult",
    "parse_amount",
    # Dashboard models
    "Category",
    "Dashboard",
    "EstimateKey",
    "MonthlyMetrics",
    "NudgeKind",
    "OnboardingState",
    "OnboardingStatus",
    "PotentialSavingsRecord",
    "SavingEstimate",
    "SavingStatus",
    "SavingsProjection",
    "SkippedEntry",
    "estimate_key",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
