"""
Financial Entry Models

These models define the shapes that flow from the entry store into the
classifier:
1. EntryDraft / EntryUpdate - what callers are allowed to write (strict)
2. FinancialEntry - what the store hands back (lenient, may be a legacy row)
3. EntryKind - the explicit Income | Expense | Investment | Loan tag
4. ClassifiedEntry / ClassificationResult - derived, never stored

DESIGN DECISION: The write side is strict and the read side is lenient.
Old rows can carry amounts that no longer parse; they must still come back
from the store so the classifier can report them instead of losing them.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryCategory(str, Enum):
    """The four buckets every entry ends up in."""
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"
    LOAN = "loan"

    @property
    def is_outflow(self) -> bool:
        """Expense, investment and loan money all leaves monthly income."""
        return self is not EntryCategory.INCOME


class Frequency(str, Enum):
    """How often the entered amount occurs."""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class TypeHint(str, Enum):
    """
    Optional hint stamped by a creation flow.

    Only LOAN changes classification; the others describe income sources.
    """
    SALARY = "salary"
    FREELANCE = "freelance"
    BUSINESS = "business"
    INVESTMENT = "investment"
    LOAN = "loan"
    OTHER = "other"


class ClassificationSource(str, Enum):
    """Where a ClassifiedEntry's category came from."""
    EXPLICIT_TAG = "explicit_tag"    # EntryKind stored on the row
    TYPE_HINT = "type_hint"          # type_hint="loan" from the loan flow
    INFERRED = "inferred"            # prefix + keyword rules (legacy rows)


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a stored amount leniently.

    Returns None for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


# =============================================================================
# ENTRY KIND - explicit tagged variant
# =============================================================================

class IncomeKind(BaseModel):
    """Money coming in."""
    category: Literal["income"] = "income"


class ExpenseKind(BaseModel):
    """Regular spending, e.g. Food or Utilities."""
    category: Literal["expense"] = "expense"
    expense_category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Spending category label"
    )


class InvestmentKind(BaseModel):
    """Recurring contribution to an investment."""
    category: Literal["investment"] = "investment"
    investment_kind: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Investment type, e.g. Mutual Funds"
    )


class LoanKind(BaseModel):
    """Monthly EMI on a loan."""
    category: Literal["loan"] = "loan"
    loan_kind: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Loan type, e.g. Home Loan"
    )
    principal: Optional[Decimal] = Field(default=None, ge=0)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)


EntryKind = Annotated[
    Union[IncomeKind, ExpenseKind, InvestmentKind, LoanKind],
    Field(discriminator="category"),
]

ENTRY_KIND_ADAPTER: TypeAdapter = TypeAdapter(EntryKind)


class EntryMetadata(BaseModel):
    """Extra details captured by the loan flow."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    loan_type: Optional[str] = Field(default=None, max_length=50)
    principal: Optional[Decimal] = Field(default=None, ge=0)
    interest_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Annual interest rate in percent"
    )


# =============================================================================
# STORED ENTRY
# =============================================================================

class FinancialEntry(BaseModel):
    """
    A single entry as it comes back from the entry store.

    Lenient on purpose: `amount` is None when the stored value could not be
    parsed, and `kind` is None for rows written before entries were tagged.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the entry"
    )
    raw_name: str = Field(
        default="",
        description="Free-text name, may carry the 'Expense:' prefix; length is only enforced on writes"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        description="Amount in INR; None when unparseable"
    )
    frequency: Frequency = Frequency.MONTHLY
    is_primary: bool = False
    type_hint: Optional[TypeHint] = None
    metadata: Optional[EntryMetadata] = None
    kind: Optional[EntryKind] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('raw_name', mode='before')
    @classmethod
    def none_name_is_empty(cls, v: Any) -> str:
        return "" if v is None else v

    @field_validator('amount', mode='before')
    @classmethod
    def lenient_amount(cls, v: Any) -> Optional[Decimal]:
        return parse_amount(v)

    @field_validator('frequency', mode='before')
    @classmethod
    def lowercase_frequency(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def is_legacy(self) -> bool:
        """Rows without an explicit tag predate creation-time tagging."""
        return self.kind is None


# =============================================================================
# WRITE MODELS
# =============================================================================

class EntryDraft(BaseModel):
    """
    What a creation flow (onboarding wizard, add-loan form, ...) submits.

    Strict: a negative or missing amount never reaches storage.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    raw_name: str = Field(
        default="",
        max_length=200,
        description="Free-text name, may carry the 'Expense:' prefix"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount in INR"
    )
    frequency: Frequency = Frequency.MONTHLY
    is_primary: bool = False
    type_hint: Optional[TypeHint] = None
    metadata: Optional[EntryMetadata] = None
    kind: Optional[EntryKind] = None


class EntryUpdate(BaseModel):
    """Partial update; only fields that were explicitly set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    raw_name: Optional[str] = Field(default=None, max_length=200)
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    frequency: Optional[Frequency] = None
    is_primary: Optional[bool] = None
    type_hint: Optional[TypeHint] = None
    metadata: Optional[EntryMetadata] = None
    kind: Optional[EntryKind] = None

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually set, as model objects (not dumped)."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    @property
    def touches_classification(self) -> bool:
        """Name or hint changed without a new explicit tag."""
        fields = self.model_fields_set
        return bool(fields & {"raw_name", "type_hint"}) and "kind" not in fields


# =============================================================================
# DERIVED MODELS
# =============================================================================

class ClassifiedEntry(BaseModel):
    """
    A FinancialEntry plus its derived category and display name.

    Never persisted; rebuilt on every dashboard read.
    """

    entry: FinancialEntry
    category: EntryCategory
    normalized_display_name: str = Field(..., min_length=1)
    source: ClassificationSource
    is_malformed: bool = False
    issues: list[str] = Field(
        default_factory=list,
        description="Why the entry is excluded from sums"
    )

    @property
    def id(self) -> UUID:
        return self.entry.id

    @property
    def amount(self) -> Decimal:
        """Amount that counts towards sums (0 for malformed entries)."""
        if self.is_malformed or self.entry.amount is None:
            return Decimal("0")
        return self.entry.amount

    @property
    def frequency(self) -> Frequency:
        return self.entry.frequency


class ClassificationResult(BaseModel):
    """
    Output of classifying a user's whole entry list.

    Every input entry lands in exactly one of the three lists.
    """

    entries: list[ClassifiedEntry] = Field(
        default_factory=list,
        description="Entries that count towards totals"
    )
    superseded: list[ClassifiedEntry] = Field(
        default_factory=list,
        description="Duplicates that lost the larger-amount merge"
    )
    malformed: list[ClassifiedEntry] = Field(
        default_factory=list,
        description="Entries kept for reporting but excluded from sums"
    )

    @property
    def total_count(self) -> int:
        return len(self.entries) + len(self.superseded) + len(self.malformed)

    def by_category(self, category: EntryCategory) -> list[ClassifiedEntry]:
        """Counted entries in one category."""
        return [c for c in self.entries if c.category == category]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unparseable', 'negative', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage entry validation.

    Stage 1: Schema validation (amount parses, sign, name present)
    Stage 2: Semantic validation (plausibility, duplicates, frequency)
    """

    entry_id: Optional[UUID] = Field(
        default=None,
        description="Stored entry being validated; None for drafts"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
