from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from spoken_ledger.errors import DraftSubmittedError

AI_SUGGESTED_MARKER = "(AI Suggested)"


class CategoryBucket(str, Enum):
    FOOD = "food"
    RENT = "rent"
    UTILITIES = "utilities"
    TRANSPORTATION = "transportation"
    ENTERTAINMENT = "entertainment"
    TRAVEL = "travel"
    GIFT = "gift"
    MISC = "misc"


class CategoryRecord(BaseModel):
    id: str
    name: str
    type: Literal["expense", "income"] = "expense"
    color: str | None = None
    user_id: str | None = None


class CategorizationResult(BaseModel):
    mapped: str # bucket value or free label
    source: str # "huggingface", "llm", "keywords"
    confidence: float | None = None # 0.0 to 1.0 when the backend reports one
    raw: Any = None


class AiSuggestedCategory(BaseModel):
    name: str
    bucket: CategoryBucket | None = None
    source: str
    confidence: float | None = None

    @property
    def label(self) -> str:
        return f"{self.name} {AI_SUGGESTED_MARKER}"


class ReconcileAction(str, Enum):
    USE_EXISTING = "use-existing"
    CREATE = "create"


class ReconciliationResult(BaseModel):
    action: ReconcileAction
    clean_name: str
    origin: Literal["ai", "user"]
    category_id: str | None = None
    name_to_create: str | None = None


class CategoryMerge(BaseModel):
    keep_id: str
    removed_id: str
    name: str | None = None
    moved_transactions: int = 0


class TransactionDraft(BaseModel):
    draft_id: str = Field(default_factory=lambda: uuid4().hex)
    transcript: str
    vendor_name: str | None = None
    description: str = ""
    amount: float | None = None
    category: str | None = None # bucket label or CategoryRecord id
    suggestion: AiSuggestedCategory | None = None
    payment_type: str = "Credit Card"
    timestamp: datetime = Field(default_factory=datetime.now)
    submitted: bool = False

    def update(self, **changes: Any) -> "TransactionDraft":
        if self.submitted:
            raise DraftSubmittedError(f"Draft {self.draft_id} was already submitted")
        return self.model_copy(update=changes)

    def mark_submitted(self) -> "TransactionDraft":
        return self.update(submitted=True)


class DraftResolution(BaseModel):
    draft: TransactionDraft
    category_id: str | None = None
    action: ReconcileAction | None = None
    created: bool = False
    stale: bool = False # a newer resolution for the same draft started meanwhile
    fallback: bool = False # category fell back to the misc bucket
