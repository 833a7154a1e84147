import asyncio
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime

from spoken_ledger.classifiers.keywords import classify_by_keywords
from spoken_ledger.core import settings
from spoken_ledger.domain.amount import extract_amount, strip_amounts
from spoken_ledger.domain.categories import category_color, display_name, name_key
from spoken_ledger.domain.details import (
    extract_short_description,
    extract_vendor,
    parse_date_from_text,
    parse_payment_type,
)
from spoken_ledger.errors import (
    CategoryConflictError,
    CategoryResolutionError,
    CategoryValidationError,
    DraftSubmittedError,
)
from spoken_ledger.integration.store import CategoryStore
from spoken_ledger.logger import get_logger
from spoken_ledger.manager import CategorizerService
from spoken_ledger.models import (
    AiSuggestedCategory,
    CategoryBucket,
    DraftResolution,
    ReconcileAction,
    ReconciliationResult,
    TransactionDraft,
)
from spoken_ledger.services.reconciliation import reconcile_category

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Binding:
    category_id: str
    action: ReconcileAction | None = None
    created: bool = False
    fallback: bool = False


_MISC_BINDING = _Binding(category_id=CategoryBucket.MISC.value, fallback=True)


@dataclass
class _KeyedLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


def _as_bucket(label: str) -> CategoryBucket | None:
    try:
        return CategoryBucket(label)
    except ValueError:
        return None


class TranscriptionOrchestrator:
    """
    Turns a spoken transcript into a transaction draft with a resolved category.

    Parsing is synchronous. The remote categorizer and the category store are
    the only awaited collaborators, and both are bounded by `timeout`.
    """

    def __init__(
        self,
        categorizer: CategorizerService,
        store: CategoryStore,
        *,
        timeout: float | None = None,
        default_payment_type: str = settings.DEFAULT_PAYMENT_TYPE,
    ) -> None:
        self.categorizer = categorizer
        self.store = store
        self.timeout = timeout
        self.default_payment_type = default_payment_type
        self._revision_counter = itertools.count(1)
        self._revisions: dict[str, int] = {}
        self._creation_locks: dict[tuple[str, str], _KeyedLock] = {}

    def build_draft(self, transcript: str, *, now: datetime | None = None) -> TransactionDraft:
        text = (transcript or "").strip()
        now = now or datetime.now()
        vendor = extract_vendor(text)
        draft = TransactionDraft(
            transcript=text,
            vendor_name=vendor,
            description=extract_short_description(text, vendor),
            amount=extract_amount(text),
            category=classify_by_keywords(text).value,
            payment_type=parse_payment_type(text) or self.default_payment_type,
            timestamp=parse_date_from_text(text, now) or now,
        )
        logger.debug(
            "[DRAFT] %s: amount=%s vendor=%s category=%s",
            draft.draft_id,
            draft.amount,
            draft.vendor_name,
            draft.category,
        )
        return draft

    async def suggest_category(
        self,
        draft: TransactionDraft,
        *,
        timeout: float | None = None,
    ) -> TransactionDraft:
        """Attach an AI suggestion. The remote model sees the transcript without amounts."""
        text = strip_amounts(draft.transcript) or draft.transcript
        result = await self.categorizer.suggest(
            text,
            fallback_text=draft.transcript,
            timeout=timeout if timeout is not None else self.timeout,
        )
        suggestion = AiSuggestedCategory(
            name=display_name(result.mapped),
            bucket=_as_bucket(result.mapped),
            source=result.source,
            confidence=result.confidence,
        )
        return draft.update(category=result.mapped, suggestion=suggestion)

    def _forget(self, draft_id: str, revision: int) -> None:
        if self._revisions.get(draft_id) == revision:
            del self._revisions[draft_id]

    @asynccontextmanager
    async def _creation_lock(self, user_id: str, name: str):
        key = (user_id, name_key(name))
        entry = self._creation_locks.setdefault(key, _KeyedLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._creation_locks[key]

    async def _recover_conflict(
        self,
        user_id: str,
        result: ReconciliationResult,
        exc: CategoryConflictError,
    ) -> _Binding:
        logger.info("[RESOLVE] '%s' already exists for %s; refetching.", result.clean_name, user_id)
        categories = await self.store.list_categories(user_id, use_cache=False)
        retry = reconcile_category(result.clean_name, result.origin == "ai", categories)
        if retry.action is ReconcileAction.USE_EXISTING and retry.category_id:
            return _Binding(category_id=retry.category_id, action=ReconcileAction.USE_EXISTING)
        raise CategoryResolutionError(
            f"Category {result.clean_name!r} conflicted but was not found for user {user_id}"
        ) from exc

    async def _bind_category(
        self,
        user_id: str,
        name: str,
        is_ai_suggested: bool,
        timeout: float | None,
    ) -> _Binding:
        categories = await self.store.list_categories(user_id)
        result = reconcile_category(name, is_ai_suggested, categories)
        if result.action is ReconcileAction.USE_EXISTING and result.category_id:
            return _Binding(category_id=result.category_id, action=ReconcileAction.USE_EXISTING)

        async with self._creation_lock(user_id, result.clean_name):
            # A concurrent draft may have created it while we waited.
            categories = await self.store.list_categories(user_id, use_cache=False)
            result = reconcile_category(name, is_ai_suggested, categories)
            if result.action is ReconcileAction.USE_EXISTING and result.category_id:
                return _Binding(category_id=result.category_id, action=ReconcileAction.USE_EXISTING)

            to_create = result.name_to_create or result.clean_name
            try:
                record = await asyncio.wait_for(
                    self.store.create_category(user_id, to_create, color=category_color(to_create)),
                    timeout,
                )
            except CategoryConflictError as exc:
                return await self._recover_conflict(user_id, result, exc)

        logger.info("[RESOLVE] Created category '%s' (%s) for %s", record.name, record.id, user_id)
        return _Binding(category_id=record.id, action=ReconcileAction.CREATE, created=True)

    async def resolve(
        self,
        user_id: str,
        draft: TransactionDraft,
        category_name: str | None = None,
        *,
        ai_suggested: bool = False,
        timeout: float | None = None,
    ) -> DraftResolution:
        """
        Bind the draft to one of the user's categories, creating it if needed.

        Without `category_name` the draft's AI suggestion is used. When several
        resolutions for the same draft overlap, only the latest one updates the
        draft; earlier ones come back with `stale=True`.
        """
        if draft.submitted:
            raise DraftSubmittedError(f"Draft {draft.draft_id} was already submitted")

        if category_name is None:
            if draft.suggestion is None:
                raise CategoryValidationError("Category name is required", field="name")
            category_name = draft.suggestion.label
            ai_suggested = True

        revision = next(self._revision_counter)
        self._revisions[draft.draft_id] = revision
        limit = timeout if timeout is not None else self.timeout

        try:
            binding = await self._bind_category(user_id, category_name, ai_suggested, limit)
        except (CategoryValidationError, CategoryResolutionError):
            self._forget(draft.draft_id, revision)
            raise
        except asyncio.TimeoutError:
            logger.warning("[RESOLVE] Category '%s' timed out after %ss; using misc.", category_name, limit)
            binding = _MISC_BINDING
        except Exception as exc:
            logger.warning("[RESOLVE] Category '%s' failed (%s); using misc.", category_name, exc)
            binding = _MISC_BINDING

        if self._revisions.get(draft.draft_id) != revision:
            logger.info("[RESOLVE] Draft %s was superseded; keeping the newer category.", draft.draft_id)
            return DraftResolution(
                draft=draft,
                category_id=binding.category_id,
                action=binding.action,
                created=binding.created,
                stale=True,
                fallback=binding.fallback,
            )

        self._forget(draft.draft_id, revision)
        return DraftResolution(
            draft=draft.update(category=binding.category_id, suggestion=None),
            category_id=binding.category_id,
            action=binding.action,
            created=binding.created,
            fallback=binding.fallback,
        )

    def submit(self, draft: TransactionDraft) -> TransactionDraft:
        """Freeze the draft. Resolutions still in flight for it become stale."""
        self._revisions.pop(draft.draft_id, None)
        return draft.mark_submitted()

    async def process(
        self,
        user_id: str,
        transcript: str,
        *,
        timeout: float | None = None,
        now: datetime | None = None,
    ) -> DraftResolution:
        draft = self.build_draft(transcript, now=now)
        draft = await self.suggest_category(draft, timeout=timeout)
        return await self.resolve(user_id, draft, timeout=timeout)

    async def aclose(self) -> None:
        await self.categorizer.aclose()
        await self.store.aclose()
