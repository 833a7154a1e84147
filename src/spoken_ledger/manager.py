import asyncio
import os

from spoken_ledger.classifiers.base import RemoteCategorizer
from spoken_ledger.classifiers.huggingface import HuggingFaceCategorizer
from spoken_ledger.classifiers.keywords import KeywordCategoryClassifier
from spoken_ledger.classifiers.llm import LLMCategorizer
from spoken_ledger.core import settings
from spoken_ledger.logger import get_logger
from spoken_ledger.models import CategorizationResult, CategoryBucket

logger = get_logger(__name__)


def build_remote_categorizer(backend: str | None = None) -> RemoteCategorizer | None:
    """Pick the remote backend from CATEGORIZER_BACKEND and the available keys."""
    backend = (backend or settings.get_env_str("CATEGORIZER_BACKEND", "") or "").lower()
    hf_key = os.getenv("HUGGINGFACE_API_KEY")
    openai_key = os.getenv("OPENAI_API_KEY")

    if backend == "keywords":
        logger.info("Remote categorizer disabled; keyword classifier only.")
        return None
    if backend in {"", "huggingface"} and hf_key:
        logger.info("Hugging Face categorizer enabled.")
        return HuggingFaceCategorizer(api_key=hf_key)
    if backend in {"", "openai"} and openai_key:
        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        base_url = os.getenv("OPENAI_BASE_URL")
        logger.info(f"LLM categorizer enabled: model={model}, base_url={base_url or 'default'}")
        return LLMCategorizer(api_key=openai_key, model=model, base_url=base_url)

    logger.warning(
        "No key found for categorizer backend '%s'. Keyword classifier only.",
        backend or "auto",
    )
    return None


class CategorizerService:
    def __init__(
        self,
        remote: RemoteCategorizer | None = None,
        *,
        timeout: float | None = None,
        min_confidence: float = 0.0,
    ):
        self.remote = remote
        self.keywords = KeywordCategoryClassifier()
        self.timeout = timeout
        self.min_confidence = min_confidence

    @classmethod
    def from_env(cls) -> "CategorizerService":
        return cls(
            build_remote_categorizer(),
            timeout=settings.get_env_float(
                "CATEGORIZE_TIMEOUT", settings.DEFAULT_CATEGORIZE_TIMEOUT, min_value=0.0
            ) or None,
            min_confidence=settings.get_env_float(
                "CATEGORIZE_MIN_CONFIDENCE", settings.DEFAULT_MIN_CONFIDENCE, min_value=0.0
            ),
        )

    def _needs_fallback(self, result: CategorizationResult) -> bool:
        if result.mapped == CategoryBucket.MISC.value:
            return True
        return result.confidence is not None and result.confidence < self.min_confidence

    async def suggest(
        self,
        text: str,
        *,
        fallback_text: str | None = None,
        timeout: float | None = None,
    ) -> CategorizationResult:
        """
        Ask the remote categorizer, falling back to keywords on failure,
        timeout, a misc answer, or low confidence. Never raises.
        """
        keyword_text = fallback_text or text
        if self.remote is None:
            return self.keywords.classify(keyword_text)

        limit = timeout if timeout is not None else self.timeout
        remote_name = self.remote.__class__.__name__
        try:
            result = await asyncio.wait_for(self.remote.categorize(text), limit)
        except asyncio.TimeoutError:
            logger.warning("[CATEGORIZE] %s timed out after %ss; using keywords.", remote_name, limit)
            return self.keywords.classify(keyword_text)
        except Exception as exc:
            logger.warning("[CATEGORIZE] %s failed (%s); using keywords.", remote_name, exc)
            return self.keywords.classify(keyword_text)

        logger.debug(
            "[CATEGORIZE] %s returned '%s' (confidence: %s)",
            remote_name,
            result.mapped,
            result.confidence,
        )
        if self._needs_fallback(result):
            keyword_result = self.keywords.classify(keyword_text)
            if keyword_result.mapped != CategoryBucket.MISC.value:
                return keyword_result.model_copy(update={"raw": result.raw})
        return result

    async def aclose(self) -> None:
        if self.remote is not None:
            await self.remote.aclose()
