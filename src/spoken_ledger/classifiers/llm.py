import asyncio
import os

from openai import OpenAI

from spoken_ledger.classifiers.base import RemoteCategorizer
from spoken_ledger.logger import get_logger
from spoken_ledger.models import CategorizationResult, CategoryBucket

logger = get_logger(__name__)

BUCKET_NAMES = [bucket.value for bucket in CategoryBucket]


class LLMCategorizer(RemoteCategorizer):
    def __init__(self, api_key: str | None = None, model: str = "gpt-4o-mini", base_url: str | None = None):
        self.client = OpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url or os.getenv("OPENAI_BASE_URL") or None
        )
        self.model = model

    def classify(self, text: str) -> CategorizationResult:
        prompt = f"""
        Categorize this spoken expense into one personal finance category.
        Expense: {text}
        Use ONLY one of the following categories: {", ".join(BUCKET_NAMES)}

        Return ONLY the category name. If unsure, return 'misc'.
        """

        try:
            response = self.client.responses.create(
                model=self.model,
                instructions="You are a helpful financial assistant.",
                input=prompt,
                temperature=0.0
            )
        except Exception as e:
            logger.error(f"LLM Error: {e}")
            raise

        label = (self._extract_output_text(response) or "").strip().strip(".'\"").lower()
        if label not in BUCKET_NAMES:
            logger.debug("[CATEGORIZE] LLM answered outside the bucket list: '%s'", label)
            label = CategoryBucket.MISC.value

        return CategorizationResult(
            mapped=label,
            source="llm",
            confidence=0.9, # the Responses API reports no score
            raw=label,
        )

    async def categorize(self, text: str) -> CategorizationResult:
        return await asyncio.to_thread(self.classify, text)

    @staticmethod
    def _extract_output_text(response: object) -> str | None:
        output_text = getattr(response, "output_text", None)
        if output_text:
            return output_text

        output = getattr(response, "output", None)
        if not output:
            return None

        parts: list[str] = []
        for item in output:
            content = getattr(item, "content", None)
            if not content:
                continue
            for block in content:
                block_type = getattr(block, "type", None)
                if block_type in {"output_text", "text"}:
                    text = getattr(block, "text", None)
                    if text:
                        parts.append(text)

        if parts:
            return "".join(parts)
        return None
