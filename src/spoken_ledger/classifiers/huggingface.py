import asyncio
import json
import os
from typing import Any

import httpx

from spoken_ledger.classifiers.base import RemoteCategorizer
from spoken_ledger.classifiers.keywords import classify_by_keywords, map_label_to_bucket
from spoken_ledger.errors import CategorizerUnavailableError
from spoken_ledger.logger import get_logger
from spoken_ledger.models import CategorizationResult, CategoryBucket

logger = get_logger(__name__)

DEFAULT_MODEL_URL = "https://router.huggingface.co/hf-inference/kuro-08/bert-transaction-categorization"


def _parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def _best_prediction(output: Any) -> tuple[str, float | None]:
    # Text-classification endpoints answer [[{label, score}, ...]] or [{label, score}, ...].
    if isinstance(output, list) and output and isinstance(output[0], list):
        output = output[0]
    if isinstance(output, list) and output:
        candidates = [item for item in output if isinstance(item, dict)]
        if candidates:
            best = max(candidates, key=lambda item: item.get("score") or 0.0)
            return str(best.get("label") or ""), best.get("score")
        return str(output[0]), None
    if isinstance(output, dict) and output.get("label"):
        return str(output["label"]), output.get("score")
    if isinstance(output, str):
        return output, None
    return "", None


class HuggingFaceCategorizer(RemoteCategorizer):
    def __init__(
        self,
        api_key: str | None = None,
        model_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = 30.0,
    ):
        self.api_key = api_key or os.getenv("HUGGINGFACE_API_KEY")
        self.model_url = model_url or os.getenv("HUGGINGFACE_MODEL_URL") or DEFAULT_MODEL_URL
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    async def categorize(self, text: str) -> CategorizationResult:
        if not self.api_key:
            raise CategorizerUnavailableError("Missing HUGGINGFACE_API_KEY")

        client = await self._get_client()
        response = await client.post(
            self.model_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={"inputs": text, "options": {"wait_for_model": True}},
            timeout=self.timeout,
        )
        raw_text = response.text
        if response.is_error:
            logger.warning(
                "[CATEGORIZE] Hugging Face error %s, using keywords for: '%s'",
                response.status_code,
                text[:200],
            )
            snippet = raw_text[:1000] if raw_text else f"status {response.status_code}"
            return CategorizationResult(
                mapped=classify_by_keywords(text).value,
                source="keywords",
                raw={"status": response.status_code, "body": snippet},
            )

        output = _parse_body(raw_text)
        label, score = _best_prediction(output)
        bucket = map_label_to_bucket(label)
        if bucket is CategoryBucket.MISC:
            logger.debug("[CATEGORIZE] Model label '%s' mapped to misc", label)
        return CategorizationResult(
            mapped=bucket.value,
            source="huggingface",
            confidence=float(score) if score is not None else None,
            raw=output,
        )
