import pytest

from spoken_ledger.app import create_orchestrator
from spoken_ledger.integration.ledger import LedgerClient
from spoken_ledger.integration.store import InMemoryCategoryStore


@pytest.fixture
def keyword_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    monkeypatch.setenv("CATEGORIZER_BACKEND", "keywords")
    monkeypatch.delenv("LOG_DIR", raising=False)
    monkeypatch.delenv("LEDGER_URL", raising=False)
    monkeypatch.delenv("LEDGER_TOKEN", raising=False)
    monkeypatch.delenv("DEFAULT_PAYMENT_TYPE", raising=False)
    monkeypatch.setenv("CATEGORIZE_TIMEOUT", "3")
    return monkeypatch


def test_in_memory_store_without_ledger_url(keyword_env: pytest.MonkeyPatch) -> None:
    orchestrator = create_orchestrator()

    assert isinstance(orchestrator.store, InMemoryCategoryStore)
    assert orchestrator.categorizer.remote is None
    assert orchestrator.timeout == 3.0
    assert orchestrator.default_payment_type == "Credit Card"


def test_ledger_store_from_env(keyword_env: pytest.MonkeyPatch) -> None:
    keyword_env.setenv("LEDGER_URL", "http://ledger")
    keyword_env.setenv("LEDGER_TOKEN", "secret")
    keyword_env.setenv("DEFAULT_PAYMENT_TYPE", "Cash")

    orchestrator = create_orchestrator()

    assert isinstance(orchestrator.store, LedgerClient)
    assert orchestrator.store.base_url == "http://ledger"
    assert orchestrator.default_payment_type == "Cash"


@pytest.mark.anyio
async def test_factory_orchestrator_processes_transcript(keyword_env: pytest.MonkeyPatch) -> None:
    orchestrator = create_orchestrator()

    resolution = await orchestrator.process("u1", "twenty dollars for pizza at Luigi's")

    assert resolution.created is True
    assert resolution.draft.amount == 20.0
    assert resolution.draft.vendor_name == "Luigi's"
    assert (await orchestrator.store.list_categories("u1"))[0].name == "Food"
    await orchestrator.aclose()
