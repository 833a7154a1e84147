import os

from spoken_ledger.core import settings
from spoken_ledger.integration.ledger import LedgerClient
from spoken_ledger.integration.store import CategoryStore, InMemoryCategoryStore
from spoken_ledger.logger import get_logger, setup_logging
from spoken_ledger.manager import CategorizerService
from spoken_ledger.services.transcription import TranscriptionOrchestrator

logger = get_logger(__name__)


def build_category_store() -> CategoryStore:
    if not os.getenv("LEDGER_URL"):
        logger.warning("LEDGER_URL not set. Categories are kept in memory only.")
        return InMemoryCategoryStore()
    if not os.getenv("LEDGER_TOKEN"):
        logger.warning("LEDGER_TOKEN not set. Ledger requests will fail.")
    return LedgerClient()


def create_orchestrator() -> TranscriptionOrchestrator:
    setup_logging()
    logger.info("Initializing services...")
    settings.log_environment()

    categorizer = CategorizerService.from_env()
    orchestrator = TranscriptionOrchestrator(
        categorizer,
        build_category_store(),
        timeout=categorizer.timeout,
        default_payment_type=settings.get_env_str("DEFAULT_PAYMENT_TYPE", settings.DEFAULT_PAYMENT_TYPE)
        or settings.DEFAULT_PAYMENT_TYPE,
    )
    logger.info("Services initialized.")
    return orchestrator
