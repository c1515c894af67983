import logging
import os

from api.backend import BackendAPI
from storage.json_store import JsonFileStore
from storage.memory_store import InMemoryStore
from storage.store import Store

logger = logging.getLogger(__name__)

STORE_PATH = os.getenv("CLEANOPS_STORE_PATH", "").strip()


def build_store() -> Store:
    if STORE_PATH:
        logger.info(f"Using JSON file store at {STORE_PATH}")
        return JsonFileStore(STORE_PATH)
    logger.info("Using in-memory store; data is lost on restart")
    return InMemoryStore()


# Global instances initialized at import
store: Store = build_store()
backend = BackendAPI(store)
