import os

from api import state
from api.backend import BackendAPI

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))


def get_backend() -> BackendAPI:
    return state.backend
