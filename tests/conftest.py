import sys
from pathlib import Path
from typing import Generator

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from deckstate.services.persistence.drivers.memory import InMemoryRemoteStore
from deckstate.services.persistence.local_storage import LocalStorage
from deckstate.services.status import StatusNotifier
from deckstate.shared.config import config as service_config
from deckstate.shared.encryption import FieldCipher
from deckstate.shared.models import CallerIdentity

TEST_SECRET = "deckstate-test-secret"


@pytest.fixture(autouse=True)
def test_environment(tmp_path: Path) -> Generator[None, None, None]:
    """Point storage at a per-test directory and pin the tuning values."""
    original = dict(service_config.config)
    original_pipeline = dict(service_config.pipeline_config)

    service_config.set("encryption_secret", TEST_SECRET)
    service_config.set("local_storage_root", str(tmp_path / "local"))
    service_config.set("remote_store_driver", "memory")
    service_config.set("autosave", True)
    service_config.set_pipeline_config(
        {"history": {"limit": 50}, "status": {"ttl_seconds": 3}, "persistence": {"timeout_seconds": 2}}
    )
    try:
        yield
    finally:
        service_config.config = original
        service_config.set_pipeline_config(original_pipeline)


@pytest.fixture
def cipher() -> FieldCipher:
    return FieldCipher(TEST_SECRET)


@pytest.fixture
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def local_storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "local"))


@pytest.fixture
def notifier() -> StatusNotifier:
    return StatusNotifier(ttl_seconds=3)


@pytest.fixture
def caller() -> CallerIdentity:
    return CallerIdentity(user_id="user-1", email="ada@example.com", display_name="Ada")
