import os
from unittest.mock import patch

import pytest

from hostdesk.core.config import get_settings
from hostdesk.models.request import Base
from hostdesk.utils.alerting import alert_tracker
from hostdesk.utils.rate_limit import rate_limiter

from helpers import admin_env, make_memory_sessionmaker


@pytest.fixture(autouse=True)
def _reset_process_state():
    # Tests patch env vars; never leak a cached Settings or limiter state across tests.
    get_settings.cache_clear()
    rate_limiter.reset()
    alert_tracker.reset()
    yield
    get_settings.cache_clear()
    rate_limiter.reset()


@pytest.fixture
def settings_env():
    with patch.dict(os.environ, admin_env(), clear=False):
        get_settings.cache_clear()
        yield get_settings()


@pytest.fixture
def db_session(settings_env):
    engine, SessionLocal = make_memory_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
