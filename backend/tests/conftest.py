import os

import pytest

# Credentials for every provider so scope resolution succeeds; no test reaches
# a real provider because the provider factory is always replaced.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("NVIDIA_API_KEY", "test-nvidia-key")
os.environ.setdefault("OPENROUTER_API_KEY", "test-openrouter-key")
os.environ.setdefault("AI_BATCH_DELAY_SECONDS", "0")
os.environ.setdefault("AI_BACKOFF_JITTER_SECONDS", "0")

from insight_api.core.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Some tests mutate env vars and clear the settings cache. Ensure we don't leak
    # a cached Settings instance across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_ai_breakers():
    from insight_api.main import app

    app.state.ai_breakers.reset()
    yield
    app.state.ai_breakers.reset()
