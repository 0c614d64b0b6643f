import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

import httpx
import pytest

from chatai_client import ChatAIClient

from .utils import TEST_API_KEY, TEST_BASE_URL


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith("CHATAI_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def make_client():
    def _make(handler, **overrides) -> ChatAIClient:
        overrides.setdefault("api_key", TEST_API_KEY)
        overrides.setdefault("base_url", TEST_BASE_URL)
        return ChatAIClient(transport=httpx.MockTransport(handler), **overrides)

    return _make
