from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.salesy.core import observability as obs  # noqa: E402


@pytest.fixture(autouse=True)
def _open_middleware(monkeypatch):
    """Run API tests without auth or rate limiting regardless of the host env.

    Tests that exercise either feature patch the class attributes again.
    """

    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", None, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_per_minute", 0, raising=False)
