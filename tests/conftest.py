import sys
from pathlib import Path

import pytest

# Ensure the src layout is importable as top-level `webflow`
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_ROOT = PROJECT_ROOT / "src"
if SRC_ROOT.exists() and str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


@pytest.fixture(autouse=True)
def _clean_webflow_env(monkeypatch):
    for name in ("WEBFLOW_TOKEN", "WEBFLOW_HOST", "WEBFLOW_API_VERSION", "WEBFLOW_TIMEOUT", "WEBFLOW_DEBUG"):
        monkeypatch.delenv(name, raising=False)
