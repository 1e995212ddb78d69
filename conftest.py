import os
import sys
from pathlib import Path

import pytest

# Ensure repo root on sys.path for imports from anywhere in tests tree.
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DSPCTL_ENV", "test")

from dspctl.signal_flow.service import set_signal_flow_service  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_signal_flow_service():
    set_signal_flow_service(None)
    yield
    set_signal_flow_service(None)
