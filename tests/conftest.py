import sys
import os

import pytest

# Add project root to sys.path so tests can import top-level modules like 'storage', 'scoring', 'normalize', etc.
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from normalize.models import Team  # noqa: E402
from storage.sqlite import SQLiteStore  # noqa: E402


@pytest.fixture
def store():
    s = SQLiteStore()
    s.save_team(Team('t1', 'Platform', 'acme/platform'))
    yield s
    s.close()
