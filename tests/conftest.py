"""Shared pytest setup.

Tests run against the checkout under src/, even when another ultravec is
installed in the environment.
"""

import sys
from pathlib import Path

import pytest

_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

# Drop anything imported from an installed copy before collection
for _name in [m for m in sys.modules if m == "ultravec" or m.startswith("ultravec.")]:
    del sys.modules[_name]


@pytest.fixture(autouse=True)
def _no_leaked_run_id():
    """Keep run ids bound by one test out of the next one's log records."""
    yield
    from ultravec.core.logging import unbind_run_id

    unbind_run_id()
