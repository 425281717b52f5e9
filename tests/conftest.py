import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import pubky_app`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from pubky_app.ids import TimestampClock, set_default_clock  # noqa: E402
from pubky_app.runtime.config import get_config_manager  # noqa: E402

# 2024-08-28T12:36:42.185471Z, the instant behind /pub/pubky.app/posts/00321FCW75ZFY
EXAMPLE_POST_MICROS = 1_724_848_602_185_471
EXAMPLE_POST_ID = "00321FCW75ZFY"


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless PUBKY_APP_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_slow = _env_flag('PUBKY_APP_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set PUBKY_APP_RUN_SLOW=1 to enable'))


class FakeTime:
    """Settable nanosecond time source for ``TimestampClock``."""

    def __init__(self, ns: int):
        self.ns = ns

    def __call__(self) -> int:
        return self.ns

    def advance(self, ns: int) -> None:
        self.ns += ns


@pytest.fixture(autouse=True)
def _fresh_runtime():
    """Every test starts from default configuration and a fresh process clock."""
    manager = get_config_manager()
    manager.reset()
    previous = set_default_clock(None)
    yield
    manager.reset()
    set_default_clock(previous)


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime(EXAMPLE_POST_MICROS * 1_000)


@pytest.fixture
def fake_clock(fake_time: FakeTime) -> TimestampClock:
    """A clock frozen at the example post instant."""
    return TimestampClock(fake_time)
