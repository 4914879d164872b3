"""Point the app at throwaway storage before any backend module is imported."""

import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="traxlio-tests-")

os.environ["LOCAL_DATA_DIR"] = os.path.join(_TEST_ROOT, "local")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_TEST_ROOT, "traxlio.db")
os.environ["REMOTE_SYNC_ENABLED"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("LOG_LEVEL", "WARNING")
