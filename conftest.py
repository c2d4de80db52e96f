"""
pytest configuration – point the service at a throwaway SQLite file and
photo directory, create tables once, and wipe rows after every test.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="easymat-test-")
os.environ.setdefault("EASYMAT_DATABASE_URL", f"sqlite:///{_TMP}/easymat.db")
os.environ.setdefault("EASYMAT_STORAGE_DIR", os.path.join(_TMP, "media"))
os.environ.setdefault("EASYMAT_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("EASYMAT_LOG_FORMAT", "text")

import pytest  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from easymat.database import Base, engine, db_session  # noqa: E402
from easymat.models import Rating, Report, Sacco, User, Vehicle  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with db_session() as session:
        for table in (Report, Rating, Vehicle, Sacco, User):
            session.execute(delete(table))
