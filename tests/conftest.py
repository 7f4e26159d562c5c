# tests/conftest.py
import os, pathlib, tempfile
import pytest
from dotenv import load_dotenv

# Must run before anything imports personalizer.config / personalizer.store,
# which read the environment at import time.
load_dotenv(pathlib.Path(__file__).parent / ".env.test", override=True)
_tmp = pathlib.Path(tempfile.mkdtemp(prefix="personalizer-tests-"))
os.environ["DB_URL"] = f"sqlite:///{_tmp / 'test.db'}"
os.environ["LOG_DIR"] = str(_tmp / "logs")


@pytest.fixture(autouse=True)
def _fresh_state():
    from personalizer.store import drop_db, init_db
    from personalizer.cache import MemoryCache, set_cache
    drop_db()
    init_db()
    set_cache(MemoryCache())
    yield


@pytest.fixture()
def make_article():
    from personalizer.models import Article
    from personalizer.store import get_session

    def _make(article_id, content, title="", excerpt=None):
        with get_session() as s:
            s.add(Article(id=article_id, title=title, excerpt=excerpt, content=content))
            s.commit()
        return article_id

    return _make


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient
    from personalizer.main import app
    return TestClient(app)
