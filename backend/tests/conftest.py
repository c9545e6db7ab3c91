import os, sys, pytest
# Ensure backend directory is on path so 'dentpal' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from dentpal import create_app, get_store, shutdown

TEST_CONFIG = {
    'TESTING': True,
    'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
    'STORE_BACKEND': 'sql',
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'STORE_CREATE_SCHEMA': True,
    'FUNCTIONS_BASE_URL': None,
    'FIREBASE_PROJECT_ID': None,
}


@pytest.fixture()
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    # Each test gets a fresh in-memory document store
    app = create_app(dict(TEST_CONFIG))
    yield app
    shutdown(app)


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def store(app_instance):
    with app_instance.app_context():
        yield get_store()
