"""
pytest 共通フィクスチャ

  • db_path: 一時ディレクトリのSQLiteファイル（テーブル作成済み）
  • db_service: db_path を使う DatabaseService
  • app / client: TestingConfig ベースのFlaskアプリとテストクライアント
  • headers: アカウントヘッダー（X-Account-Id）
"""
import pytest

from bizdash.config import TestingConfig
from bizdash.database import init_database
from bizdash.backend.api import create_app, ACCOUNT_HEADER
from bizdash.backend.services import DatabaseService

ACCOUNT_ID = 'account-a'
OTHER_ACCOUNT_ID = 'account-b'


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / 'bizdash_test.db'
    init_database(path)
    return path


@pytest.fixture
def db_service(db_path):
    return DatabaseService(db_path)


@pytest.fixture
def app(tmp_path):
    config = type('TmpTestingConfig', (TestingConfig,), {
        'DB_PATH': tmp_path / 'api_test.db',
        'EXPORT_DIR': tmp_path / 'exports',
    })
    return create_app(config)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def headers():
    return {ACCOUNT_HEADER: ACCOUNT_ID}


@pytest.fixture
def other_headers():
    return {ACCOUNT_HEADER: OTHER_ACCOUNT_ID}
