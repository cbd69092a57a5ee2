"""Tests for configuration selection and the launcher."""

from bizdash import run
from bizdash.config import Config, DevelopmentConfig, TestingConfig, get_config
from bizdash.database import get_connection


def test_get_config_by_env(monkeypatch):
    monkeypatch.setenv('FLASK_ENV', 'testing')
    assert get_config() is TestingConfig
    monkeypatch.setenv('FLASK_ENV', 'unknown')
    assert get_config() is DevelopmentConfig


def test_defaults():
    assert Config.LOW_STOCK_THRESHOLD == 5
    assert Config.INVOICE_PAYMENT_CATEGORY == 'Invoice Payment'
    assert Config.RECENT_ACTIVITY_LIMIT == 5


def test_init_db(monkeypatch, tmp_path):
    db_path = tmp_path / 'data' / 'cli.db'
    monkeypatch.setenv('FLASK_ENV', 'testing')
    monkeypatch.setenv('PORT', '8080')
    monkeypatch.setenv('HOST', '127.0.0.1')
    monkeypatch.setattr(TestingConfig, 'DB_PATH', db_path)
    monkeypatch.setattr(TestingConfig, 'EXPORT_DIR', tmp_path / 'exports')

    assert run.main(['--init-db']) == 0

    conn = get_connection(db_path)
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    conn.close()
    assert {'customers', 'orders', 'order_items', 'invoices', 'financial_transactions', 'inventory'} <= tables
