"""Tests for export file handling and derived inventory flags."""

import pytest

from bizdash.backend.services import FileHandler, annotate_low_stock


class TestFileHandler:
    def test_export_entity_per_account(self, tmp_path):
        handler = FileHandler(tmp_path)
        path = handler.export_entity('account-a', 'customers', [{'name': 'Ada', 'email': 'ada@example.com'}])
        assert path == tmp_path / 'account-a' / 'customers.csv'
        assert path.read_text(encoding='utf-8').splitlines() == ['name,email', 'Ada,ada@example.com']

    def test_account_dir_sanitised(self, tmp_path):
        handler = FileHandler(tmp_path)
        assert handler.account_dir('../evil').parent == tmp_path

    def test_unknown_entity(self, tmp_path):
        with pytest.raises(ValueError):
            FileHandler(tmp_path).export_entity('account-a', 'passwords', [])

    def test_export_all(self, tmp_path):
        handler = FileHandler(tmp_path)
        files = handler.export_all('account-a', {'customers': [{'a': 1}], 'orders': []})
        assert files == ['customers.csv', 'orders.csv']
        assert (tmp_path / 'account-a' / 'orders.csv').read_text(encoding='utf-8') == ''

    def test_cleanup(self, tmp_path):
        handler = FileHandler(tmp_path)
        handler.export_entity('account-a', 'customers', [{'a': 1}])
        handler.export_entity('account-b', 'customers', [{'a': 1}])
        handler.cleanup_exports('account-a')
        assert list((tmp_path / 'account-a').iterdir()) == []
        assert (tmp_path / 'account-b' / 'customers.csv').exists()


class TestLowStock:
    def test_threshold_inclusive(self):
        items = annotate_low_stock([
            {'name': 'a', 'quantity': 5},
            {'name': 'b', 'quantity': 6},
            {'name': 'c', 'quantity': 0},
        ])
        assert [i['low_stock'] for i in items] == [True, False, True]

    def test_not_persisted_on_input(self):
        original = {'name': 'a', 'quantity': 1}
        annotate_low_stock([original])
        assert 'low_stock' not in original

    def test_custom_threshold(self):
        assert annotate_low_stock([{'quantity': 8}], threshold=10)[0]['low_stock']
