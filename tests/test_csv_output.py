"""Tests for CSV output."""

import csv
import io

from bizdash.backend.aggregator import CsvExporter, to_csv_text


class TestToCsvText:
    def test_comma_field_quoted(self):
        text = to_csv_text([{'a': 1, 'b': 'x,y'}])
        lines = text.splitlines()
        assert lines[0] == 'a,b'
        assert lines[1] == '1,"x,y"'

    def test_empty_sequence(self):
        assert to_csv_text([]) == ''

    def test_quotes_and_newlines(self):
        text = to_csv_text([{'note': 'say "hi"\nbye'}])
        rows = list(csv.reader(io.StringIO(text)))
        assert rows == [['note'], ['say "hi"\nbye']]
        assert '"say ""hi""' in text

    def test_none_is_empty(self):
        assert to_csv_text([{'a': None, 'b': 2}]).splitlines()[1] == ',2'

    def test_header_from_first_record(self):
        text = to_csv_text([{'b': 1, 'a': 2}, {'a': 3, 'b': 4}])
        assert text == 'b,a\n1,2\n4,3\n'

    def test_no_type_formatting(self):
        text = to_csv_text([{'amount': 10.5, 'flag': True}])
        assert text.splitlines()[1] == '10.5,True'


class TestCsvExporter:
    def test_writes_file_and_returns_path(self, tmp_path):
        path = CsvExporter([{'a': 1}], 'customers.csv', output_dir=tmp_path / 'out').export()
        assert path == tmp_path / 'out' / 'customers.csv'
        assert path.read_text(encoding='utf-8') == 'a\n1\n'

    def test_empty_records_write_empty_file(self, tmp_path):
        path = CsvExporter([], 'orders.csv', output_dir=tmp_path).export()
        assert path.read_text(encoding='utf-8') == ''
