"""
CSV出力モジュール
"""
import csv
import io
from pathlib import Path
from typing import Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


def to_csv_text(records: Iterable[dict]) -> str:
    """
    レコードをCSV文字列に変換

    ヘッダーは先頭レコードのキー順。値は文字列化のみ（Noneは空欄）。
    区切り文字・引用符・改行を含む値は標準のCSVルールでクォートする。

    Args:
        records: 同じキーを持つ辞書のリスト

    Returns:
        str: CSV文字列（レコードがない場合は空文字）
    """
    records = list(records)
    if not records:
        return ''

    columns = list(records[0].keys())

    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(columns)
    for record in records:
        writer.writerow([record.get(col) for col in columns])

    csv_content = output.getvalue()
    output.close()
    return csv_content


class CsvExporter:
    """
    CSV出力クラス

    使用例:
        exporter = CsvExporter(customers, 'customers.csv', output_dir=Path.home() / "Downloads")
        filepath = exporter.export()
    """

    def __init__(
        self,
        records: Iterable[dict],
        filename: str,
        output_dir: Optional[Path] = None,
        encoding: str = 'utf-8'
    ):
        """
        Args:
            records: 出力するレコード
            filename: 出力ファイル名（例: customers.csv）
            output_dir: 出力ディレクトリ（デフォルト: ~/Downloads）
            encoding: ファイルエンコーディング
        """
        self.records: List[dict] = list(records or [])
        self.output_dir = Path(output_dir) if output_dir else Path.home() / "Downloads"
        self.filename = filename
        self.encoding = encoding
        self.filepath = self.output_dir / self.filename

    def export(self) -> Path:
        """
        CSVファイルを出力

        Returns:
            Path: 出力ファイルパス
        """
        logger.info(f"CSV出力開始: {self.filepath}（{len(self.records)}件）")

        # 出力ディレクトリ作成
        self.output_dir.mkdir(parents=True, exist_ok=True)

        with open(self.filepath, 'w', encoding=self.encoding, newline='') as f:
            f.write(to_csv_text(self.records))

        logger.info(f"CSV出力完了: {self.filepath}")
        return self.filepath
