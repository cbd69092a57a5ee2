"""
ファイル処理サービス
"""
from pathlib import Path
from typing import Dict, List
import logging
import re

from ..aggregator.csv_output import CsvExporter

logger = logging.getLogger(__name__)


class FileHandler:
    """
    ファイル処理クラス

    エクスポートファイルをアカウントごとのディレクトリに書き出す
    """

    # エクスポート可能なエンティティ
    EXPORT_ENTITIES = ('customers', 'orders', 'invoices', 'transactions', 'inventory')

    def __init__(self, export_dir: Path, encoding: str = 'utf-8'):
        """
        Args:
            export_dir: エクスポート先ディレクトリ
            encoding: CSVのエンコーディング
        """
        self.export_dir = Path(export_dir)
        self.encoding = encoding
        self.export_dir.mkdir(parents=True, exist_ok=True)

    def account_dir(self, user_id: str) -> Path:
        """アカウント用ディレクトリを取得（なければ作成）"""
        safe_id = re.sub(r'[^A-Za-z0-9_-]', '_', user_id)
        path = self.export_dir / safe_id
        path.mkdir(parents=True, exist_ok=True)
        return path

    def export_entity(self, user_id: str, entity: str, records: List[dict]) -> Path:
        """
        エンティティをCSVに書き出す

        Args:
            user_id: アカウント識別子
            entity: エンティティ名（ファイル名は <entity>.csv）
            records: 出力レコード

        Returns:
            Path: 出力ファイルパス（レコードが空の場合は空ファイル）
        """
        if entity not in self.EXPORT_ENTITIES:
            raise ValueError(f"エクスポートできないデータです: {entity}")

        exporter = CsvExporter(
            records,
            f'{entity}.csv',
            output_dir=self.account_dir(user_id),
            encoding=self.encoding
        )
        return exporter.export()

    def export_all(self, user_id: str, data: Dict[str, List[dict]]) -> List[str]:
        """
        複数エンティティをまとめて書き出す

        Returns:
            List[str]: 出力したファイル名
        """
        exported = []
        for entity, records in data.items():
            path = self.export_entity(user_id, entity, records)
            exported.append(path.name)
        logger.info(f"エクスポート完了: {exported}")
        return exported

    def cleanup_exports(self, user_id: str) -> None:
        """アカウントのエクスポートファイルをクリーンアップ"""
        path = self.account_dir(user_id)
        for file in path.iterdir():
            if file.is_file():
                file.unlink()
        logger.info("エクスポートファイルをクリーンアップしました")
