"""
Excel出力モジュール
レポート集計結果をシート別に書き出す
"""
import pandas as pd
from pathlib import Path
from typing import Optional
import logging
from datetime import datetime

from .reports import ReportResult

logger = logging.getLogger(__name__)


class ExcelExporter:
    """
    Excel出力クラス

    使用例:
        exporter = ExcelExporter(result, output_dir=Path.home() / "Downloads")
        filepath = exporter.export()
    """

    def __init__(
        self,
        result: ReportResult,
        output_dir: Optional[Path] = None,
        filename: Optional[str] = None
    ):
        """
        Args:
            result: 集計結果
            output_dir: 出力ディレクトリ（デフォルト: ~/Downloads）
            filename: 出力ファイル名（デフォルト: report_YYYYMMDD.xlsx）
        """
        self.result = result
        self.output_dir = Path(output_dir) if output_dir else Path.home() / "Downloads"

        # ファイル名生成
        if filename:
            self.filename = filename
        else:
            now = datetime.now()
            self.filename = f"report_{now.strftime('%Y%m%d')}.xlsx"

        self.filepath = self.output_dir / self.filename

    def export(self) -> Path:
        """
        Excelファイルを出力

        Returns:
            Path: 出力ファイルパス
        """
        logger.info(f"Excel出力開始: {self.filepath}")

        # 出力ディレクトリ作成
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # ExcelWriterで複数シートを書き込み
        with pd.ExcelWriter(self.filepath, engine="openpyxl") as writer:
            self._write_summary_sheet(writer)
            self._write_breakdown_sheet(writer)
            self._write_items_sheet(writer)
            self._write_monthly_sheet(writer)

        logger.info(f"Excel出力完了: {self.filepath}")
        return self.filepath

    def _write_summary_sheet(self, writer: pd.ExcelWriter) -> None:
        """KPIシートを出力"""
        period = self.result.period
        summary_data = {
            "Metric": [
                "Period start",
                "Period end",
                "Customers",
                "Orders",
                "Invoices",
                "Total revenue",
                "Total expenses",
                "Net profit"
            ],
            "Value": [
                period.start.strftime('%Y-%m-%d') if period else "",
                period.end.strftime('%Y-%m-%d') if period else "",
                self.result.customer_count,
                self.result.order_count,
                self.result.invoice_count,
                self.result.total_revenue,
                self.result.total_expenses,
                self.result.net_profit
            ]
        }
        summary_df = pd.DataFrame(summary_data)
        summary_df.to_excel(writer, sheet_name="Summary", index=False)

    def _write_breakdown_sheet(self, writer: pd.ExcelWriter) -> None:
        """カテゴリ別シートを出力（支出の後に2行空けて収入）"""
        expense_df = pd.DataFrame({
            "Expense category": list(self.result.category_breakdown.keys()),
            "Amount": list(self.result.category_breakdown.values())
        })
        expense_df.to_excel(writer, sheet_name="Categories", index=False, startrow=0)

        if self.result.income_breakdown:
            start_row = len(expense_df) + 3
            income_df = pd.DataFrame({
                "Income category": list(self.result.income_breakdown.keys()),
                "Amount": list(self.result.income_breakdown.values())
            })
            income_df.to_excel(
                writer, sheet_name="Categories",
                index=False, startrow=start_row, header=True
            )

    def _write_items_sheet(self, writer: pd.ExcelWriter) -> None:
        """商品別シートを出力"""
        if not self.result.item_frequency:
            return

        items_df = pd.DataFrame({
            "Item": list(self.result.item_frequency.keys()),
            "Quantity": list(self.result.item_frequency.values())
        }).sort_values("Quantity", ascending=False)
        items_df.to_excel(writer, sheet_name="Items", index=False)

    def _write_monthly_sheet(self, writer: pd.ExcelWriter) -> None:
        """月別収支シートを出力"""
        if not self.result.monthly_totals:
            return

        monthly_df = pd.DataFrame([m.to_dict() for m in self.result.monthly_totals])
        monthly_df["net"] = monthly_df["income"] - monthly_df["expense"]
        monthly_df.columns = ["Month", "Income", "Expense", "Net"]
        monthly_df.to_excel(writer, sheet_name="Monthly", index=False)
