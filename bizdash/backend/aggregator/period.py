"""
集計期間モジュール
"""
import pandas as pd
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
import logging

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


class InvalidDateRangeError(ValueError):
    """開始日が終了日より後の場合の例外"""
    def __init__(self, start, end):
        self.start = start
        self.end = end
        message = f"期間の指定が不正です: 開始 {start} が終了 {end} より後になっています"
        super().__init__(message)


def to_timestamp(value) -> Optional[pd.Timestamp]:
    """
    レコードの日時値を比較用のTimestampに変換

    タイムゾーン付きの値はUTCに揃えてからタイムゾーン情報を外す。

    Args:
        value: ISO文字列 / datetime / date

    Returns:
        pd.Timestamp: 変換結果、変換できない場合はNone
    """
    if value is None or value == '':
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        logger.warning(f"日時を解釈できません: {value!r}")
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def local_to_utc(value: datetime) -> pd.Timestamp:
    """
    サーバーのローカル時刻（タイムゾーンなし）をUTCのTimestampに変換

    保存済みの日時（created_at など）と同じUTC基準になる。
    """
    return pd.Timestamp(value.astimezone(timezone.utc)).tz_localize(None)


@dataclass(frozen=True)
class DateRange:
    """
    閉区間 [start, end] の集計期間

    時刻を持たない日付は、開始は0:00、終了はその日の終わりまでを含む。

    使用例:
        period = DateRange.parse('2025-01-01', '2025-01-31')
        period.contains('2025-01-31T18:00:00Z')
    """
    start: pd.Timestamp
    end: pd.Timestamp

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidDateRangeError(self.start, self.end)

    @classmethod
    def parse(cls, start: DateLike, end: DateLike) -> 'DateRange':
        """
        日付（文字列可）から期間を作成

        Raises:
            InvalidDateRangeError: start > end の場合
            ValueError: 日付を解釈できない場合
        """
        start_ts = to_timestamp(start)
        end_ts = to_timestamp(end)
        if start_ts is None or end_ts is None:
            raise ValueError(f"期間の日付を解釈できません: {start!r} - {end!r}")

        if _is_date_only(end):
            end_ts = end_ts.normalize() + pd.Timedelta(days=1) - pd.Timedelta(microseconds=1)
        return cls(start=start_ts, end=end_ts)

    @classmethod
    def local_days(cls, first: date, last: date) -> 'DateRange':
        """
        ローカル日付 first 0:00 〜 last の終わりまでをUTCで表した期間

        Raises:
            InvalidDateRangeError: first > last の場合
        """
        return cls(
            start=local_to_utc(datetime.combine(first, time.min)),
            end=local_to_utc(datetime.combine(last, time.max))
        )

    @classmethod
    def parse_local(cls, start: DateLike, end: DateLike) -> 'DateRange':
        """
        リクエストの期間指定から作成

        両方とも日付のみの場合はローカル日付として扱い、時刻付きの場合は parse と同じ。
        """
        if not (_is_date_only(start) and _is_date_only(end)):
            return cls.parse(start, end)
        start_ts = to_timestamp(start)
        end_ts = to_timestamp(end)
        if start_ts is None or end_ts is None:
            raise ValueError(f"期間の日付を解釈できません: {start!r} - {end!r}")
        if start_ts > end_ts:
            raise InvalidDateRangeError(start_ts, end_ts)
        return cls.local_days(start_ts.date(), end_ts.date())

    @classmethod
    def today(cls, today: Optional[date] = None) -> 'DateRange':
        """今日（ローカル日付）"""
        today = today or datetime.now().date()
        return cls.local_days(today, today)

    @classmethod
    def current_month(cls, today: Optional[date] = None) -> 'DateRange':
        """今月1日〜月末（ローカル日付）"""
        today = today or datetime.now().date()
        first = today.replace(day=1)
        next_first = (first + timedelta(days=32)).replace(day=1)
        return cls.local_days(first, next_first - timedelta(days=1))

    @classmethod
    def previous_month(cls, today: Optional[date] = None) -> 'DateRange':
        """先月1日〜月末（ローカル日付）"""
        today = today or datetime.now().date()
        last_of_prev = today.replace(day=1) - timedelta(days=1)
        return cls.local_days(last_of_prev.replace(day=1), last_of_prev)

    def contains(self, value) -> bool:
        """日時が期間内か判定（解釈できない値は期間外）"""
        ts = to_timestamp(value)
        if ts is None:
            return False
        return self.start <= ts <= self.end

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat()
        }


def _is_date_only(value) -> bool:
    """時刻を含まない日付指定かどうか"""
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    if isinstance(value, str):
        return len(value.strip()) == 10
    return False
