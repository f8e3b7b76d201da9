"""Display helpers shared by the export encoders."""
from datetime import date, datetime
from typing import Optional

WEEKDAYS_JA = ("月", "火", "水", "木", "金", "土", "日")

TITLE = "診療記録"
NO_ENTRIES = "診療記録はありません。"


def format_date(value: Optional[date], weekday: bool = True) -> str:
    """e.g. 2024年1月1日(月)"""
    if value is None:
        return ""
    text = f"{value.year}年{value.month}月{value.day}日"
    return f"{text}({WEEKDAYS_JA[value.weekday()]})" if weekday else text


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return f"{value.year}年{value.month}月{value.day}日 {value:%H:%M:%S}"


def format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def format_measurements(measurements: dict[str, float], sep: str = "、") -> str:
    return sep.join(f"{name}: {format_number(value)}" for name, value in sorted(measurements.items()))


def format_therapies(methods: list[str]) -> str:
    return "、".join(methods)
