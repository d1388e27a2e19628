"""
走势数据工具
把 market_chart 响应转换为 DataFrame 并计算区间摘要
"""

from typing import Any, Dict, Optional

import pandas as pd

SERIES_FIELDS = ("prices", "market_caps", "total_volumes")

_COLUMN_NAMES = {
    "prices": "price",
    "market_caps": "market_cap",
    "total_volumes": "total_volume",
}


def chart_to_dataframe(payload: Dict[str, Any]) -> pd.DataFrame:
    """
    转换为 DataFrame

    Args:
        payload: ``{"prices": [[ms, value], ...], "market_caps": ..., "total_volumes": ...}``

    Returns:
        以 UTC 时间为索引，包含 price / market_cap / total_volume 列的 DataFrame
    """
    columns = []
    for field_name in SERIES_FIELDS:
        points = payload.get(field_name) or []
        series = pd.Series(
            [float(value) for _, value in points],
            index=pd.to_datetime([ts for ts, _ in points], unit="ms", utc=True),
            name=_COLUMN_NAMES[field_name],
            dtype="float64",
        )
        columns.append(series[~series.index.duplicated(keep="last")])

    df = pd.concat(columns, axis=1).sort_index()
    df.index.name = "timestamp"
    return df


def summarize_chart(payload: Dict[str, Any]) -> Dict[str, Optional[float]]:
    """
    价格区间摘要

    Returns:
        points, first_price, last_price, min_price, max_price, change_pct
    """
    prices = chart_to_dataframe(payload)["price"].dropna()
    if prices.empty:
        return {
            "points": 0,
            "first_price": None,
            "last_price": None,
            "min_price": None,
            "max_price": None,
            "change_pct": None,
        }

    first, last = float(prices.iloc[0]), float(prices.iloc[-1])
    return {
        "points": int(len(prices)),
        "first_price": first,
        "last_price": last,
        "min_price": float(prices.min()),
        "max_price": float(prices.max()),
        "change_pct": (last - first) / first * 100 if first else None,
    }
