"""
走势数据工具测试
"""

import pandas as pd
import pytest

from pricecache.data.chart import chart_to_dataframe, summarize_chart

DAY_MS = 24 * 60 * 60 * 1000
START_MS = 1735689600000  # 2025-01-01 00:00:00 UTC


@pytest.fixture
def chart_payload():
    return {
        "prices": [
            [START_MS + 2 * DAY_MS, 0.090],
            [START_MS, 0.080],
            [START_MS + DAY_MS, 0.075],
        ],
        "market_caps": [
            [START_MS, 3_375_609.76],
            [START_MS + DAY_MS, 3_164_634.15],
            [START_MS + 2 * DAY_MS, 3_797_560.98],
        ],
        "total_volumes": [
            [START_MS, 125_000.0],
            [START_MS + DAY_MS, 130_000.0],
            [START_MS + 2 * DAY_MS, 150_000.0],
        ],
    }


class TestChartToDataFrame:

    def test_columns_and_index(self, chart_payload):
        df = chart_to_dataframe(chart_payload)

        assert list(df.columns) == ["price", "market_cap", "total_volume"]
        assert len(df) == 3
        assert df.index.name == "timestamp"
        assert str(df.index.tz) == "UTC"
        assert df.index[0] == pd.Timestamp("2025-01-01", tz="UTC")
        assert df.index.is_monotonic_increasing

    def test_values_aligned_by_timestamp(self, chart_payload):
        df = chart_to_dataframe(chart_payload)
        assert df["price"].tolist() == [0.080, 0.075, 0.090]
        assert df.loc[pd.Timestamp("2025-01-03", tz="UTC"), "total_volume"] == 150_000.0

    def test_missing_series(self):
        df = chart_to_dataframe({"prices": [[START_MS, 1.0]]})
        assert len(df) == 1
        assert pd.isna(df["market_cap"].iloc[0])

    def test_empty_payload(self):
        df = chart_to_dataframe({})
        assert df.empty
        assert list(df.columns) == ["price", "market_cap", "total_volume"]


class TestSummarizeChart:

    def test_summary(self, chart_payload):
        summary = summarize_chart(chart_payload)

        assert summary["points"] == 3
        assert summary["first_price"] == 0.080
        assert summary["last_price"] == 0.090
        assert summary["min_price"] == 0.075
        assert summary["max_price"] == 0.090
        assert abs(summary["change_pct"] - 12.5) < 1e-9

    def test_empty_summary(self):
        summary = summarize_chart({"prices": []})
        assert summary["points"] == 0
        assert summary["first_price"] is None
        assert summary["change_pct"] is None
