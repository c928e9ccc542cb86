"""
Market Statistics Module

Summary numbers over the bundled dataset: overall price levels, the recent
price trend, the most expensive location and the most common property type,
plus the grouped series a dashboard would chart.

Prices are reported in dataset units (thousands of dollars).
"""

from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd


def price_by_location(df: pd.DataFrame) -> Dict[str, float]:
    """Average price per location."""
    return {str(k): float(v) for k, v in df.groupby('location')['price'].mean().items()}


def property_type_counts(df: pd.DataFrame) -> Dict[str, int]:
    """Number of properties of each type."""
    return {str(k): int(v) for k, v in df['property_type'].value_counts().items()}


def price_by_year(df: pd.DataFrame) -> Dict[int, float]:
    """Average sale price per calendar year, oldest first."""
    dated = df.dropna(subset=['sale_date'])
    yearly = dated.groupby(dated['sale_date'].dt.year)['price'].mean().sort_index()
    return {int(k): float(v) for k, v in yearly.items()}


def recent_price_change(df: pd.DataFrame, as_of: Optional[datetime] = None) -> float:
    """
    Percent change between the first and last month with sales in the
    twelve months up to as_of.

    Months are compared by average price. Fewer than two months with sales
    gives 0.0.

    Args:
        df: Dataset with canonical columns
        as_of: End of the window (default: latest sale date in df)
    """
    dated = df.dropna(subset=['sale_date'])
    if dated.empty:
        return 0.0

    end = pd.Timestamp(as_of) if as_of is not None else dated['sale_date'].max()
    start = end - pd.DateOffset(years=1)
    recent = dated[(dated['sale_date'] >= start) & (dated['sale_date'] <= end)]

    monthly = recent.groupby(recent['sale_date'].dt.to_period('M'))['price'].mean().sort_index()
    if len(monthly) < 2:
        return 0.0

    first_avg, last_avg = monthly.iloc[0], monthly.iloc[-1]
    return float((last_avg - first_avg) / first_avg * 100)


def market_trends(df: pd.DataFrame, as_of: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """
    Compute the market summary shown on the dashboard.

    Args:
        df: Dataset with canonical columns
        as_of: End of the price-change window (default: latest sale date)

    Returns:
        Dictionary of summary statistics, or None for an empty dataset
    """
    if df is None or df.empty:
        return None

    prices = df['price'].astype(float)
    sorted_prices = prices.sort_values().reset_index(drop=True)

    location_avgs = price_by_location(df)
    hottest_area = max(location_avgs, key=location_avgs.get)

    type_counts = property_type_counts(df)
    popular_type = max(type_counts, key=type_counts.get)

    return {
        'average_price': float(prices.mean()),
        # Upper median, matching the dashboard's sorted[n // 2]
        'median_price': float(sorted_prices.iloc[len(sorted_prices) // 2]),
        'price_change_percent': recent_price_change(df, as_of),
        'hottest_area': hottest_area,
        'hottest_area_avg_price': location_avgs[hottest_area],
        'price_per_sqft': float((prices / df['area'].astype(float)).mean()),
        'popular_type': popular_type,
        'popular_type_percentage': type_counts[popular_type] / len(df) * 100,
        'total_properties': int(len(df)),
    }
