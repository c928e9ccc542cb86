"""
Dataset Loading Module

Reads the static property dataset shipped with the package into a pandas
DataFrame. Descriptive spreadsheet column names ("Area (sq ft)",
"Price (in $1000)", ...) are mapped to the canonical names used everywhere
else in the package.

The dataset is read-only: every function here returns a new DataFrame.
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

BUNDLED_DATASET = "real_estate_dataset.json"

COLUMN_MAP = {
    'Area (sq ft)': 'area',
    'Bedrooms': 'bedrooms',
    'Bathrooms': 'bathrooms',
    'Location': 'location',
    'Property Type': 'property_type',
    'Age of Property (years)': 'age',
    'Price (in $1000)': 'price',
    'Sale Date': 'sale_date',
}

NUMERIC_COLUMNS = ['area', 'bedrooms', 'bathrooms', 'age', 'price']
CATEGORICAL_COLUMNS = ['location', 'property_type']

# Prices in the dataset are expressed in thousands of dollars
PRICE_UNIT = 1000


def read_records(path: Optional[Union[str, Path]] = None) -> List[Dict]:
    """
    Read raw dataset records (descriptive column names) from JSON.

    Args:
        path: JSON file to read. Defaults to the bundled dataset.

    Returns:
        List of record dictionaries
    """
    if path is None:
        text = resources.files('price_estimator.data').joinpath(BUNDLED_DATASET).read_text(encoding='utf-8')
    else:
        text = Path(path).read_text(encoding='utf-8')

    records = json.loads(text)
    if not isinstance(records, list):
        raise ValueError("Dataset must be a JSON array of property records")
    return records


def records_to_frame(records: List[Dict]) -> pd.DataFrame:
    """
    Convert raw records into a DataFrame with canonical column names.

    Args:
        records: Records keyed by descriptive column names

    Returns:
        DataFrame with columns area, bedrooms, bathrooms, location,
        property_type, age, price, sale_date
    """
    df = pd.DataFrame(records)
    df = df.rename(columns=COLUMN_MAP)

    missing = [col for col in COLUMN_MAP.values() if col not in df.columns]
    # Older exports have no property type or sale date column
    for col in missing:
        if col == 'property_type':
            df[col] = 'Unknown'
        elif col == 'sale_date':
            df[col] = pd.NaT
        else:
            raise ValueError(f"Dataset is missing required column: {col}")

    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors='coerce')
    for col in CATEGORICAL_COLUMNS:
        df[col] = df[col].fillna('Unknown').astype(str)
    df['sale_date'] = pd.to_datetime(df['sale_date'], errors='coerce')

    return df[list(COLUMN_MAP.values())]


def remove_data_errors(df: pd.DataFrame, verbose: bool = True) -> pd.DataFrame:
    """
    Remove rows that cannot describe a real property.

    Rules:
    1. Any numeric attribute missing
    2. area <= 0 or price <= 0
    3. bedrooms, bathrooms or age negative

    Args:
        df: Input DataFrame (canonical columns)
        verbose: Log removal statistics

    Returns:
        Cleaned DataFrame
    """
    df = df.copy()
    original_count = len(df)

    df = df.dropna(subset=NUMERIC_COLUMNS)
    df = df[(df['area'] > 0) & (df['price'] > 0)]
    df = df[(df['bedrooms'] >= 0) & (df['bathrooms'] >= 0) & (df['age'] >= 0)]

    removed = original_count - len(df)
    if verbose and removed:
        logger.warning("Removed %d invalid dataset rows (%d remaining)", removed, len(df))

    return df.reset_index(drop=True)


def load_dataset(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """
    Load the property dataset.

    Args:
        path: Optional JSON dataset path; the bundled dataset is used if None

    Returns:
        Clean DataFrame with canonical column names
    """
    df = records_to_frame(read_records(path))
    df = remove_data_errors(df)
    logger.info("Loaded %d property records", len(df))
    return df


def get_categories(df: pd.DataFrame) -> Dict[str, List[str]]:
    """
    Sorted distinct values of each categorical column.

    The order is fixed so that encoded feature positions never depend on
    row order.
    """
    return {col: sorted(df[col].unique().tolist()) for col in CATEGORICAL_COLUMNS}


def convert_excel_to_json(
    excel_path: Union[str, Path],
    json_path: Union[str, Path]
) -> int:
    """
    Convert the first sheet of an Excel workbook into a JSON dataset.

    Args:
        excel_path: Source .xlsx workbook
        json_path: Destination JSON file

    Returns:
        Number of records written
    """
    df = pd.read_excel(excel_path, sheet_name=0)
    df.to_json(json_path, orient='records', indent=2, date_format='iso')
    logger.info("Converted %s to %s (%d records)", excel_path, json_path, len(df))
    return len(df)
