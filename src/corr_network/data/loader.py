"""
Data loading module for Correlation Network.

Reads return (or price) histories from CSV or Excel files laid out as one
date column followed by one column per asset, and comparison partitions
laid out as one row per grouping.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
from pathlib import Path
import logging

import pandas as pd
import numpy as np

from ..core.constants import MIN_OBSERVATIONS
from ..core.exceptions import DataLoadError, InvalidFormatError, InsufficientDataError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = ('.xlsx', '.xlsm', '.xls')
CSV_SUFFIXES = ('.csv', '.txt')


@dataclass
class LoadedData:
    """Container for loaded return data."""
    returns: pd.DataFrame
    assets: List[str]
    period: Tuple[pd.Timestamp, pd.Timestamp]
    n_obs: int
    prices: Optional[pd.DataFrame] = None

    @property
    def dates(self) -> pd.Index:
        return self.returns.index

    def __repr__(self) -> str:
        return (
            f"LoadedData(assets={len(self.assets)}, "
            f"period={self.period[0]} ~ {self.period[1]}, "
            f"n_obs={self.n_obs})"
        )


class ReturnDataLoader:
    """
    Loader for return histories.

    Example:
        loader = ReturnDataLoader("returns.csv")
        data = loader.data
        print(data.returns.shape)
    """

    def __init__(self, filepath: Path, prices: bool = False, sheet_name=0):
        """
        Initialize data loader.

        Args:
            filepath: CSV or Excel file (first column dates)
            prices: File holds prices; log returns are computed
            sheet_name: Excel sheet to read
        """
        self.filepath = Path(filepath)
        self.prices = prices
        self.sheet_name = sheet_name
        self._data: Optional[LoadedData] = None

    @property
    def data(self) -> LoadedData:
        """Get loaded data, loading if necessary."""
        if self._data is None:
            self._data = self.load()
        return self._data

    def _read_table(self) -> pd.DataFrame:
        """
        Read the raw table.

        Raises:
            DataLoadError: If file cannot be read
            InvalidFormatError: If the file type is not supported
        """
        logger.info(f"Loading data from {self.filepath}")

        if not self.filepath.exists():
            raise DataLoadError(
                f"Data file not found: {self.filepath}",
                "Please provide a valid path to a CSV or Excel file"
            )

        suffix = self.filepath.suffix.lower()
        try:
            if suffix in EXCEL_SUFFIXES:
                df = pd.read_excel(self.filepath, sheet_name=self.sheet_name, index_col=0)
            elif suffix in CSV_SUFFIXES:
                df = pd.read_csv(self.filepath, index_col=0)
            else:
                raise InvalidFormatError(
                    str(self.filepath),
                    "CSV (.csv) or Excel (.xlsx/.xls)",
                    f"unsupported suffix '{suffix}'"
                )
        except PermissionError:
            raise DataLoadError(
                f"Cannot read file: {self.filepath}",
                "File may be open in another application"
            )
        except (OSError, ValueError) as e:
            raise DataLoadError(f"Failed to read {self.filepath.name}: {e}") from e

        logger.debug(f"Read {len(df)} rows, {len(df.columns)} columns")
        return df

    def _parse(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse the date index and coerce asset columns to numbers."""
        try:
            index = pd.to_datetime(df.index)
        except (ValueError, TypeError) as e:
            raise InvalidFormatError(
                str(self.filepath),
                "First column should be parseable as dates",
                f"Failed to parse dates: {e}"
            )

        data = df.apply(pd.to_numeric, errors='coerce')
        data.index = index
        data.index.name = 'Date'
        data.columns = [str(c) for c in data.columns]

        empty = [c for c in data.columns if data[c].isna().all()]
        if empty:
            logger.warning(f"Dropping non-numeric columns: {', '.join(empty)}")
            data = data.drop(columns=empty)
        return data.sort_index()

    @staticmethod
    def _calculate_returns(prices: pd.DataFrame) -> pd.DataFrame:
        """Log returns of a price table."""
        return np.log(prices / prices.shift(1))

    def load(self) -> LoadedData:
        """
        Load returns.

        Returns:
            LoadedData with complete rows only
        """
        data = self._parse(self._read_table())

        prices = None
        if self.prices:
            prices = data
            returns = self._calculate_returns(prices)
        else:
            returns = data

        n_before = len(returns)
        returns = returns.dropna()
        if len(returns) < n_before:
            logger.info(f"Dropped {n_before - len(returns)} incomplete rows")
        if prices is not None:
            prices = prices.loc[returns.index]

        if len(returns) < MIN_OBSERVATIONS:
            raise InsufficientDataError(MIN_OBSERVATIONS, len(returns), "data loading")

        period = (returns.index[0], returns.index[-1])
        logger.info(f"Loaded data: {period[0].date()} ~ {period[1].date()} ({len(returns)} rows)")

        self._data = LoadedData(
            returns=returns,
            assets=list(returns.columns),
            period=period,
            n_obs=len(returns),
            prices=prices,
        )
        return self._data


def load_partitions(filepath: Path, assets: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Load comparison partitions (one row per grouping, one column per asset).

    Args:
        filepath: CSV file with a partition-name column followed by assets
        assets: Asset order to align the columns to

    Returns:
        DataFrame of group labels
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise DataLoadError(f"Partition file not found: {filepath}")

    try:
        table = pd.read_csv(filepath, index_col=0)
    except (OSError, ValueError) as e:
        raise DataLoadError(f"Failed to read {filepath.name}: {e}") from e
    table.columns = [str(c) for c in table.columns]

    if assets is not None:
        missing = [a for a in assets if a not in table.columns]
        if missing:
            raise InvalidFormatError(
                str(filepath),
                "One column per asset",
                f"missing assets: {', '.join(missing[:10])}"
            )
        table = table[list(assets)]
    return table
