"""
Workbook loading helpers
Every workbook is read positionally: one raw DataFrame per sheet, no header row
"""

from io import BytesIO
from pathlib import Path
from typing import Dict, Union

import pandas as pd

WorkbookSource = Union[str, Path, bytes, BytesIO, Dict[str, pd.DataFrame]]


def load_workbook_frames(source: WorkbookSource) -> Dict[str, pd.DataFrame]:
    """Return {sheet name: raw DataFrame} for a path, raw bytes, a file object
    or an already loaded mapping of frames."""
    if isinstance(source, dict):
        return source
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)
    elif isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"Workbook not found: {source}")

    # data_only reading: formula cells come back as their cached results
    return pd.read_excel(source, sheet_name=None, header=None, engine="openpyxl")


def cell_at(frame: pd.DataFrame, row_idx: int, column: int):
    """Value at a 0-based row and 1-based column, None when out of range"""
    if row_idx >= len(frame.index) or column < 1 or column > len(frame.columns):
        return None
    return frame.iat[row_idx, column - 1]
