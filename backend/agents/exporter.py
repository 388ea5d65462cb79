"""CSV export for cleaned datasets."""
from __future__ import annotations

import csv
import logging

import pandas as pd

from models.dataset import Dataset, cell_to_text

logger = logging.getLogger(__name__)


def to_frame(dataset: Dataset) -> pd.DataFrame:
    """Build a DataFrame of cell texts (None becomes the empty string)."""
    records = [[cell_to_text(row.get(column)) for column in dataset.columns] for row in dataset.rows]
    return pd.DataFrame(records, columns=dataset.columns, dtype=object)


def export_csv(dataset: Dataset) -> str:
    """Serialize a dataset to CSV text.

    Fields containing a comma, a double quote or a line break are quoted
    with embedded quotes doubled, so the export parses back to the same
    cells. Rows are joined by ``\\n`` without a trailing newline.

    Args:
        dataset: Dataset to export.

    Returns:
        CSV text; empty when the dataset has no columns.
    """
    if not dataset.columns:
        return ""
    text = to_frame(dataset).to_csv(
        index=False,
        lineterminator="\n",
        quoting=csv.QUOTE_MINIMAL,
    )
    logger.debug("Exported %d rows, %d columns", len(dataset), len(dataset.columns))
    return text[:-1] if text.endswith("\n") else text
