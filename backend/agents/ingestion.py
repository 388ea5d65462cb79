"""CSV ingestion: raw text to a typed Dataset.

Fields are tokenized with the standard ``csv`` reader, which handles quoted
fields, embedded commas and line breaks, and ``""`` escapes. Each field is
then trimmed and classified as null, number or string.
Malformed input never raises; it degrades to strings and nulls.
"""
from __future__ import annotations

import csv
import io
import logging
import uuid
from typing import Iterator, List, Optional

from models.dataset import Cell, Dataset, Row, parse_number
from models.dataset_state import DatasetState

logger = logging.getLogger(__name__)

NULL_TOKENS = {"null", "nan"}


def parse_cell(raw: str) -> Cell:
    """Classify one raw field."""
    text = raw.strip()
    if text == "" or text.lower() in NULL_TOKENS:
        return None
    number = parse_number(text)
    return text if number is None else number


def _is_blank(record: List[str]) -> bool:
    return not record or (len(record) == 1 and not record[0].strip())


def _raise_field_limit(size: int) -> None:
    """Let a single field be as long as the whole input."""
    limit = max(csv.field_size_limit(), size + 1)
    try:
        csv.field_size_limit(limit)
    except OverflowError:
        # C long is 32 bits on some platforms
        csv.field_size_limit(2 ** 31 - 1)


def _read_line(line: str) -> List[str]:
    """Tokenize one physical line on its own; an open quote ends with the line."""
    try:
        return next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error:
        # e.g. a bare carriage return inside the line
        return line.rstrip("\r\n").split(",")


def _records(text: str) -> Iterator[List[str]]:
    """Yield the non-blank records of the text.

    Quoted fields may span lines. A record the strict reader rejects, such
    as a quote that is never closed, is re-read from its first line alone
    and reading resumes on the next line, so no later rows are lost.
    """
    _raise_field_limit(len(text))
    lines = io.StringIO(text).readlines()
    start = 0
    while start < len(lines):
        source = (lines[i] for i in range(start, len(lines)))
        reader = csv.reader(source, skipinitialspace=True, strict=True)
        consumed = 0
        try:
            for record in reader:
                consumed = reader.line_num
                if not _is_blank(record):
                    yield record
            return
        except csv.Error as e:
            bad = start + consumed
            logger.warning("Malformed CSV record at line %d, reading it as one line: %s", bad + 1, e)
            record = _read_line(lines[bad])
            if not _is_blank(record):
                yield record
            start = bad + 1


def parse_csv(text: str) -> Dataset:
    """Parse CSV text into a Dataset.

    The first non-blank line is the header. Short lines are padded with
    None and extra fields are ignored. A repeated header name keeps its
    first position and takes the value of its last occurrence.

    Args:
        text: Raw CSV text.

    Returns:
        Parsed dataset (empty when the text has no non-blank lines).
    """
    records = _records(text)
    header = next(records, None)
    if header is None:
        return Dataset()

    headers = [h.strip() for h in header]
    columns = list(dict.fromkeys(headers))

    rows: List[Row] = []
    for record in records:
        row: Row = {}
        for index, name in enumerate(headers):
            row[name] = parse_cell(record[index]) if index < len(record) else None
        rows.append(row)

    return Dataset(columns=columns, rows=rows)


def decode_upload(content: bytes) -> str:
    """Decode uploaded bytes as UTF-8 (BOM tolerated), falling back to latin-1."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.info("Upload is not valid UTF-8, decoding as latin-1")
        return content.decode("latin-1")


class IngestionAgent:
    """Turns uploaded files into dataset state."""

    def ingest_uploaded(
        self,
        content: bytes,
        file_name: str,
        dataset_id: Optional[str] = None,
    ) -> DatasetState:
        """Parse an uploaded CSV and register it as version 1.

        Args:
            content: Raw file bytes.
            file_name: Original file name, kept for export naming.
            dataset_id: Identifier to use; generated when omitted.

        Returns:
            New DatasetState holding the parsed dataset.
        """
        dataset = parse_csv(decode_upload(content))
        state = DatasetState(
            dataset_id=dataset_id or uuid.uuid4().hex[:12],
            file_name=file_name,
            dataset=dataset,
            current_version=1,
        )
        logger.info(
            "Ingested %s as %s: %d rows, %d columns",
            file_name, state.dataset_id, len(dataset), len(dataset.columns),
        )
        return state
