"""
Snapshot Loader

File-backed catalog and order sources for offline analytics. Snapshots are
exports of the portal's catalog and order collections in CSV, JSON, NDJSON
or Parquet, read with Polars and checked with the quality validators before
rows are converted to analytics records.

Example:
    catalog = FileCatalogSource("data/snapshots/catalog.csv")
    orders = FileOrderSource("data/snapshots/orders.ndjson")
    service = DashboardService(catalog, orders)
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union
import json
import time

import polars as pl
import structlog

from portal_analytics.analytics.exceptions import (
    DataSourceUnavailableError,
    SnapshotValidationError,
)
from portal_analytics.analytics.identity import resolve
from portal_analytics.analytics.records import CatalogEntry, OrderRecord, clean_key
from portal_analytics.config import Settings
from portal_analytics.quality.validators import (
    LINE_ITEM_COLUMNS,
    DataValidator,
    ValidationStatus,
    create_catalog_validator,
    create_orders_validator,
)

logger = structlog.get_logger(__name__)

NULL_VALUES = ["", "NULL", "null", "None", "NA", "N/A"]
BUSINESS_COLUMNS = ("business_id", "businessId", "owner_id")


class FileFormat(str, Enum):
    """Supported snapshot formats"""
    CSV = "csv"
    JSON = "json"
    NDJSON = "ndjson"
    PARQUET = "parquet"

    @classmethod
    def from_path(cls, path: Path) -> "FileFormat":
        suffix = path.suffix.lower().lstrip(".")
        if suffix == "jsonl":
            return cls.NDJSON
        try:
            return cls(suffix)
        except ValueError:
            raise ValueError(f"Unsupported file format: {path.suffix or path.name}") from None


def _as_text(value: Any) -> Optional[str]:
    """Scalar as text; nested values as their JSON document"""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _read_documents(path: Path, file_format: FileFormat) -> List[Dict[str, Any]]:
    """JSON objects from a JSON array/object file or an NDJSON file"""
    with path.open(encoding="utf-8") as fh:
        if file_format == FileFormat.NDJSON:
            documents = [json.loads(line) for line in fh if line.strip()]
        else:
            payload = json.load(fh)
            documents = payload if isinstance(payload, list) else [payload]
    return [doc for doc in documents if isinstance(doc, dict)]


def _text_frame(documents: List[Dict[str, Any]]) -> pl.DataFrame:
    """
    All-text DataFrame over every document.

    Columns are the union of keys across all documents, so a field first
    seen deep into the file is kept. Nested values stay JSON text until
    the rows are converted to records.
    """
    names: Dict[str, None] = {}
    for doc in documents:
        names.update(dict.fromkeys(doc))
    return pl.DataFrame(
        {name: [_as_text(doc.get(name)) for doc in documents] for name in names},
        schema={name: pl.Utf8 for name in names},
    )


def read_snapshot(path: Union[str, Path], file_format: Optional[FileFormat] = None) -> pl.DataFrame:
    """Read a snapshot file into a DataFrame"""
    path = Path(path)
    file_format = file_format or FileFormat.from_path(path)

    # Everything as text except parquet; record parsers own type coercion
    if file_format == FileFormat.CSV:
        df = pl.read_csv(path, infer_schema_length=0, null_values=NULL_VALUES)
    elif file_format in (FileFormat.JSON, FileFormat.NDJSON):
        df = _text_frame(_read_documents(path, file_format))
    else:
        df = pl.read_parquet(path)

    # Remove completely null rows
    if df.width:
        df = df.filter(~pl.all_horizontal(pl.all().is_null()))
    return df


def _decode_nested(value: Any) -> Any:
    """JSON text for an object or array back to Python values"""
    if isinstance(value, str) and value[:1] in ("{", "["):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _decode_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _decode_nested(value) for key, value in row.items()}


def _decode_items(value: Any) -> Any:
    """Line items stored as a JSON string in flat formats"""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Unparseable line items", value=value[:80])
            return []
    return value


class SnapshotFile:
    """
    One snapshot file, read and validated on first use.

    The DataFrame is cached on the instance; create a new instance to pick
    up a newer export.
    """

    def __init__(
        self,
        path: Union[str, Path],
        validator: Optional[DataValidator] = None,
        source: str = "snapshot",
    ):
        self.path = Path(path)
        self.validator = validator
        self.source = source
        self._frame: Optional[pl.DataFrame] = None

    def frame(self) -> pl.DataFrame:
        if self._frame is None:
            self._frame = self._load()
        return self._frame

    def _load(self) -> pl.DataFrame:
        started = time.perf_counter()
        try:
            df = read_snapshot(self.path)
        except (OSError, ValueError, pl.exceptions.PolarsError) as e:
            logger.error("Snapshot read failed", path=str(self.path), error=str(e))
            raise DataSourceUnavailableError(self.source, original_error=e) from e

        if self.validator is not None:
            result = self.validator.validate(df)
            if result.status == ValidationStatus.FAILED:
                raise SnapshotValidationError(str(self.path), result)

        logger.info(
            "Snapshot loaded",
            path=str(self.path),
            rows=len(df),
            columns=len(df.columns),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return df

    def rows(self) -> List[Dict[str, Any]]:
        return [_decode_row(row) for row in self.frame().to_dicts()]


class FileCatalogSource:
    """Catalog source backed by a snapshot file"""

    def __init__(self, path: Union[str, Path], validate: bool = True):
        self.snapshot = SnapshotFile(
            path,
            validator=create_catalog_validator() if validate else None,
            source="catalog",
        )

    async def fetch_catalog(self, business_id: str) -> List[CatalogEntry]:
        df = self.snapshot.frame()
        column = next((c for c in BUSINESS_COLUMNS if c in df.columns), None)
        if column is not None:
            # Single-business exports carry no owner column
            df = df.filter(pl.col(column).cast(pl.Utf8).str.strip_chars() == business_id)
        return [
            CatalogEntry.from_mapping(_decode_row(row))
            for row in df.to_dicts()
        ]

    def all_business_ids(self) -> List[str]:
        """Distinct owners in the snapshot, sorted"""
        df = self.snapshot.frame()
        column = next((c for c in BUSINESS_COLUMNS if c in df.columns), None)
        if column is None:
            return []
        ids = {clean_key(v) for v in df[column].to_list()}
        return sorted(i for i in ids if i)


class FileOrderSource:
    """Order source backed by a snapshot file"""

    def __init__(self, path: Union[str, Path], validate: bool = True):
        self.snapshot = SnapshotFile(
            path,
            validator=create_orders_validator() if validate else None,
            source="orders",
        )
        self._records: Optional[List[OrderRecord]] = None

    def records(self) -> List[OrderRecord]:
        if self._records is None:
            records = []
            for row in self.snapshot.rows():
                for column in LINE_ITEM_COLUMNS:
                    if column in row:
                        row[column] = _decode_items(row[column])
                records.append(OrderRecord.from_mapping(row))
            self._records = records
        return self._records

    async def fetch_orders(self, keys: FrozenSet[str], since: datetime) -> List[OrderRecord]:
        """Orders with any line identifier in keys, at or after since"""
        if not keys:
            return []
        index = resolve(CatalogEntry(primary_key=key, secondary_key=None) for key in keys)
        return [
            order for order in self.records()
            if order.effective_timestamp is not None
            and order.effective_timestamp >= since
            and index.references(order)
        ]

    async def fetch_buyer_orders(self, buyer_id: str) -> List[OrderRecord]:
        return [o for o in self.records() if o.business_owner_ref == buyer_id]


def create_file_sources(settings: Settings, validate: bool = True):
    """Catalog and order sources for the configured snapshot directory"""
    base = Path(settings.data_lake.snapshot_path)
    return (
        FileCatalogSource(base / settings.data_lake.catalog_file, validate=validate),
        FileOrderSource(base / settings.data_lake.orders_file, validate=validate),
    )
