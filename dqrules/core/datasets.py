"""Dataset loading.

The validation core never touches the file system; this module turns files
into the ``{table name: [row, ...]}`` mapping it consumes.

Two input shapes are supported:
    - A single JSON document mapping table names to row lists
    - One file per table (``.csv``, ``.json``, ``.ndjson``, ``.parquet``),
      named by its stem or explicitly as ``name=path``

Tabular formats are read with polars and converted to row dictionaries so
that missing cells arrive as ``None``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol

import polars as pl

from dqrules.core.exceptions import DatasetError

logger = logging.getLogger(__name__)


class DatasetLoader(Protocol):
    """Reads one file into a list of row dictionaries."""

    def load(self, path: Path) -> list[dict[str, Any]]: ...


class CSVLoader:
    """Comma-separated values with a header row."""

    def load(self, path: Path) -> list[dict[str, Any]]:
        return pl.read_csv(path, infer_schema_length=10000).to_dicts()


class JSONLoader:
    """JSON array of row objects."""

    def load(self, path: Path) -> list[dict[str, Any]]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            raise DatasetError(
                "JSON dataset must be an array of objects",
                file_path=str(path),
                reason="Unexpected JSON structure",
            )
        return data


class NDJSONLoader:
    """Newline-delimited JSON, one row object per line."""

    def load(self, path: Path) -> list[dict[str, Any]]:
        return pl.read_ndjson(path).to_dicts()


class ParquetLoader:
    """Apache Parquet file."""

    def load(self, path: Path) -> list[dict[str, Any]]:
        return pl.read_parquet(path).to_dicts()


LOADERS: dict[str, type[DatasetLoader]] = {}


def register_loader(extension: str, cls: type[DatasetLoader]) -> None:
    """Register a loader for a file extension (without the leading dot)."""
    LOADERS[extension.lower()] = cls


def get_loader(extension: str) -> DatasetLoader:
    """Get a loader instance for a file extension.

    Raises:
        KeyError: If no loader handles the extension, listing the supported ones
    """
    key = extension.lower().lstrip(".")
    if key not in LOADERS:
        available = ", ".join(sorted(LOADERS)) if LOADERS else "none"
        raise KeyError(f"Unknown dataset format '{key}'. Available: {available}")
    return LOADERS[key]()


def list_loaders() -> dict[str, str]:
    """List supported dataset formats with descriptions."""
    return {name: cls.__doc__ or "No description" for name, cls in sorted(LOADERS.items())}


register_loader("csv", CSVLoader)
register_loader("json", JSONLoader)
register_loader("ndjson", NDJSONLoader)
register_loader("jsonl", NDJSONLoader)
register_loader("parquet", ParquetLoader)


def _split_spec(spec: str | Path) -> tuple[str | None, Path]:
    text = str(spec)
    name, sep, rest = text.partition("=")
    if sep and name and not Path(text).exists():
        return name, Path(rest)
    return None, Path(text)


def _load_mapping(path: Path) -> dict[str, list[dict[str, Any]]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        return {}
    tables: dict[str, list[dict[str, Any]]] = {}
    for name, rows in data.items():
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise DatasetError(
                f"Table '{name}' must be an array of objects",
                file_path=str(path),
                table=name,
                reason="Unexpected JSON structure",
            )
        tables[name] = rows
    return tables


def load_datasets(specs: list[str | Path]) -> dict[str, list[dict[str, Any]]]:
    """Load datasets from files.

    Args:
        specs: File paths, optionally prefixed with ``table=``. A ``.json``
               file without a prefix holding an object is read as a mapping of
               several tables; any other file becomes one table named after
               its stem.

    Returns:
        Mapping of table name to list of rows

    Raises:
        DatasetError: If a file is missing, unreadable, or of an unknown format

    Example:
        >>> datasets = load_datasets(["users=data/users.csv", "data/transactions.json"])
        >>> sorted(datasets)
        ['transactions', 'users']
    """
    datasets: dict[str, list[dict[str, Any]]] = {}

    for spec in specs:
        name, path = _split_spec(spec)
        if not path.exists():
            raise DatasetError(
                f"Dataset file not found: {path}",
                file_path=str(path),
                table=name,
                reason="File does not exist",
            )

        extension = path.suffix.lower().lstrip(".")
        try:
            if name is None and extension == "json":
                mapping = _load_mapping(path)
                if mapping:
                    logger.debug("Loaded %d tables from %s", len(mapping), path)
                    datasets.update(mapping)
                    continue
            loader = get_loader(extension)
            rows = loader.load(path)
        except KeyError as e:
            raise DatasetError(
                str(e.args[0]), file_path=str(path), table=name, reason="Unsupported format"
            ) from e
        except DatasetError:
            raise
        except (OSError, ValueError, pl.exceptions.PolarsError) as e:
            raise DatasetError(
                f"Failed to read dataset: {e}", file_path=str(path), table=name, reason=type(e).__name__
            ) from e

        table = name or path.stem
        logger.debug("Loaded table %s with %d rows from %s", table, len(rows), path)
        datasets[table] = rows

    return datasets
