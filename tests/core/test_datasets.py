"""Tests for dataset loading."""

import json

import polars as pl
import pytest

from dqrules.core.datasets import (
    CSVLoader,
    get_loader,
    list_loaders,
    load_datasets,
    register_loader,
)
from dqrules.core.exceptions import DatasetError


def test_csv_file_becomes_table_named_after_stem(tmp_path):
    path = tmp_path / "users.csv"
    path.write_text("id,name\n1,Ada\n2,\n")

    datasets = load_datasets([path])

    assert list(datasets) == ["users"]
    assert datasets["users"] == [{"id": 1, "name": "Ada"}, {"id": 2, "name": None}]


def test_explicit_table_name_prefix(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(json.dumps([{"id": 1}]))

    datasets = load_datasets([f"customers={path}"])

    assert datasets == {"customers": [{"id": 1}]}


def test_json_mapping_holds_several_tables(tmp_path):
    path = tmp_path / "shop.json"
    path.write_text(json.dumps({"users": [{"id": 1}], "transactions": [{"userId": 1}]}))

    datasets = load_datasets([str(path)])

    assert sorted(datasets) == ["transactions", "users"]


def test_ndjson_and_parquet(tmp_path):
    ndjson = tmp_path / "events.ndjson"
    ndjson.write_text('{"id": 1}\n{"id": 2}\n')
    parquet = tmp_path / "orders.parquet"
    pl.DataFrame({"id": [1, 2, 3]}).write_parquet(parquet)

    datasets = load_datasets([ndjson, parquet])

    assert datasets["events"] == [{"id": 1}, {"id": 2}]
    assert len(datasets["orders"]) == 3


def test_missing_file_raises_dataset_error(tmp_path):
    with pytest.raises(DatasetError) as exc_info:
        load_datasets([tmp_path / "absent.csv"])
    assert exc_info.value.context["reason"] == "File does not exist"


def test_unsupported_extension_lists_formats(tmp_path):
    path = tmp_path / "data.xml"
    path.write_text("<rows/>")
    with pytest.raises(DatasetError, match="Available: csv"):
        load_datasets([path])


def test_json_scalar_is_rejected(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("42")
    with pytest.raises(DatasetError, match="array of objects"):
        load_datasets([path])


def test_json_mapping_with_non_list_table_is_rejected(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"users": "nope"}))
    with pytest.raises(DatasetError) as exc_info:
        load_datasets([path])
    assert exc_info.value.context["table"] == "users"


def test_invalid_json_is_wrapped(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("[{")
    with pytest.raises(DatasetError, match="Failed to read dataset"):
        load_datasets([f"t={path}"])


def test_loader_registry():
    class TSVLoader:
        """Tab-separated values with a header row."""

        def load(self, path):
            return pl.read_csv(path, separator="\t").to_dicts()

    register_loader("tsv", TSVLoader)

    assert isinstance(get_loader(".TSV"), TSVLoader)
    assert isinstance(get_loader("csv"), CSVLoader)
    assert list_loaders()["tsv"] == "Tab-separated values with a header row."
    with pytest.raises(KeyError, match="Unknown dataset format 'xlsx'"):
        get_loader("xlsx")
