import pandas as pd
import pytest

from cnvrecon.data_source import (
    IdentifierRecord,
    load_identifiers,
    normalize_columns,
    read_table,
    registry_from_records,
)
from cnvrecon.errors import InputReadError, JoinCardinalityError, MissingValueError, SchemaError

from .conftest import write_tsv


def test_read_table_missing_file(tmp_path):
    with pytest.raises(InputReadError) as ei:
        read_table(tmp_path / "nope.tsv", "focal_calls")
    assert isinstance(ei.value, OSError)
    assert ei.value.table == "focal_calls"


def test_read_table_gzip_keeps_strings(tmp_path):
    path = tmp_path / "broad.tsv.gz"
    pd.DataFrame({"biospecimen_id": ["b1", "b2"], "1p": ["-1", "NA"]}).to_csv(
        path, sep="\t", index=False, compression="gzip"
    )
    df = read_table(path, "broad_calls")
    assert df["1p"].iloc[0] == "-1"
    assert pd.isna(df["1p"].iloc[1])


def test_normalize_columns_prefers_existing_canonical_column():
    df = pd.DataFrame({"biospecimen_id": ["x"], "Kids_First_Biospecimen_ID": ["y"]})
    out = normalize_columns(df)
    assert list(out.columns) == ["biospecimen_id", "Kids_First_Biospecimen_ID"]


def test_load_identifiers_maps_aliases(records):
    reg = load_identifiers(records)
    assert len(reg) == 3
    assert reg["b2"] == IdentifierRecord("s2", "b2", "p2")
    assert list(reg) == ["b1", "b2", "b3"]
    assert list(reg.frame.columns) == ["sample_id", "biospecimen_id", "participant_id"]


def test_load_identifiers_from_path(tmp_path, records):
    path = write_tsv(tmp_path / "histologies.tsv", records.assign(short_histology="HGAT"))
    reg = load_identifiers(path)
    assert reg["b1"].participant_id == "p1"


def test_load_identifiers_missing_column():
    df = pd.DataFrame({"sample_id": ["s1"], "biospecimen_id": ["b1"]})
    with pytest.raises(SchemaError) as ei:
        load_identifiers(df)
    assert ei.value.table == "identifiers"
    assert ei.value.column == "participant_id"


def test_duplicated_biospecimen_kept_when_not_strict():
    df = pd.DataFrame({
        "sample_id": ["s1", "s1b"],
        "biospecimen_id": ["b1", "b1"],
        "participant_id": ["p1", "p1"],
    })
    reg = load_identifiers(df)
    assert len(reg) == 1
    assert len(reg.frame) == 2
    assert reg.duplicated_ids() == ["b1"]
    assert reg["b1"].sample_id == "s1"


def test_duplicated_biospecimen_strict():
    df = pd.DataFrame({
        "sample_id": ["s1", "s2"],
        "biospecimen_id": ["b1", "b1"],
        "participant_id": ["p1", "p1"],
    })
    with pytest.raises(JoinCardinalityError) as ei:
        load_identifiers(df, strict=True)
    assert ei.value.ids == ["b1"]


def test_subset_and_records(registry):
    sub = registry.subset({"b3", "zz"})
    assert list(sub) == ["b3"]
    reg = registry_from_records([IdentifierRecord("s9", "b9", "p9")])
    assert reg["b9"].sample_id == "s9"


@pytest.mark.parametrize("column", ["sample_id", "participant_id"])
@pytest.mark.parametrize("blank", [None, "  "])
def test_load_identifiers_rejects_empty_identifier(column, blank):
    df = pd.DataFrame({
        "sample_id": ["s1", "s2"],
        "biospecimen_id": ["b1", "b2"],
        "participant_id": ["p1", "p2"],
    })
    df.loc[1, column] = blank
    with pytest.raises(MissingValueError) as ei:
        load_identifiers(df)
    assert (ei.value.table, ei.value.column) == ("identifiers", column)
    assert ei.value.keys == ["b2"]
    assert isinstance(ei.value, SchemaError)


def test_registry_from_records_rejects_empty_identifier():
    with pytest.raises(MissingValueError):
        registry_from_records([IdentifierRecord(None, "b9", "p9")])
