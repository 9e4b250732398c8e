"""End-to-end tests for the batch, single-file and JSON merge flows."""

import json

import pytest

import solarusage as su

from conftest import MIN, T0


def test_batch_csv_orders_files_and_names_output(tmp_path, write_json, make_doc):
    # Selected out of order; the same generatedTime appears in both files
    second = write_json(
        "dev1___002.json",
        make_doc(normal=[{"generatedTime": T0, "value": 2}, {"generatedTime": T0 + 30 * MIN, "value": 5}]),
    )
    first = write_json(
        "dev1___001.json",
        make_doc(normal=[{"generatedTime": T0, "value": 1}], reverse=[{"generatedTime": T0, "value": 0}]),
    )
    out_dir = tmp_path / "out"
    res = su.pipeline.batch_csv([second, first], out_dir)

    assert res.path == out_dir / "dev1_mergedcsv.csv"
    assert res.path.read_text(encoding="utf-8") == res.csv_text
    # dev1___001 is merged first, so its record owns the shared bucket
    assert [s.normal_usage_cumulative for s in res.samples] == [1, 5]
    assert [s.normal_usage_difference for s in res.samples] == [0, 4]
    assert res.csv_text.splitlines()[0].endswith("reverseUsage_cumulative,reverseUsage_difference")
    assert res.merged.log[1].startswith("1. dev1___001.json")


def test_batch_csv_without_out_dir_returns_text_only(write_json, make_doc, close_normal_usage):
    path = write_json("single.json", make_doc(normal=close_normal_usage))
    res = su.pipeline.batch_csv([path])
    assert res.path is None
    assert len(res.samples) == 2


def test_batch_csv_aborts_on_unparseable_file(tmp_path, write_json, make_doc, close_normal_usage):
    good = write_json("a__1.json", make_doc(normal=close_normal_usage))
    bad = tmp_path / "a__2.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(su.exceptions.DocumentError, match="a__2.json"):
        su.pipeline.batch_csv([good, bad], tmp_path / "out")
    assert not (tmp_path / "out").exists()


def test_batch_csv_requires_normal_usage(write_json, make_doc):
    path = write_json("r.json", make_doc(reverse=[{"generatedTime": T0, "value": 1}]))
    with pytest.raises(su.exceptions.NormalizeError):
        su.pipeline.batch_csv([path])


def test_batch_csv_requires_files():
    with pytest.raises(su.exceptions.DocumentError):
        su.pipeline.batch_csv([])


def test_output_names():
    assert su.pipeline.merged_csv_name("abc___001.json") == "abc_mergedcsv.csv"
    assert su.pipeline.merged_csv_name("export.json") == "export_mergedcsv.csv"
    assert su.pipeline.merged_csv_name(None) == su.canon.DEFAULT_MERGED_CSV
    assert su.pipeline.converted_csv_name("dir/usage.json") == "usage_converted.csv"


def test_convert_file(tmp_path, write_json):
    path = write_json(
        "usage.json",
        [{"generatedTime": T0, "value": 1}, {"generatedTime": T0 + 30 * MIN, "value": 4}],
    )
    res = su.pipeline.convert_file(path, tmp_path)
    assert res.path == tmp_path / "usage_converted.csv"
    assert [s.difference for s in res.samples] == [0, 3]
    assert res.path.read_text(encoding="utf-8").startswith(
        "generatedTime,roundTime,formatedTime,cumulative,difference\n"
    )


def test_merge_json_writes_non_empty_channels(tmp_path, write_json, make_doc):
    a = write_json("m__2.json", make_doc(normal=[{"generatedTime": 2, "value": 2}]))
    b = write_json("m__1.json", make_doc(normal=[{"generatedTime": 1, "value": 1}], instance=[{"v": 1}]))
    res = su.pipeline.merge_json([a, b], tmp_path / "merged")

    names = sorted(p.name for p in res.paths)
    assert names == ["merged_instanceElectricity.json", "merged_normalUsage.json"]
    normal = json.loads((tmp_path / "merged" / "merged_normalUsage.json").read_text(encoding="utf-8"))
    assert [r["generatedTime"] for r in normal] == [1, 2]


def test_merge_json_without_data_raises(tmp_path, write_json):
    path = write_json("empty.json", {"status": "ok"})
    with pytest.raises(su.exceptions.MergeError):
        su.pipeline.merge_json([path], tmp_path / "merged")
