"""Tests for ordering and concatenating usage documents."""

import solarusage as su
from solarusage.types import NamedDocument


def test_sort_documents_by_sequence_is_stable():
    """Files without a sequence sort as 0 and keep their relative order."""
    docs = [
        NamedDocument("b__2.json", {}),
        NamedDocument("x.json", {}),
        NamedDocument("a__1.json", {}),
        NamedDocument("y.json", {}),
    ]
    out = su.merge.sort_documents(docs)
    assert [d.name for d in out] == ["x.json", "y.json", "a__1.json", "b__2.json"]


def test_merge_concatenates_in_document_order(make_doc):
    """Channel arrays are concatenated document by document.

    Input: two documents with overlapping channels.
    Expect: merged arrays in document order and per-channel counts.
    """
    a = make_doc(normal=[{"generatedTime": 1, "value": 1}], reverse=[{"generatedTime": 1, "value": 0}])
    b = make_doc(normal=[{"generatedTime": 2, "value": 2}, {"generatedTime": 3, "value": 3}], instance=[{"x": 1}])
    res = su.merge.merge_documents([NamedDocument("d__1.json", a), NamedDocument("d__2.json", b)])
    assert res.channels["normalUsage"] == a["data"]["normalUsage"] + b["data"]["normalUsage"]
    assert res.channels["reverseUsage"] == a["data"]["reverseUsage"]
    assert res.channels["instanceElectricity"] == [{"x": 1}]
    assert res.counts == {"normalUsage": 3, "reverseUsage": 1, "instanceElectricity": 1}
    assert res.total == 5


def test_merge_skips_documents_without_data(make_doc):
    """Documents lacking 'data' or a channel array are skipped and logged."""
    docs = [
        NamedDocument("no_data.json", {"status": "ok"}),
        NamedDocument("array.json", [1, 2, 3]),
        NamedDocument("bad_channel.json", make_doc(normal="oops")),
        NamedDocument("good.json", make_doc(normal=[{"generatedTime": 1, "value": 1}])),
    ]
    res = su.merge.merge_documents(docs)
    assert res.counts["normalUsage"] == 1
    assert "- no 'data' key found" in res.log
    assert "- normalUsage: no data" in res.log
    assert "- normalUsage: added 1 records" in res.log
    assert res.log[-3:] == [
        "- normalUsage: 1 records",
        "- reverseUsage: 0 records",
        "- instanceElectricity: 0 records",
    ]


def test_merge_reports_progress(make_doc):
    calls = []
    docs = [NamedDocument(f"f__{i}.json", make_doc(normal=[])) for i in range(1, 3)]
    su.merge.merge_documents(docs, progress=lambda done, total: calls.append((done, total)))
    assert calls == [(1, 2), (2, 2)]
