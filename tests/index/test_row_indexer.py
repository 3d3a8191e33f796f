from __future__ import annotations

import pytest

from rowstore.domain.exceptions import MalformedSourceError
from rowstore.domain.index.row_index import RowIndex
from rowstore.domain.index.row_indexer import RowIndexer
from rowstore.domain.models import IndexEntry


def _index(data: bytes, chunk_size: int) -> list[IndexEntry]:
    indexer = RowIndexer()
    for pos in range(0, len(data), chunk_size):
        indexer.feed(data[pos : pos + chunk_size])
    return list(indexer.finish())


def _lines(data: bytes, entries: list[IndexEntry]) -> list[bytes]:
    return [data[e.offset : e.end] for e in entries]


SAMPLES = [
    b"",
    b"\n",
    b"a,b,c\n1,\"x,y\",3\n",
    b"p,q\nr,s",
    b"a,b\n1,2\n\n",
    b"a,b\n1,2\n\n  \n\t\n",
    b"a\n\nb\n",
    b"h1,h2\r\n1,2\r\n3,4",
    "name,city\nJosé,München\n東京,\U0001f600\n".encode("utf-8"),
    b"single line without newline",
    b"x,y\n   ",
]


@pytest.mark.parametrize("data", SAMPLES)
def test_chunk_size_does_not_change_index(data):
    expected = _index(data, max(len(data), 1))
    for chunk_size in (1, 2, 3, 7, 64, 1024 * 1024):
        assert _index(data, chunk_size) == expected


def test_round_trip_example():
    data = b"a,b,c\n1,\"x,y\",3\n"
    entries = _index(data, 4)
    assert entries == [IndexEntry(0, 6), IndexEntry(6, 10)]


def test_last_line_without_terminator_is_indexed():
    data = b"p,q\nr,s"
    entries = _index(data, 2)
    assert _lines(data, entries) == [b"p,q\n", b"r,s"]


def test_final_terminator_does_not_create_phantom_row():
    assert _index(b"a\nb\n", 1) == [IndexEntry(0, 2), IndexEntry(2, 2)]


def test_trailing_blank_lines_are_not_indexed():
    data = b"a,b\n1,2\n\n"
    entries = _index(data, 3)
    assert _lines(data, entries) == [b"a,b\n", b"1,2\n"]


def test_whitespace_only_unterminated_tail_is_not_indexed():
    data = b"x,y\n   "
    assert _lines(data, _index(data, 2)) == [b"x,y\n"]


def test_interior_blank_line_is_a_row():
    data = b"a\n\nb\n"
    assert _lines(data, _index(data, 1)) == [b"a\n", b"\n", b"b\n"]


def test_no_complete_lines_yields_no_rows():
    assert _index(b"", 8) == []
    assert _index(b"\n\n  \n", 8) == []


@pytest.mark.parametrize("data", SAMPLES)
def test_entries_cover_source_without_gaps(data):
    entries = _index(data, 3)
    position = 0
    for entry in entries:
        assert entry.offset == position
        position = entry.end
    covered = b"".join(_lines(data, entries))
    assert data.startswith(covered)
    assert data[len(covered) :].strip() == b""


def test_line_spanning_many_chunks_is_accumulated():
    long_line = b"x" * 50 + b"\n"
    indexer = RowIndexer()
    for pos in range(0, 50, 10):
        assert indexer.feed(long_line[pos : pos + 10]) == 0
    assert indexer.pending_bytes == 50
    assert len(indexer.index) == 0
    assert indexer.feed(long_line[50:]) == 1
    assert list(indexer.index) == [IndexEntry(0, 51)]
    assert indexer.pending_bytes == 0


def test_long_line_fed_byte_by_byte():
    data = b"y" * 100_000 + b"\nz\n"
    indexer = RowIndexer()
    for pos in range(len(data)):
        indexer.feed(data[pos : pos + 1])
    assert list(indexer.finish()) == [IndexEntry(0, 100_001), IndexEntry(100_001, 2)]


def test_newline_is_found_only_in_new_chunk():
    indexer = RowIndexer()
    assert indexer.feed(b"abc") == 0
    assert indexer.feed(b"de\nf") == 1
    assert indexer.pending == bytearray(b"f")
    assert indexer.row_start == 6


def test_blank_run_is_tracked_by_offset_and_count():
    indexer = RowIndexer()
    indexer.feed(b"a\n\n \n")
    assert indexer.rows_emitted == 1
    assert indexer.blank_run_start == 2
    assert indexer.blank_run_rows == 2

    indexer.feed(b"b\n\n")
    assert indexer.rows_emitted == 4
    assert indexer.blank_run_start == 7
    assert indexer.blank_run_rows == 1

    index = indexer.finish()
    assert len(index) == 4
    assert indexer.blank_run_rows == 0
    assert indexer.blank_run_start is None


def test_pending_holds_only_partial_tail():
    indexer = RowIndexer()
    indexer.feed(b"a,b\nc,")
    assert indexer.pending_bytes == 2
    assert indexer.row_start == 4
    assert indexer.rows_emitted == 1


def test_invalid_bytes_raise_malformed_source_with_offset():
    data = b"ok\nbad\xff\n"
    with pytest.raises(MalformedSourceError) as excinfo:
        _index(data, 1024)
    assert excinfo.value.details["offset"] == 6


def test_invalid_bytes_in_unterminated_tail():
    with pytest.raises(MalformedSourceError):
        _index(b"ok\n\xfe\xfe", 1)


def test_feed_after_finish_is_rejected():
    indexer = RowIndexer()
    indexer.finish()
    with pytest.raises(RuntimeError):
        indexer.feed(b"a\n")


def test_row_index_rejects_overlap_and_returns_none_out_of_range():
    index = RowIndex()
    index.extend([IndexEntry(0, 4), IndexEntry(4, 3)])
    assert len(index) == 2
    assert index[1] == IndexEntry(4, 3)
    assert index.get(2) is None
    assert index.get(-1) is None
    assert list(index) == [IndexEntry(0, 4), IndexEntry(4, 3)]
    with pytest.raises(ValueError):
        index.append(IndexEntry(5, 1))
    with pytest.raises(IndexError):
        index[5]


def test_row_index_truncate():
    index = RowIndex()
    index.extend([IndexEntry(0, 2), IndexEntry(2, 1), IndexEntry(3, 1)])
    index.truncate(1)
    assert list(index) == [IndexEntry(0, 2)]
    index.append(IndexEntry(2, 5))
    assert len(index) == 2
    with pytest.raises(ValueError):
        index.truncate(3)
