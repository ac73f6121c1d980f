import io
import threading

import pytest

from records import RecordWriter, ResultRecord, failure_message


def test_success_line_has_four_tab_separated_fields():
    record = ResultRecord("3", 1700000000123456, 5123, status=200)
    assert record.ok
    assert record.to_line() == "3\t1700000000123456\t5123\t200"


def test_failure_line_is_tagged_and_stays_on_one_line():
    record = ResultRecord("1", 10, 20, error="ConnectError: refused\n\tby peer")
    assert not record.ok
    line = record.to_line()
    assert "\n" not in line
    assert line.split("\t") == ["1", "10", "20", "ERR", "ConnectError: refused by peer"]


def test_from_line_parses_both_outcomes():
    ok = ResultRecord.from_line("0\t100\t42\t503\n")
    assert ok == ResultRecord("0", 100, 42, status=503)

    failed = ResultRecord.from_line("7\t100\t42\tERR\tReadTimeout")
    assert failed.error == "ReadTimeout"
    assert failed.status is None


@pytest.mark.parametrize("line", ["", "0\t1\t2", "0\t1\t2\tERR", "0\tx\t2\t200", "0\t1\t2\t200\textra"])
def test_from_line_rejects_malformed_lines(line):
    with pytest.raises(ValueError):
        ResultRecord.from_line(line)


def test_failure_message_falls_back_to_type_name():
    assert failure_message(ConnectionRefusedError()) == "ConnectionRefusedError"
    assert failure_message(OSError("boom")) == "OSError: boom"


def test_writer_keeps_concurrent_records_intact():
    out = io.StringIO()
    writer = RecordWriter(out)

    def emit_many(identity):
        for i in range(200):
            writer.emit(ResultRecord(identity, i, i, status=200))

    threads = [threading.Thread(target=emit_many, args=(str(n),)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    records = [ResultRecord.from_line(line) for line in out.getvalue().splitlines()]
    assert len(records) == 8 * 200
    assert {r.identity for r in records} == {str(n) for n in range(8)}
