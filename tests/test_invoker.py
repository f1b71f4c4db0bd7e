import logging
import os
import threading

from pycover.runtime import invoker


def read_lines(data_dir):
    with open(invoker.measurement_file(str(data_dir))) as f:
        return f.read().splitlines()


def test_ids_are_written_once(tmp_path):
    data_dir = str(tmp_path)

    for id in (3, 1, 3, 3, 2, 1):
        invoker.invoked(id, data_dir)

    assert read_lines(tmp_path) == ["3", "1", "2"]
    assert invoker.invoked_ids(data_dir) == {1, 2, 3}


def test_measurement_file_is_per_process(tmp_path):
    path = invoker.measurement_file(str(tmp_path))

    assert os.path.basename(path) == "pycover.measurements.%d" % os.getpid()
    assert invoker.measurement_file("d", pid=7) == os.path.join("d", "pycover.measurements.7")


def test_data_directories_are_independent(tmp_path):
    first, second = str(tmp_path / "a"), str(tmp_path / "b")

    invoker.invoked(1, first)
    invoker.invoked(1, second)
    invoker.invoked(2, second)

    assert invoker.invoked_ids(first) == {1}
    assert invoker.invoked_ids(second) == {1, 2}


def test_measurements_of_all_processes_are_merged(tmp_path):
    (tmp_path / "pycover.measurements.1").write_text("4\n5\n")
    (tmp_path / "pycover.measurements.2").write_text("5\n6\n7")
    (tmp_path / "unrelated.txt").write_text("99\n")

    assert invoker.invoked_ids(str(tmp_path)) == {4, 5, 6, 7}


def test_torn_lines_are_ignored(tmp_path):
    (tmp_path / "pycover.measurements.1").write_text("1\n\n2\n3x")

    assert invoker.invoked_ids(str(tmp_path)) == {1, 2}


def test_close_forgets_recorded_ids(tmp_path):
    data_dir = str(tmp_path)
    invoker.invoked(1, data_dir)
    invoker.close()
    invoker.invoked(1, data_dir)

    assert read_lines(tmp_path) == ["1", "1"]
    assert invoker.invoked_ids(data_dir) == {1}


def test_concurrent_calls(tmp_path):
    data_dir = str(tmp_path)

    def work(offset):
        for i in range(200):
            invoker.invoked((i + offset) % 300, data_dir)

    threads = [threading.Thread(target=work, args=(n * 50,)) for n in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    lines = read_lines(tmp_path)
    assert len(lines) == len(set(lines)) == 300


def test_write_failures_are_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with caplog.at_level(logging.WARNING, logger="pycover.runtime.invoker"):
        invoker.invoked(9, str(blocker))
        invoker.invoked(9, str(blocker))

    assert len(caplog.records) == 1
    assert "could not record statement 9" in caplog.text
