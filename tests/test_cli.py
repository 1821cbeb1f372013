import pytest

from dirsize import cli
from dirsize.navigation import Event, NavigationEngine
from conftest import d, f, j

MB = 1_000_000


class FakeSession:
    def __init__(self, events, rows=24):
        self.events = list(events)
        self.rows = rows
        self.rendered = []
        self.warnings = []

    def visible_rows(self):
        return self.rows

    def render(self, state):
        self.rendered.append(state)

    def next_event(self):
        return self.events.pop(0)

    def warn(self, message):
        self.warnings.append(message)


def build_engine():
    root = d("r",
             d(j("r", "sub"), f(j("r", "sub", "c"), 3 * MB)),
             f(j("r", "a"), 2 * MB))
    return NavigationEngine(root)


def test_loop_renders_before_every_event_and_stops_on_exit():
    engine = build_engine()
    session = FakeSession([Event.MOVE_DOWN, Event.MOVE_UP, Event.SELECT, Event.EXIT, Event.BACK])
    cli.run_interactive(engine, session, reveal=lambda p: True)
    assert len(session.rendered) == 4
    assert session.rendered[-1].path == j("r", "sub")
    assert session.events == [Event.BACK]


def test_open_in_file_manager_failure_is_a_warning():
    engine = build_engine()
    opened = []

    def reveal(path):
        opened.append(path)
        return False

    session = FakeSession([Event.OPEN_IN_FILE_MANAGER, Event.EXIT])
    cli.run_interactive(engine, session, reveal=reveal)
    assert opened == [j("r", "sub")]
    assert len(session.warnings) == 1
    assert engine.current is engine.root


def test_open_in_file_manager_success_is_silent():
    session = FakeSession([Event.OPEN_IN_FILE_MANAGER, Event.EXIT])
    cli.run_interactive(build_engine(), session, reveal=lambda p: True)
    assert session.warnings == []


def test_missing_path_exits_with_usage_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main([str(tmp_path / "nope")])
    assert exc.value.code == 2
    assert "not a directory" in capsys.readouterr().err


def test_missing_argument_exits_non_zero():
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code != 0


def test_unknown_size_format_is_rejected(sample_dir):
    with pytest.raises(SystemExit) as exc:
        cli.main([sample_dir, "-s", "tb"])
    assert exc.value.code == 2


def test_bad_environment_is_reported(sample_dir, monkeypatch):
    monkeypatch.setenv("DIRSIZE_STRATEGY", "bogus")
    with pytest.raises(SystemExit) as exc:
        cli.main([sample_dir, "--no-ui"])
    assert exc.value.code == 2


def test_no_ui_prints_the_filtered_listing(sample_dir, capsys):
    assert cli.main([sample_dir, "--no-ui", "-s", "b", "--strategy", "sequential"]) == 0
    out = capsys.readouterr().out
    assert "Running size calculation for directory" in out
    assert "size: 5500000.00 bytes" in out
    lines = [line.strip() for line in out.splitlines() if line.startswith("  ")]
    assert lines == ["sub   - 3000000.00 bytes", "a.txt - 2000000.00 bytes"]


def test_min_size_flag(sample_dir, capsys):
    assert cli.main([sample_dir, "--no-ui", "--min-size", "0"]) == 0
    out = capsys.readouterr().out
    assert "b.txt" in out


def test_benchmark_mode(sample_dir, capsys):
    assert cli.main([sample_dir, "--benchmark", "2", "--strategy", "threaded"]) == 0
    assert "average" in capsys.readouterr().out


def test_log_file_receives_records(sample_dir, tmp_path):
    log_file = tmp_path / "scan.log"
    assert cli.main([sample_dir, "--no-ui", "--log-file", str(log_file)]) == 0
    assert "Running size calculation" in log_file.read_text(encoding="utf-8")
