import sys
import types

import pytest

from notequiz import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "notequiz"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def test_version_command_handles_missing_package(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.metadata,
        "version",
        lambda name: (_ for _ in ()).throw(cli.metadata.PackageNotFoundError()),
    )
    code = cli.main(["version"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: notequiz" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert "Usage: notequiz" in captured.out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    captured = capsys.readouterr()
    assert code == 0
    for name in ("init", "quizzer", "serve"):
        assert name in captured.out
    assert "(interactive)" in captured.out


def test_help_known_command(capsys):
    code = cli.main(["help", "quizzer"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Run `notequiz quizzer --help`" in captured.out


def test_help_unknown_command(capsys):
    code = cli.main(["help", "does-not-exist"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


@pytest.mark.parametrize("argv", [["version"], ["--version"], ["-V"]])
def test_version(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.strip() == "0.0-test"


def test_unknown_command_errors(capsys):
    code = cli.main(["bogus"])
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err


def test_dispatch_invokes_module_main_with_passthrough(monkeypatch):
    before = list(sys.argv)
    captured: dict[str, list[str]] = {}

    def fake_import(module_name: str):
        assert module_name == "notequiz.quizzer._main"

        def stub_main(argv):
            captured["argv"] = list(argv)
            captured["sys_argv"] = list(sys.argv)
            return 7

        return types.SimpleNamespace(main=stub_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    code = cli.main(["quizzer", "start", "biology"])
    assert code == 7
    assert captured["argv"] == ["start", "biology"]
    assert captured["sys_argv"] == ["notequiz quizzer", "start", "biology"]
    assert list(sys.argv) == before


@pytest.mark.parametrize(
    "exit_code, expected, stderr",
    [(5, 5, ""), (None, 0, ""), ("boom", 1, "boom"), (object(), 1, "")],
)
def test_dispatch_normalizes_system_exit(
    monkeypatch, capsys, exit_code, expected, stderr
):
    def fake_import(module_name: str):
        def stub_main(argv):
            raise SystemExit(exit_code)

        return types.SimpleNamespace(main=stub_main)

    monkeypatch.setattr(cli, "import_module", fake_import)
    code = cli.main(["serve"])
    captured = capsys.readouterr()
    assert code == expected
    assert captured.err.strip() == stderr


def test_dispatch_normalizes_non_int_return(monkeypatch):
    def fake_import(module_name: str):
        return types.SimpleNamespace(main=lambda argv: "done")

    monkeypatch.setattr(cli, "import_module", fake_import)
    assert cli.main(["serve"]) == 0


def test_pending_command_without_handler_reports_error(monkeypatch, capsys):
    spec = cli.CommandSpec(
        name="pending",
        summary="Placeholder command.",
        handler=None,
    )
    monkeypatch.setitem(cli.COMMANDS, "pending", spec)
    code = cli.main(["pending"])
    captured = capsys.readouterr()
    assert code == 2
    assert "not yet implemented" in captured.err


def test_notequiz_cli_runs_init_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Workspace ready" in captured.out
    for entry in ("config", "logs", "quizzes"):
        assert (target / entry).is_dir()
    assert (target / "config" / "notequiz.toml").exists()


def test_notequiz_cli_runs_quizzer_report(tmp_path, capsys):
    code = cli.main(
        ["quizzer", "report", "biology", "--workspace", str(tmp_path)]
    )

    assert code == 1
    assert "No saved results" in capsys.readouterr().out
