"""CLI tests for ccdb.cli.main.

Report-file flows run the real pipeline against tmp_path. Flows that would
call the build tool patch the core entry points imported into *cli.py*.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

import ccdb.cli as cli
from ccdb.config import CcdbConfig
from ccdb.errors import ExternalToolError
from ccdb.report import GenerationReport


REPORT = "header\n\ncore /ws/core.pkg\n  /inc\n\n  /ws/a.cpp\n\n  -O2\n\n/gen.h /ws/a.cpp 1\n"


# ---------------------------------------------------------------------------
# Fixtures & helpers
# ---------------------------------------------------------------------------

@pytest.fixture()
def report_file(tmp_path) -> Path:
    path = tmp_path / "info.txt"
    path.write_text(REPORT, encoding="utf-8")
    return path


def _run(argv):
    asyncio.run(cli.main(argv))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_report_file_to_output(tmp_path, report_file):
    out = tmp_path / "out" / "compile_commands.json"

    _run(["--report", str(report_file), "--workspace-root", str(tmp_path), "-o", str(out)])

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data == [
        {
            "file": "/ws/a.cpp",
            "directory": str(tmp_path.resolve()),
            "arguments": ["clang++", "-std=c++17", "-Wall", "-Wextra", "-I/inc", "-O2", "/ws/a.cpp"],
        }
    ]


def test_report_from_stdin(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "stdin", SimpleNamespace(read=lambda: REPORT))

    _run(["--report", "-", "--workspace-root", str(tmp_path)])

    assert (tmp_path.resolve() / "compile_commands.json").is_file()


def test_report_missing_exits(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        _run(["--report", str(tmp_path / "missing.txt"), "--workspace-root", str(tmp_path)])

    assert exc.value.code == 1
    assert "input file not found" in capsys.readouterr().err.lower()


def test_malformed_report_exits(tmp_path, capsys):
    bad = tmp_path / "bad.txt"
    bad.write_text("only one chunk\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        _run(["--report", str(bad), "--workspace-root", str(tmp_path)])

    assert exc.value.code == 1
    assert "processing error" in capsys.readouterr().err
    assert not (tmp_path / "compile_commands.json").exists()


def test_inspect_prints_summary_without_writing(tmp_path, report_file, capsys):
    _run(["--report", str(report_file), "--workspace-root", str(tmp_path), "--inspect"])

    out = capsys.readouterr().out
    assert out.startswith("=== PROJECT INFO ===")
    assert "Package #1: core" in out
    assert not (tmp_path / "compile_commands.json").exists()


def test_json_report(tmp_path, report_file, capsys):
    _run(["--report", str(report_file), "--workspace-root", str(tmp_path), "--json"])

    err = capsys.readouterr().err
    payload = json.loads(err[err.index("{\n"):])
    assert payload["entry_count"] == 1
    assert payload["success"] is True


def test_config_load(tmp_path, report_file):
    cfg_path = tmp_path / "ccdb.toml"
    cfg_path.write_text('compiler = "g++"\ndefault_flags = []\nformat_json = false\n', encoding="utf-8")
    out = tmp_path / "cc.json"

    _run([
        "--report", str(report_file),
        "--workspace-root", str(tmp_path),
        "--config", str(cfg_path),
        "-o", str(out),
    ])

    text = out.read_text(encoding="utf-8")
    assert json.loads(text)[0]["arguments"] == ["g++", "-I/inc", "-O2", "/ws/a.cpp"]
    assert text.count("\n") == 1  # compact output


def test_bad_config_exits(tmp_path, report_file, capsys):
    cfg_path = tmp_path / "ccdb.toml"
    cfg_path.write_text("compiler = 1\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        _run(["--report", str(report_file), "--workspace-root", str(tmp_path), "--config", str(cfg_path)])

    assert exc.value.code == 1
    assert "failed to load config" in capsys.readouterr().err


def test_missing_mode_is_usage_error(capsys):
    with pytest.raises(SystemExit) as exc:
        _run([])
    assert exc.value.code == 2


def test_descriptor_uses_build_pipeline(monkeypatch, tmp_path):
    seen = {}

    async def _fake_build(descriptor, cfg, *, target, workspace_root, output_path, on_written):
        seen.update(descriptor=descriptor, target=target, root=workspace_root, cfg=cfg)
        return GenerationReport(success=True)

    monkeypatch.setattr(cli, "build_compile_database", _fake_build)

    _run(["/ws/core.pkg", "--target", "release", "--workspace-root", str(tmp_path)])

    assert seen["descriptor"] == "/ws/core.pkg"
    assert seen["target"] == "release"
    assert seen["root"] == tmp_path.resolve()
    assert isinstance(seen["cfg"], CcdbConfig)


def test_descriptor_build_failure_exits(monkeypatch, tmp_path, capsys):
    async def _fake_build(*args, **kwargs):
        raise ExternalToolError("builder exited with status 3", returncode=3)

    monkeypatch.setattr(cli, "build_compile_database", _fake_build)

    with pytest.raises(SystemExit) as exc:
        _run(["/ws/core.pkg", "--workspace-root", str(tmp_path)])

    assert exc.value.code == 1
    assert "status 3" in capsys.readouterr().err


def test_all_exits_nonzero_when_a_package_fails(monkeypatch, tmp_path, capsys):
    async def _fake_all(root, cfg, *, target, on_written):
        return [GenerationReport(success=True), GenerationReport(success=False)]

    monkeypatch.setattr(cli, "generate_all", _fake_all)

    with pytest.raises(SystemExit) as exc:
        _run(["--all", "--workspace-root", str(tmp_path), "--json"])

    assert exc.value.code == 1
    err = capsys.readouterr().err
    payload = json.loads(err[err.index("[\n"):])
    assert [rep["success"] for rep in payload] == [True, False]


def test_all_success(monkeypatch, tmp_path):
    async def _fake_all(root, cfg, *, target, on_written):
        return [GenerationReport(success=True)]

    monkeypatch.setattr(cli, "generate_all", _fake_all)

    _run(["--all", "--workspace-root", str(tmp_path)])


def test_all_inspect_prints_every_package_without_writing(monkeypatch, tmp_path, capsys):
    for rel in ("core/core.pkg", "util/util.pkg"):
        path = tmp_path / rel
        path.parent.mkdir(parents=True)
        path.write_text("", encoding="utf-8")
    seen = []

    async def _fake_tool(descriptor, target, output_path, cfg):
        seen.append(Path(descriptor).name)
        Path(output_path).write_text(REPORT, encoding="utf-8")
        return 0

    monkeypatch.setattr(cli, "run_build_tool", _fake_tool)

    _run(["--all", "--inspect", "--workspace-root", str(tmp_path)])

    assert seen == ["core.pkg", "util.pkg"]
    assert capsys.readouterr().out.count("=== PROJECT INFO ===") == 2
    assert list(tmp_path.rglob("compile_commands.json")) == []


def test_report_inspect_does_not_discover_workspace_root(monkeypatch, report_file, capsys):
    def _no_discovery(cfg):
        raise AssertionError("workspace root discovery should not run")

    monkeypatch.setattr(cli, "resolve_workspace_root", _no_discovery)

    _run(["--report", str(report_file), "--inspect"])

    assert capsys.readouterr().out.startswith("=== PROJECT INFO ===")


def test_log_file_receives_records(tmp_path, report_file):
    log_path = tmp_path / "ccdb.log"

    _run([
        "--report", str(report_file),
        "--workspace-root", str(tmp_path),
        "--log-file", str(log_path),
    ])

    text = log_path.read_text(encoding="utf-8")
    assert "INFO ccdb.generator: Wrote" in text


def test_unwritable_log_file_exits(tmp_path, report_file, capsys):
    with pytest.raises(SystemExit) as exc:
        _run([
            "--report", str(report_file),
            "--workspace-root", str(tmp_path),
            "--log-file", str(tmp_path / "missing" / "ccdb.log"),
        ])

    assert exc.value.code == 1
    assert "cannot open log file" in capsys.readouterr().err
