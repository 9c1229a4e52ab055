"""Smoke tests for CLI entrypoints.

The Words CLI is replaced by a small Python script through tool.command, so
these run the real subprocess path end to end.
"""

import json
import logging
import subprocess
import sys
from pathlib import Path

import pytest

import src.words_bridge.logging_utils as logging_utils
from src.words_bridge.cli import main

ROOT_DIR = Path(__file__).resolve().parents[1]

FAKE_TOOL = """
import sys
args = sys.argv[1:]
if args and args[0] == "status":
    sys.stderr.write("Cannot connect to ProPresenter\\n")
    sys.exit(1)
print(" ".join(args))
"""


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if getattr(handler, logging_utils._HANDLER_TAG, False):
            root.removeHandler(handler)
    logging_utils._logging_configured = False


@pytest.fixture()
def fake_tool_config(tmp_path):
    script = tmp_path / "fake_tool.py"
    script.write_text(FAKE_TOOL, encoding="utf-8")
    config = tmp_path / "config.yaml"
    config.write_text(
        "tool:\n"
        f"  command: [{json.dumps(sys.executable)}, {json.dumps(str(script))}]\n"
        "  timeout_seconds: 30\n",
        encoding="utf-8",
    )
    return str(config)


class TestMainAppCLI:
    """Test main_app.py CLI."""

    def test_main_app_help(self):
        """main_app.py --help should succeed."""
        result = subprocess.run(
            [sys.executable, str(ROOT_DIR / "main_app.py"), "--help"],
            capture_output=True,
            text=True,
            cwd=str(ROOT_DIR),
        )
        assert result.returncode == 0, f"Error: {result.stderr}"
        for command in ("export", "playlists", "status", "libraries"):
            assert command in result.stdout


class TestBridgeCLI:

    def test_export_success(self, fake_tool_config, capsys, monkeypatch):
        monkeypatch.delenv("PROPRESENTER_HOST", raising=False)
        monkeypatch.delenv("PROPRESENTER_PORT", raising=False)
        code = main(["--config", fake_tool_config, "export", "abc-123", "--format", "json"])
        out = json.loads(capsys.readouterr().out)
        assert code == 0
        assert out == {
            "success": True,
            "message": "export abc-123 --json --host 127.0.0.1 --port 1025\n",
            "file_path": None,
        }

    def test_playlists_with_explicit_connection(self, fake_tool_config, capsys):
        code = main(["--config", fake_tool_config, "playlists", "--host", "pp.local", "--port", "50001"])
        out = json.loads(capsys.readouterr().out)
        assert code == 0
        assert out["message"] == "playlists --json --host pp.local --port 50001\n"

    def test_env_supplies_default_connection(self, fake_tool_config, capsys, monkeypatch):
        monkeypatch.setenv("PROPRESENTER_HOST", "10.9.8.7")
        monkeypatch.setenv("PROPRESENTER_PORT", "2000")
        main(["--config", fake_tool_config, "libraries"])
        out = json.loads(capsys.readouterr().out)
        assert out["message"] == "libraries --json --host 10.9.8.7 --port 2000\n"

    def test_status_failure_exit_code(self, fake_tool_config, capsys):
        code = main(["--config", fake_tool_config, "status", "--host", "h", "--port", "1"])
        out = json.loads(capsys.readouterr().out)
        assert code == 1
        assert out == {"success": False, "message": "Cannot connect to ProPresenter\n", "file_path": None}

    def test_missing_tool(self, tmp_path, capsys):
        config = tmp_path / "config.yaml"
        config.write_text("tool:\n  command: [definitely-not-a-real-tool-7f3a]\n", encoding="utf-8")
        code = main(["--config", str(config), "status", "--host", "h", "--port", "1"])
        out = json.loads(capsys.readouterr().out)
        assert code == 1
        assert out["message"].startswith("Connection failed: ")

    def test_invalid_port_is_usage_error(self, fake_tool_config):
        with pytest.raises(SystemExit) as exc:
            main(["--config", fake_tool_config, "status", "--port", "70000"])
        assert exc.value.code == 2

    def test_missing_config_is_usage_error(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["--config", str(tmp_path / "missing.yaml"), "status"])
        assert exc.value.code == 2
