import json
import plistlib

import pytest

from nsbundle_config import cli
from nsbundle_config.errors import MissingBundleIdentifierError


def _write_context(path, **overrides) -> None:
    raw = {
        "type": "user",
        "published": {"url": "https://exp.host/@me/app"},
        "data": {"exp": {"name": "Foo", "ios": {"bundleIdentifier": "com.foo"}}, "projectPath": "."},
    }
    raw.update(overrides)
    path.write_text(json.dumps(raw))


def test_main_runs_pipeline_with_loaded_context(monkeypatch, tmp_path) -> None:
    ctx_path = tmp_path / "ctx.json"
    _write_context(ctx_path)
    captured: dict = {}

    def fake_run(ctx, **kwargs) -> None:
        captured["ctx"] = ctx
        captured.update(kwargs)

    monkeypatch.setattr(cli, "run", fake_run)

    rc = cli.main(["-c", str(ctx_path), "--verbose"])

    assert rc == 0
    assert captured["ctx"].variant == "user"
    assert captured["verbose"] is True
    assert captured["settings"].default_crash_reporting_key == cli.DEFAULT_CRASH_REPORTING_KEY


def test_main_passes_crash_reporting_key_override(monkeypatch, tmp_path) -> None:
    ctx_path = tmp_path / "ctx.json"
    _write_context(ctx_path)
    captured: dict = {}
    monkeypatch.setattr(cli, "run", lambda ctx, **kwargs: captured.update(kwargs))

    cli.main(["-c", str(ctx_path), "--crash-reporting-key", "abc"])

    assert captured["settings"].default_crash_reporting_key == "abc"


def test_main_converts_pipeline_errors_to_system_exit(monkeypatch, tmp_path) -> None:
    ctx_path = tmp_path / "ctx.json"
    _write_context(ctx_path)

    def failing_run(_ctx, **_kwargs) -> None:
        raise MissingBundleIdentifierError("Cannot configure an iOS app with no bundle identifier.")

    monkeypatch.setattr(cli, "run", failing_run)

    with pytest.raises(SystemExit) as e:
        cli.main(["-c", str(ctx_path)])
    assert "no bundle identifier" in str(e.value)
    assert "--restore" in str(e.value)


def test_main_requires_a_mode() -> None:
    with pytest.raises(SystemExit) as e:
        cli.main([])
    assert "missing -c/--context" in str(e.value)


def test_main_rejects_multiple_modes(tmp_path) -> None:
    with pytest.raises(SystemExit) as e:
        cli.main(["-c", "x.json", "--inspect", str(tmp_path)])
    assert "cannot be used together" in str(e.value)


def test_restore_mode_rolls_back_documents(tmp_path, capsys) -> None:
    with open(tmp_path / "Info.plist", "wb") as f:
        plistlib.dump({"A": "changed"}, f)
    with open(tmp_path / "Info.plist.bak", "wb") as f:
        plistlib.dump({"A": "original"}, f)

    rc = cli.main(["--restore", str(tmp_path)])

    assert rc == 0
    with open(tmp_path / "Info.plist", "rb") as f:
        assert plistlib.load(f) == {"A": "original"}
    assert not (tmp_path / "Info.plist.bak").exists()
    assert "Restored Info" in capsys.readouterr().out


def test_restore_mode_without_backups(tmp_path, capsys) -> None:
    rc = cli.main(["--restore", str(tmp_path)])
    assert rc == 0
    assert "No backups found" in capsys.readouterr().out


def test_restore_mode_missing_directory(tmp_path) -> None:
    with pytest.raises(SystemExit) as e:
        cli.main(["--restore", str(tmp_path / "nope")])
    assert "directory not found" in str(e.value)


def test_inspect_mode_prints_summary(tmp_path, capsys) -> None:
    with open(tmp_path / "Info.plist", "wb") as f:
        plistlib.dump({"CFBundleIdentifier": "com.foo.bar"}, f)

    rc = cli.main(["--inspect", str(tmp_path)])

    assert rc == 0
    out = capsys.readouterr().out
    assert "Bundle Documents:" in out
    assert "com.foo.bar" in out


def test_inspect_mode_reports_unreadable_document(tmp_path) -> None:
    (tmp_path / "Info.plist").write_bytes(b"not a plist")

    with pytest.raises(SystemExit) as e:
        cli.main(["--inspect", str(tmp_path)])
    assert str(e.value).startswith("Error: failed to parse plist")
