"""Command line interface: python -m pubky_app.specs / pubky-app."""

import io
import json

import pytest
from blake3 import blake3

from pubky_app import crockford
from pubky_app.specs.__main__ import main

SUBJECT = "https://example.com/post/1"
TAG_ID = crockford.encode(blake3(f"{SUBJECT}:cool".encode("utf-8")).digest()[:16])


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Keep stray pubky-app.yaml files out of the CLI's default config search."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


def _write(tmp_path, name, obj):
    path = tmp_path / name
    path.write_text(json.dumps(obj), encoding="utf-8")
    return str(path)


def _out(capsys):
    return json.loads(capsys.readouterr().out)


class TestPath:

    def test_post(self, capsys):
        assert main(["path", "post", "00321fcw75zfy"]) == 0
        out = _out(capsys)
        assert out == {"ok": True, "kind": "post", "path": "pubky:///pub/pubky.app/posts/00321FCW75ZFY"}

    def test_bad_id(self, capsys):
        assert main(["path", "tag", "00321FCW75ZFY"]) == 1
        out = _out(capsys)
        assert out["ok"] is False
        assert out["error"] == "invalid_encoding"

    def test_unknown_kind_is_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            main(["path", "bookmark", "X"])
        assert exc.value.code == 2


class TestId:

    def test_tag(self, tmp_path, capsys):
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "   CoOl  ", "created_at": 0})
        assert main(["id", "tag", path]) == 0
        out = _out(capsys)
        assert out["id"] == TAG_ID
        assert out["path"] == f"pubky:///pub/pubky.app/tags/{TAG_ID}"
        assert out["record"]["label"] == "cool"

    def test_post_issues_time_ordered_id(self, tmp_path, capsys):
        path = _write(tmp_path, "post.json", {"content": "hello"})
        assert main(["id", "post", path]) == 0
        out = _out(capsys)
        assert len(out["id"]) == 13
        assert out["record"]["kind"] == "short"

    def test_malformed(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")
        assert main(["id", "tag", str(path)]) == 1
        assert _out(capsys)["error"] == "deserialization_error"

    def test_invalid_mandatory_uri(self, tmp_path, capsys):
        path = _write(tmp_path, "tag.json", {"uri": "invalid_uri", "label": "cool", "created_at": 0})
        assert main(["id", "tag", path]) == 1
        out = _out(capsys)
        assert out["error"] == "mandatory_field_invalid"
        assert out["field"] == "uri"


class TestValidate:

    def test_accepts(self, tmp_path, capsys):
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "cool", "created_at": 0})
        assert main(["validate", "tag", path, "--id", TAG_ID.lower()]) == 0
        out = _out(capsys)
        assert out["ok"] is True
        assert out["path"] == f"pubky:///pub/pubky.app/tags/{TAG_ID}"

    def test_rejects_mismatch(self, tmp_path, capsys):
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "warm", "created_at": 0})
        assert main(["validate", "tag", path, "--id", TAG_ID]) == 1
        out = _out(capsys)
        assert out["error"] == "identifier_mismatch"
        assert out["field"] == "id"

    def test_reads_stdin(self, monkeypatch, capsys):
        blob = json.dumps({"uri": SUBJECT, "label": "cool", "created_at": 0}).encode("utf-8")
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(blob)))
        assert main(["validate", "tag", "-", "--id", TAG_ID]) == 0
        assert _out(capsys)["record"]["label"] == "cool"

    def test_id_is_required(self, tmp_path):
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "cool", "created_at": 0})
        with pytest.raises(SystemExit):
            main(["validate", "tag", path])

    @pytest.mark.parametrize("cmd", [["id", "tag"], ["validate", "tag", "--id", TAG_ID]])
    def test_missing_file(self, tmp_path, capsys, cmd):
        argv = cmd[:2] + [str(tmp_path / "absent.json")] + cmd[2:]
        assert main(argv) == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "absent.json" in captured.err

    def test_rejection_is_logged(self, tmp_path, capsys):
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "warm", "created_at": 0})
        main(["validate", "tag", path, "--id", TAG_ID])
        events = [json.loads(line) for line in capsys.readouterr().err.splitlines()]
        rejected = [e for e in events if e["message"] == "Record rejected"]
        assert len(rejected) == 1
        assert rejected[0]["error_code"] == "identifier_mismatch"


class TestConfig:

    def test_prints_effective_config(self, capsys):
        assert main(["config"]) == 0
        assert "namespace: pubky.app" in capsys.readouterr().out

    def test_config_file(self, tmp_path, capsys):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("paths:\n  namespace: example.app\n", encoding="utf-8")
        assert main(["--config", str(cfg), "path", "post", "00321FCW75ZFY"]) == 0
        assert _out(capsys)["path"] == "pubky:///pub/example.app/posts/00321FCW75ZFY"

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "absent.yaml"), "config"]) == 2
        assert "not found" in capsys.readouterr().err

    def test_invalid_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("PUBKY_APP_LOG_FORMAT", "xml")
        assert main(["config"]) == 2
        assert "observability.log_format" in capsys.readouterr().err

    def test_invalid_log_level_in_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("PUBKY_APP_LOG_LEVEL", "verbose")
        assert main(["path", "post", "00321FCW75ZFY"]) == 2
        assert "PUBKY_APP_LOG_LEVEL" in capsys.readouterr().err

    def test_log_format_from_config_file(self, tmp_path, capsys):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("observability:\n  log_format: text\n", encoding="utf-8")
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "warm", "created_at": 0})
        assert main(["--config", str(cfg), "validate", "tag", path, "--id", TAG_ID]) == 1
        err = capsys.readouterr().err
        assert "WARNING pubky_app.validation: Record rejected [identifier_mismatch]" in err
        assert not any(line.startswith("{") for line in err.splitlines())

    def test_log_level_from_config_file(self, tmp_path, capsys):
        cfg = tmp_path / "custom.yaml"
        cfg.write_text("observability:\n  log_level: error\n", encoding="utf-8")
        path = _write(tmp_path, "tag.json", {"uri": SUBJECT, "label": "warm", "created_at": 0})
        assert main(["--config", str(cfg), "validate", "tag", path, "--id", TAG_ID]) == 1
        assert capsys.readouterr().err == ""

    def test_project_config_is_picked_up(self, tmp_path, capsys):
        (tmp_path / "pubky-app.yaml").write_text("paths:\n  scheme: demo\n", encoding="utf-8")
        assert main(["path", "post", "00321FCW75ZFY"]) == 0
        assert _out(capsys)["path"] == "demo:///pub/pubky.app/posts/00321FCW75ZFY"


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert "pubky-app 0.3.0" in capsys.readouterr().out
