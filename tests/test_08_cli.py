import json

import httpx
import pytest

from tts_proxy import cli
from tts_proxy.proxy.upstream import GoogleTranslateTTS
from tts_proxy.services import proxy_service
from tts_proxy.utils import ports


@pytest.fixture
def fake_upstream(provider, monkeypatch):
    """Route the CLI's service through the fake provider."""
    monkeypatch.setattr(
        proxy_service,
        "GoogleTranslateTTS",
        lambda config: GoogleTranslateTTS(config, transport=httpx.MockTransport(provider)),
    )
    return provider


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text(
        f"server:\n  base_port: 4100\n  port_file: {tmp_path / 'web' / 'config.json'}\n",
        encoding="utf-8",
    )
    # main() exports --settings; restore it after the test
    monkeypatch.setenv("TTS_PROXY_SETTINGS", str(path))
    return path


def test_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--help"])
    assert exc_info.value.code == 0
    assert "tts-proxy CLI" in capsys.readouterr().out


def test_config_json(capsys, settings_file):
    code = cli.main(["--settings", str(settings_file), "config", "--json"])
    assert code == 0

    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    assert data["server"]["base_port"] == 4100
    assert data["upstream"]["language"] == "my"


def test_config_yaml(capsys, settings_file):
    assert cli.main(["--settings", str(settings_file), "config"]) == 0
    assert "base_port: 4100" in capsys.readouterr().out


def test_invalid_config_exits_2(tmp_path, monkeypatch, capsys):
    path = tmp_path / "bad.yaml"
    path.write_text("cache:\n  max_items: -3\n", encoding="utf-8")
    monkeypatch.setenv("TTS_PROXY_SETTINGS", str(path))

    assert cli.main(["--settings", str(path), "config"]) == 2
    assert "cache.max_items" in capsys.readouterr().out


def test_fetch_writes_mp3(tmp_path, fake_upstream, capsys):
    out = tmp_path / "audio" / "hello.mp3"

    code = cli.main(["fetch", "မင်္ဂလာပါ", "--out", str(out)])

    assert code == 0
    assert out.read_bytes() == bytes([1, 2, 3])
    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary == {"ok": True, "out": str(out), "bytes": 3}
    assert fake_upstream.requests[0].url.params["q"] == "မင်္ဂလာပါ"


def test_fetch_upstream_error(tmp_path, fake_upstream, capsys):
    fake_upstream.status = 403
    out = tmp_path / "never.mp3"

    assert cli.main(["fetch", "x", "--out", str(out)]) == 1
    assert not out.exists()
    assert '"statusCode":403' in capsys.readouterr().out


class TestServe:

    @pytest.fixture
    def uvicorn_calls(self, monkeypatch):
        import uvicorn

        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kw: calls.append((app, kw)))
        return calls

    def test_discovers_port_and_writes_file(self, settings_file, uvicorn_calls, monkeypatch, tmp_path):
        monkeypatch.setattr(ports, "find_free_port", lambda base, host: base + 2)

        assert cli.main(["--settings", str(settings_file), "serve"]) == 0

        app, kw = uvicorn_calls[0]
        assert app == "tts_proxy.main:app"
        assert kw["port"] == 4102
        assert kw["host"] == "127.0.0.1"
        port_file = tmp_path / "web" / "config.json"
        assert json.loads(port_file.read_text(encoding="utf-8")) == {"TTS_PORT": 4102}

    def test_explicit_port_skips_discovery(self, settings_file, uvicorn_calls, monkeypatch, tmp_path):
        def boom(*args, **kwargs):
            raise AssertionError("discovery should be skipped")

        monkeypatch.setattr(ports, "find_free_port", boom)

        code = cli.main(["--settings", str(settings_file), "serve", "--port", "8123", "--no-port-file"])

        assert code == 0
        assert uvicorn_calls[0][1]["port"] == 8123
        assert not (tmp_path / "web" / "config.json").exists()

    def test_no_free_port_exits_1(self, settings_file, uvicorn_calls, monkeypatch):
        def none_free(base, host):
            raise ports.NoFreePortError("all taken")

        monkeypatch.setattr(ports, "find_free_port", none_free)

        assert cli.main(["--settings", str(settings_file), "serve"]) == 1
        assert uvicorn_calls == []
