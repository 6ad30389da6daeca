"""Tests for the click command line."""

import json

import pytest
from click.testing import CliRunner
from playwright.sync_api import Error as PlaywrightError

import main
from automation import browser_profiles
from automation.errors import AuthError, DownloadFailed
from automation.models import Artifact, BatchResult


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda **kwargs: None)
    config_path = tmp_path / "config.json"

    def invoke(*args, **kwargs):
        return CliRunner().invoke(main.cli, ["--config", str(config_path), *args], **kwargs)

    invoke.config_path = config_path
    return invoke


class FakeBot:
    instances = []

    def __init__(self, config, status_callback=None):
        self.config = config
        self.status_callback = status_callback
        self.calls = []
        FakeBot.instances.append(self)

    def _result(self, n):
        result = BatchResult()
        result.success_count = n
        result.artifacts = [Artifact(0, "/music/a.mp3", 10)]
        return result

    def submit_and_retrieve(self, request):
        self.calls.append(("single", request))
        return self._result(1)

    def run_rounds(self, request, rounds):
        self.calls.append(("rounds", request, rounds))
        return self._result(rounds)

    def run_batch(self, requests, shared_session=True):
        self.calls.append(("batch", requests, shared_session))
        return self._result(len(requests))


@pytest.fixture
def fake_bot(monkeypatch):
    FakeBot.instances = []
    monkeypatch.setattr(main, "SunoBot", FakeBot)
    return FakeBot


# ── execute_batch ────────────────────────────────────────────────────


class TestExitCodes:

    def test_all_succeeded(self):
        result = BatchResult(success_count=2)
        assert main.execute_batch(None, lambda b: result) == main.EXIT_OK

    def test_some_failed(self):
        result = BatchResult(success_count=1, failure_count=1)
        assert main.execute_batch(None, lambda b: result) == main.EXIT_JOB_FAILURES

    def test_nothing_ran(self):
        assert main.execute_batch(None, lambda b: BatchResult()) == main.EXIT_JOB_FAILURES

    @pytest.mark.parametrize("error, code", [
        (AuthError("no redirect"), main.EXIT_FATAL),
        (DownloadFailed("empty"), main.EXIT_JOB_FAILURES),
        (PlaywrightError("browser closed"), main.EXIT_FATAL),
    ])
    def test_errors(self, error, code):
        def run(bot):
            raise error
        assert main.execute_batch(None, run) == code


# ── run / batch ──────────────────────────────────────────────────────


class TestRun:

    def test_single_song(self, runner, fake_bot):
        result = runner("run", "-s", "lofi", "-t", "Rain", "--headless")
        assert result.exit_code == 0, result.output
        bot = fake_bot.instances[0]
        kind, request = bot.calls[0]
        assert kind == "single"
        assert request.title == "Rain"
        assert request.instrumental
        assert bot.config.flag("headless") is True
        assert "1 succeeded, 0 failed" in result.output

    def test_rounds(self, runner, fake_bot):
        result = runner("run", "-s", "lofi", "--rounds", "3")
        assert result.exit_code == 0
        assert fake_bot.instances[0].calls[0][2] == 3

    def test_lyrics_file(self, runner, fake_bot, tmp_path):
        lyrics = tmp_path / "song.txt"
        lyrics.write_text("[Verse]\nhello", encoding="utf-8")
        result = runner("run", "-s", "folk", "--lyrics-file", str(lyrics))
        assert result.exit_code == 0
        assert fake_bot.instances[0].calls[0][1].lyrics == "[Verse]\nhello"

    def test_blank_style_rejected(self, runner, fake_bot):
        result = runner("run", "-s", "  ")
        assert result.exit_code == 2
        assert fake_bot.instances == []

    def test_zero_rounds_rejected(self, runner, fake_bot):
        result = runner("run", "-s", "pop", "--rounds", "0")
        assert result.exit_code == 2


class TestBatch:

    def test_runs_every_entry(self, runner, fake_bot, tmp_path):
        songs = tmp_path / "songs.json"
        songs.write_text(json.dumps([
            {"title": "One", "style": "pop"},
            {"title": "Two", "style": "rock", "lyrics": "la la"},
        ]))
        result = runner("batch", str(songs), "--fresh-session")
        assert result.exit_code == 0, result.output
        kind, requests, shared = fake_bot.instances[0].calls[0]
        assert [r.title for r in requests] == ["One", "Two"]
        assert shared is False

    @pytest.mark.parametrize("content", [
        '{"title": "not a list"}',
        '["just a string"]',
        '[{"title": "no style"}]',
        "not json",
    ])
    def test_bad_file(self, runner, fake_bot, tmp_path, content):
        songs = tmp_path / "songs.json"
        songs.write_text(content)
        result = runner("batch", str(songs))
        assert result.exit_code == 1
        assert "Error" in result.output
        assert fake_bot.instances == []

    def test_load_requests_accepts_styles_key(self, tmp_path):
        songs = tmp_path / "songs.json"
        songs.write_text('[{"title": "A", "styles": "ambient"}]')
        assert main.load_requests(str(songs))[0].style == "ambient"


# ── credentials / config / profile ───────────────────────────────────


class TestCredentials:

    def test_set_show_clear(self, runner, memory_keyring):
        result = runner("credentials", "set", "--email", "artist@example.com",
                        input="s3cret\ns3cret\n")
        assert result.exit_code == 0, result.output
        assert "a***@example.com" in result.output
        assert "system keyring" in result.output
        assert memory_keyring[("SunoBot", "suno_password")] == "s3cret"

        saved = json.loads(runner.config_path.read_text())
        assert saved["suno_password"] == "***"

        shown = runner("credentials", "show")
        assert "a***@example.com" in shown.output
        assert "s3cret" not in shown.output

        runner("credentials", "clear")
        assert ("SunoBot", "suno_password") not in memory_keyring
        assert "No credentials saved" in runner("credentials", "show").output

    def test_fallback_to_config_file(self, runner, broken_keyring):
        result = runner("credentials", "set", "--email", "a@b.com", input="pw\npw\n")
        assert result.exit_code == 0
        assert "config file" in result.output
        assert json.loads(runner.config_path.read_text())["suno_password"] == "pw"


class TestConfig:

    def test_set_parses_json(self, runner):
        assert runner("config", "set", "headless", "true").exit_code == 0
        assert runner("config", "set", "slow_mo_ms", "0").exit_code == 0
        runner("config", "set", "profile_name", "work")
        saved = json.loads(runner.config_path.read_text())
        assert saved == {"headless": True, "slow_mo_ms": 0, "profile_name": "work"}

    def test_invalid_auth_method_not_saved(self, runner):
        result = runner("config", "set", "auth_method", "magic-link")
        assert result.exit_code == 2
        assert not runner.config_path.exists()

    def test_password_not_settable(self, runner):
        result = runner("config", "set", "suno_password", "pw")
        assert result.exit_code == 2

    def test_show_masks_email(self, runner):
        runner.config_path.write_text(json.dumps({
            "email": "artist@example.com", "suno_password": "plain",
        }))
        result = runner("config", "show")
        assert "a***@example.com" in result.output
        assert "plain" not in result.output
        assert 'base_url = "https://suno.com"' in result.output


class TestProfile:

    @pytest.fixture(autouse=True)
    def profiles_dir(self, tmp_path, monkeypatch):
        path = tmp_path / "profiles"
        monkeypatch.setattr(browser_profiles, "PROFILES_DIR", str(path))
        return path

    def test_list_empty(self, runner):
        assert "No profiles" in runner("profile", "list").output

    def test_list_and_clear(self, runner, profiles_dir):
        (profiles_dir / "suno").mkdir(parents=True)
        (profiles_dir / "suno" / "Cookies").write_bytes(b"x" * 2048)
        assert "suno" in runner("profile", "list").output

        aborted = runner("profile", "clear", input="n\n")
        assert aborted.exit_code == 1
        assert (profiles_dir / "suno").exists()

        result = runner("profile", "clear", "--yes")
        assert "Deleted profile suno" in result.output
        assert not (profiles_dir / "suno").exists()
