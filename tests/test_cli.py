"""Tests for the yt-cleaner command line."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from yt_cleaner import cli
from yt_cleaner.client.consumer import CUT_OFF_MESSAGE, ConsumerState, StreamStatus


class FakeClient:
    """Stands in for TranscriptClient and returns a fixed final state."""

    def __init__(self, state: ConsumerState):
        self._state = state
        self.calls = []

    def __call__(self, base_url):
        self.base_url = base_url
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def stream(self, url, provider_credential=None, on_update=None):
        self.calls.append((url, provider_credential))
        if on_update:
            on_update(self._state)
        return self._state


class TestParser:

    def test_fetch_arguments(self):
        args = cli.build_parser().parse_args([
            "fetch", "https://youtu.be/abc123", "--provider-key", "sd", "-o", "out.txt",
        ])
        assert args.command == "fetch"
        assert args.url == "https://youtu.be/abc123"
        assert args.provider_key == "sd"
        assert args.output == Path("out.txt")

    def test_serve_defaults(self):
        args = cli.build_parser().parse_args(["serve", "--port", "9000"])
        assert args.command == "serve"
        assert args.port == 9000

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestFetchCommand:

    def test_writes_transcript_to_file(self, tmp_path):
        state = ConsumerState(status=StreamStatus.DONE, transcript="Clean text.", completed=True)
        fake = FakeClient(state)
        output = tmp_path / "transcript.txt"

        with patch.object(cli, "TranscriptClient", fake):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["fetch", "https://youtu.be/abc123", "-o", str(output)])

        assert exc_info.value.code == 0
        assert output.read_text(encoding="utf-8") == "Clean text.\n"
        assert fake.calls == [("https://youtu.be/abc123", None)]

    def test_cut_off_exits_nonzero(self, capsys):
        state = ConsumerState(
            status=StreamStatus.ERROR,
            message=CUT_OFF_MESSAGE,
            transcript="partial",
            completed=True,
        )

        with patch.object(cli, "TranscriptClient", FakeClient(state)):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["fetch", "https://youtu.be/abc123"])

        captured = capsys.readouterr()
        assert exc_info.value.code == 1
        assert CUT_OFF_MESSAGE in captured.err
        assert captured.out == "partial\n"

    def test_serve_runs_api(self):
        with patch("yt_cleaner.server.app.run_api") as run_api:
            cli.main(["serve", "--host", "127.0.0.1", "--port", "8123"])
        run_api.assert_called_once_with(host="127.0.0.1", port=8123)
