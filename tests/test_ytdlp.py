import asyncio

import pytest

from app.core.errors import MalformedUpstreamResponse, ResolutionFailed
from app.models.internal import Intent, ResolverOptions
from app.services import ytdlp
from app.services.ytdlp import CompletedProcess, YTDLPCommandBuilder, YtDlpMetadataResolver

URL = "https://youtu.be/ABC123"


def test_audio_command_requests_extraction():
    cmd = YTDLPCommandBuilder.build_metadata_command(URL, ResolverOptions.for_intent(Intent.AUDIO_ONLY))

    assert cmd[0] == "yt-dlp"
    assert "--dump-single-json" in cmd
    assert "--extract-audio" in cmd
    assert cmd[cmd.index("--audio-format") + 1] == "mp3"
    assert "--no-check-certificates" in cmd
    assert "--prefer-free-formats" in cmd
    assert "--no-warnings" not in cmd
    assert cmd[-2:] == ["--", URL]


def test_listing_command_sends_browser_headers():
    cmd = YTDLPCommandBuilder.build_metadata_command(URL, ResolverOptions.for_intent(Intent.LIST_FORMATS))

    headers = [cmd[i + 1] for i, part in enumerate(cmd) if part == "--add-header"]
    assert "referer:youtube.com" in headers
    assert any(h.startswith("user-agent:Mozilla/5.0") for h in headers)
    assert "--no-warnings" in cmd
    assert "--no-check-certificates" not in cmd
    assert "--extract-audio" not in cmd


def test_muxed_command_keeps_single_file_selector():
    cmd = YTDLPCommandBuilder.build_metadata_command(URL, ResolverOptions.for_intent(Intent.MUXED_VIDEO))

    assert cmd[cmd.index("-f") + 1] == "best/best*"
    assert "--no-playlist" in cmd


@pytest.mark.parametrize("intent", [Intent.LIST_FORMATS, Intent.MUXED_VIDEO])
def test_video_selector_falls_back_for_split_only_sites(intent):
    # Sites with only separate audio and video streams have no "best" match
    cmd = YTDLPCommandBuilder.build_metadata_command(URL, ResolverOptions.for_intent(intent))

    selector = cmd[cmd.index("-f") + 1]
    assert selector.split("/") == ["best", "best*"]


def test_audio_selector_is_unchanged():
    cmd = YTDLPCommandBuilder.build_metadata_command(URL, ResolverOptions.for_intent(Intent.AUDIO_ONLY))
    assert cmd[cmd.index("-f") + 1] == "bestaudio/best"


def test_url_is_never_parsed_as_an_option():
    cmd = YTDLPCommandBuilder.build_metadata_command("--exec=rm", ResolverOptions())
    assert cmd[-2:] == ["--", "--exec=rm"]


def _fake_run(result=None, error=None):
    async def run(cmd, timeout, capture_stderr=True):
        if error is not None:
            raise error
        return result
    return staticmethod(run)


@pytest.mark.asyncio
async def test_fetch_returns_parsed_payload(monkeypatch):
    monkeypatch.setattr(
        ytdlp.SubprocessExecutor, "run",
        _fake_run(CompletedProcess(0, b'{"title": "t", "url": "u"}', b"")),
    )
    payload = await YtDlpMetadataResolver(timeout=1).fetch(URL, ResolverOptions())
    assert payload == {"title": "t", "url": "u"}


@pytest.mark.asyncio
async def test_nonzero_exit_is_resolution_failure(monkeypatch):
    monkeypatch.setattr(
        ytdlp.SubprocessExecutor, "run",
        _fake_run(CompletedProcess(1, b"", b"ERROR: Unsupported URL")),
    )
    with pytest.raises(ResolutionFailed, match="Unsupported URL"):
        await YtDlpMetadataResolver(timeout=1).fetch(URL, ResolverOptions())


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [asyncio.TimeoutError(), FileNotFoundError("yt-dlp")])
async def test_timeout_and_missing_binary_are_resolution_failures(monkeypatch, error):
    monkeypatch.setattr(ytdlp.SubprocessExecutor, "run", _fake_run(error=error))
    with pytest.raises(ResolutionFailed):
        await YtDlpMetadataResolver(timeout=1).fetch(URL, ResolverOptions())


@pytest.mark.asyncio
@pytest.mark.parametrize("stdout", [b"not json", b"[1, 2]", b'"title"'])
async def test_unparseable_output_is_malformed(monkeypatch, stdout):
    monkeypatch.setattr(ytdlp.SubprocessExecutor, "run", _fake_run(CompletedProcess(0, stdout, b"")))
    with pytest.raises(MalformedUpstreamResponse):
        await YtDlpMetadataResolver(timeout=1).fetch(URL, ResolverOptions())


@pytest.mark.asyncio
async def test_version_falls_back_to_unknown(monkeypatch):
    monkeypatch.setattr(ytdlp.SubprocessExecutor, "run", _fake_run(error=FileNotFoundError("yt-dlp")))
    assert await ytdlp.detect_ytdlp_version() == "unknown"
