import asyncio
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Protocol

from app.config.settings import config
from app.core.errors import MalformedUpstreamResponse, ResolutionFailed
from app.models.internal import ResolverOptions
from app.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)

STDERR_MAX_CHARS = 200

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        The process is killed on timeout and on cancellation.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def build_metadata_command(url: str, options: ResolverOptions) -> List[str]:
        """Translate a ResolverOptions record into yt-dlp flags"""
        cmd = [
            config.resolver.binary,
            '--socket-timeout', str(config.resolver.socket_timeout),
        ]

        if options.dump_single_json:
            cmd.append('--dump-single-json')
        if options.no_playlist:
            cmd.append('--no-playlist')
        if options.no_warnings:
            cmd.append('--no-warnings')
        if options.prefer_free_formats:
            cmd.append('--prefer-free-formats')
        if options.no_check_certificates:
            cmd.append('--no-check-certificates')
        if options.extract_audio:
            cmd.append('--extract-audio')
            if options.audio_format:
                cmd.extend(['--audio-format', options.audio_format])
        if options.format_selector:
            cmd.extend(['-f', options.format_selector])

        for header in options.extra_headers:
            cmd.extend(['--add-header', header])

        # End of options: a URL starting with '-' must not be read as a flag
        cmd.extend(['--', url])

        return cmd

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.resolver.binary, '--version']

class MetadataResolver(Protocol):
    """Capability that turns a page URL into the tool's raw JSON description"""

    async def fetch(self, url: str, options: ResolverOptions) -> Dict[str, Any]:
        ...  # pragma: no cover

class YtDlpMetadataResolver:
    """MetadataResolver backed by the yt-dlp binary"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or config.resolver.timeout_seconds

    async def fetch(self, url: str, options: ResolverOptions) -> Dict[str, Any]:
        cmd = YTDLPCommandBuilder.build_metadata_command(url, options)

        try:
            result = await SubprocessExecutor.run(cmd, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ResolutionFailed(f"yt-dlp timed out after {self.timeout}s for {safe_url_for_log(url)}")
        except OSError as e:
            raise ResolutionFailed(f"yt-dlp could not be started: {e}") from e

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="ignore").strip()
            raise ResolutionFailed(
                f"yt-dlp exited with {result.returncode}: {error_msg[:STDERR_MAX_CHARS]}"
            )

        try:
            payload = json.loads(result.stdout.decode(errors="ignore"))
        except json.JSONDecodeError as e:
            raise MalformedUpstreamResponse(f"yt-dlp output is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedUpstreamResponse(f"yt-dlp output is a {type(payload).__name__}, expected an object")

        return payload

async def detect_ytdlp_version() -> str:
    """Return the installed yt-dlp version, or "unknown" """
    try:
        result = await SubprocessExecutor.run(YTDLPCommandBuilder.build_version_command(), timeout=10.0)
    except (OSError, asyncio.TimeoutError) as e:
        logger.warning(f"yt-dlp version check failed: {e}")
        return "unknown"

    if result.returncode != 0:
        return "unknown"
    return result.stdout.decode(errors="ignore").strip() or "unknown"
