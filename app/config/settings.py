import json
import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

class ResolverConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    timeout_seconds: float = Field(default=60.0, gt=0, description="Metadata resolution timeout in seconds")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout passed to yt-dlp")
    retries: int = Field(default=1, ge=0, le=5, description="Extra attempts after a failed resolution")
    retry_backoff_seconds: float = Field(default=0.5, ge=0, description="Initial backoff between attempts")
    referer: str = Field(default="youtube.com", description="Referer header sent by yt-dlp")
    user_agent: str = Field(default=BROWSER_USER_AGENT, description="User-Agent header sent by yt-dlp")

class RelayConfig(BaseModel):
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Relay chunk size in bytes")
    connect_timeout_seconds: float = Field(default=10.0, gt=0, description="Upstream connect timeout")
    read_timeout_seconds: float = Field(default=30.0, gt=0, description="Upstream read timeout")
    max_redirects: int = Field(default=5, ge=0, le=20, description="Redirect hops followed per relay fetch")
    user_agent: str = Field(default=BROWSER_USER_AGENT, description="User-Agent for upstream fetches")

class SecurityConfig(BaseModel):
    enable_ssrf_protection: bool = Field(default=True, description="Enable SSRF protection")
    allow_private_ips: bool = Field(default=False, description="Allow private IP ranges")
    allow_localhost: bool = Field(default=False, description="Allow localhost access")

class YtDlpConfig(BaseModel):
    default_format: str = Field(default="best/best*", description="Format selector for video intents")
    default_audio_selector: str = Field(default="bestaudio/best", description="Format selector for audio intent")
    audio_format: str = Field(default="mp3", description="Audio extraction target format")
    audio_ext: str = Field(default="m4a", description="Container preferred for audio-only selection")
    video_ext: str = Field(default="mp4", description="Container required for muxed selection")

class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: List[str] = Field(default=["en", "ja"], description="Supported locales")

class ApiConfig(BaseModel):
    title: str = Field(default="Video Relay API", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: List[str] = Field(default=["*"], description="CORS allowed origins")
    debug: bool = Field(default=False, description="Enable debug mode")

class Config(BaseModel):
    """Main configuration model"""
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.json") -> "Config":
        """Load configuration from JSON file, falling back to defaults"""
        if not os.path.exists(config_path):
            logger.info(f"Config file {config_path} not found, using defaults")
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
            logger.info(f"Configuration loaded from {config_path}")
            return cls(**config_data)
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"Failed to load config from {config_path}: {str(e)}")
            logger.info("Using default configuration")
            return cls()

class ServerSettings(BaseSettings):
    """Listening address, taken from the environment"""
    model_config = SettingsConfigDict(extra="ignore")

    host: str = "0.0.0.0"
    port: int = 5000
    config_path: str = "config.json"

server_settings = ServerSettings()

# Global config instance
config = Config.load_from_file(server_settings.config_path)
