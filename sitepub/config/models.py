"""Configuration models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PostgresConfig(BaseModel):
    """Postgres configuration for the run archive."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("sitepub", description="Database name")
    user: str = Field("sitepub_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class StorageConfig(BaseModel):
    """Content bucket configuration."""

    backend: str = Field("local", description="Storage backend (local, s3)")
    root: str = Field("~/SitePub/bucket", description="Root directory for the local backend")
    bucket: Optional[str] = Field(None, description="S3 bucket name")
    prefix: str = Field("", description="Key prefix inside the bucket")
    region: Optional[str] = Field(None, description="S3 region")
    endpoint_url: Optional[str] = Field(None, description="Custom S3 endpoint")
    site_path: str = Field("hugo", description="Key prefix of the Hugo source tree")
    content_path: str = Field("hugo/content/posts", description="Key prefix of generated articles")
    config_key: str = Field("hugo/config.yml", description="Site configuration object watched for changes")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("local", "s3"):
            raise ValueError(f"Unknown storage backend: {v}")
        return v


class SiteConfig(BaseModel):
    """Site parameters passed to the build tool."""

    base_url: str = Field("http://localhost:1313/", description="Public base URL")
    env: str = Field("development", description="Value of the env site parameter")
    disqus_shortname: Optional[str] = Field(None, description="Enables comments when set")
    google_analytics: Optional[str] = Field(None, description="Analytics id")
    timezone: str = Field("Asia/Tokyo", description="Timezone used for publish dates")
    site_name: str = Field("Builder News", description="Watermark printed on thumbnails")

    @property
    def comments_enabled(self) -> bool:
        return bool(self.disqus_shortname)


class HugoConfig(BaseModel):
    """Build tool configuration."""

    version: str = Field("0.98.0", description="Hugo release version")
    binary_url: str = Field(
        "https://github.com/gohugoio/hugo/releases/download/v{version}/hugo_{version}_Linux-64bit.tar.gz",
        description="Release tarball URL template",
    )
    sha256: Optional[str] = Field(None, description="Expected tarball checksum")
    cache_dir: str = Field("~/.cache/sitepub", description="Binary cache directory")
    binary_path: Optional[str] = Field(None, description="Use this binary instead of the cache")
    artifact_name: str = Field("staticPages", description="Fixed artifact directory name")
    timeout: float = Field(600.0, description="Hard build timeout in seconds", gt=0)


class CDNConfig(BaseModel):
    """Edge cache configuration."""

    provider: str = Field("none", description="CDN provider (cloudfront, none)")
    distribution_id: Optional[str] = Field(None, description="Distribution to invalidate")
    wait: bool = Field(False, description="Wait for invalidation to complete")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in ("cloudfront", "none"):
            raise ValueError(f"Unknown CDN provider: {v}")
        return v


class FeedConfig(BaseModel):
    """Announcement feed the articles are generated from."""

    url: str = Field(
        "https://aws.amazon.com/about-aws/whats-new/recent/feed/",
        description="RSS feed URL",
    )
    timeout: float = Field(30.0, description="HTTP timeout in seconds")
    max_entries: int = Field(50, description="Maximum entries listed per article", ge=1)


class LLMConfig(BaseModel):
    """LLM provider configuration used for translation."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API")


class FontConfig(BaseModel):
    """Font files used by the thumbnail renderer."""

    latin: Optional[str] = Field(None, description="Latin font file; Pillow default when unset")
    cjk: Optional[str] = Field(None, description="CJK capable font file; Pillow default when unset")


class PipelineConfig(BaseModel):
    """Orchestrator policy."""

    branch_attempts: int = Field(2, description="Attempts per language branch", ge=1, le=10)
    branch_backoff: float = Field(2.0, description="Initial branch retry delay in seconds", ge=0)
    run_timeout: float = Field(1800.0, description="Maximum run duration in seconds", gt=0)


class CadenceConfig(BaseModel):
    """One recurring schedule, evaluated in UTC."""

    weekdays: List[int] = Field(
        default_factory=lambda: list(range(7)),
        description="Weekdays the cadence fires on (0=Monday)",
    )
    hour: int = Field(0, ge=0, le=23)
    minute: int = Field(0, ge=0, le=59)
    enabled: bool = Field(True)

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("Cadence needs at least one weekday")
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("Weekdays must be between 0 (Monday) and 6 (Sunday)")
        return sorted(set(v))


class TriggerConfig(BaseModel):
    """Trigger sources and delivery policy."""

    # 00:00 UTC Mon-Sat is 09:00 JST; 22:00 UTC daily is 07:00 JST
    published: CadenceConfig = Field(
        default_factory=lambda: CadenceConfig(weekdays=[0, 1, 2, 3, 4, 5], hour=0)
    )
    draft: CadenceConfig = Field(default_factory=lambda: CadenceConfig(hour=22))
    retry_attempts: int = Field(3, description="Delivery retries after the first attempt", ge=0)
    retry_backoff: float = Field(30.0, description="Initial delivery retry delay in seconds", ge=0)
    max_event_age: float = Field(3600.0, description="Maximum trigger age in seconds", gt=0)
    config_poll_interval: float = Field(60.0, description="Config change poll interval", gt=0)


class ConfigModel(BaseModel):
    """Main configuration model."""

    workspace_root: str = Field("~/SitePub", description="Root directory for outputs")
    storage: StorageConfig = Field(default_factory=StorageConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    hugo: HugoConfig = Field(default_factory=HugoConfig)
    cdn: CDNConfig = Field(default_factory=CDNConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    fonts: FontConfig = Field(default_factory=FontConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    triggers: TriggerConfig = Field(default_factory=TriggerConfig)
    postgres: Optional[PostgresConfig] = Field(None, description="Archive runs to Postgres when set")
