"""
FAQ Engine Configuration

EngineSettings holds process-level tunables (read once from the environment
at the API/CLI boundary). RunConfig is the validated, immutable value object
built once per invocation and passed through every stage.
"""

import time
from typing import Annotated, Any, Optional, Union

import pydantic
import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from shared.schemas.faq import DateRange, GenerationOptions

from .errors import RunTimeoutError, ValidationError

logger = structlog.get_logger()

# Interrogative words that mark a title as a question (English + Japanese)
DEFAULT_INTERROGATIVE_KEYWORDS = (
    "how", "why", "when", "where", "who", "what", "which",
    "どう", "なぜ", "いつ", "どこ", "だれ", "なに",
)

# Curated vocabulary used to derive FAQ tags
DEFAULT_TAG_VOCABULARY = (
    "login", "password", "error", "settings", "install", "update",
    "account", "registration", "delete", "notification", "data", "file",
    "sync", "backup", "restore", "connection", "network", "security",
    "billing", "invoice", "export", "import",
    "ログイン", "パスワード", "エラー", "設定", "インストール", "アップデート",
    "アカウント", "登録", "削除", "変更", "確認", "通知", "データ", "ファイル",
    "同期", "バックアップ", "復元", "接続", "ネットワーク", "セキュリティ",
)


class EngineSettings(BaseSettings):
    """Process-level tunables for clustering runs, read from TFE_* environment variables"""

    model_config = SettingsConfigDict(env_prefix="TFE_", extra="ignore", frozen=True)

    max_corpus_size: int = Field(default=1000, ge=1)
    max_iterations: int = Field(default=100, ge=1)
    embed_concurrency: int = Field(default=4, ge=1)
    fallback_dimension: int = Field(default=1536, ge=1)
    default_seed: Optional[int] = None
    # Comma-separated in the environment (TFE_TAG_VOCABULARY=billing,refund)
    interrogative_keywords: Annotated[tuple[str, ...], NoDecode] = DEFAULT_INTERROGATIVE_KEYWORDS
    tag_vocabulary: Annotated[tuple[str, ...], NoDecode] = DEFAULT_TAG_VOCABULARY

    @field_validator("interrogative_keywords", "tag_vocabulary", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value


class RunConfig(BaseModel):
    """Validated configuration for a single clustering run"""

    model_config = ConfigDict(frozen=True)

    app_id: str
    min_cluster_size: int
    max_clusters: int
    similarity_threshold: float
    date_range: Optional[DateRange] = None
    categories: Optional[tuple[str, ...]] = None

    max_corpus_size: int = 1000
    max_iterations: int = 100
    embed_concurrency: int = 4
    fallback_dimension: int = 1536
    interrogative_keywords: tuple[str, ...] = DEFAULT_INTERROGATIVE_KEYWORDS
    tag_vocabulary: tuple[str, ...] = DEFAULT_TAG_VOCABULARY

    seed: Optional[int] = None
    timeout: Optional[float] = Field(default=None, gt=0)

    @classmethod
    def build(
        cls,
        app_id: str,
        options: Union[GenerationOptions, dict],
        settings: Optional[EngineSettings] = None,
        seed: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> "RunConfig":
        """
        Validate request options and merge them with engine settings.

        Raises:
            ValidationError: options out of range, min >= max, bad date range
        """
        if not app_id:
            raise ValidationError("app_id is required")
        parsed = parse_options(options)
        settings = settings or EngineSettings()
        try:
            return cls(
                app_id=app_id,
                min_cluster_size=parsed.min_cluster_size,
                max_clusters=parsed.max_clusters,
                similarity_threshold=parsed.similarity_threshold,
                date_range=parsed.date_range,
                categories=tuple(parsed.categories) if parsed.categories else None,
                max_corpus_size=settings.max_corpus_size,
                max_iterations=settings.max_iterations,
                embed_concurrency=settings.embed_concurrency,
                fallback_dimension=settings.fallback_dimension,
                interrogative_keywords=settings.interrogative_keywords,
                tag_vocabulary=settings.tag_vocabulary,
                seed=seed if seed is not None else settings.default_seed,
                timeout=timeout,
            )
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid run configuration", {"errors": _error_messages(e)}) from e


def parse_options(options: Union[GenerationOptions, dict]) -> GenerationOptions:
    """Coerce raw request options into GenerationOptions or raise ValidationError"""
    if isinstance(options, GenerationOptions):
        return options
    try:
        return GenerationOptions.model_validate(options)
    except pydantic.ValidationError as e:
        messages = _error_messages(e)
        logger.warning("Rejected generation options", errors=messages)
        raise ValidationError("Invalid generation options", {"errors": messages}) from e


class Deadline:
    """Monotonic deadline checked at stage boundaries"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._expires_at = time.monotonic() + timeout if timeout else None

    @property
    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self, stage: str) -> None:
        if self.expired():
            logger.warning("Run deadline exceeded", stage=stage, timeout=self.timeout)
            raise RunTimeoutError(stage, self.timeout)


def _error_messages(error: pydantic.ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item.get('msg')}" if location else item.get("msg", ""))
    return messages
