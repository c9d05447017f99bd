"""
Configuration management for csfmod using Pydantic Settings.
"""

import shlex
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_STORY_PATTERNS = [
    "*.story.js",
    "*.story.jsx",
    "*.story.ts",
    "*.story.tsx",
    "*.stories.js",
    "*.stories.jsx",
    "*.stories.ts",
    "*.stories.tsx",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CSFMOD_",
        case_sensitive=False,
    )

    # Legacy API recognition
    legacy_function_name: str = Field(
        default="storiesOf", description="Name of the legacy registration function"
    )
    legacy_package_prefix: str = Field(
        default="@storybook/", description="Import source prefix of the legacy function"
    )

    # Output formatting
    quote_style: Literal["single", "double"] = Field(
        default="single", description="Quote style for generated string literals"
    )
    trailing_comma: bool = Field(
        default=True, description="Add trailing commas to multi-line literals"
    )
    tab_width: int = Field(default=2, ge=1, le=8, description="Indentation width")
    story_annotation_property: str = Field(
        default="story", description="Static property holding per-story metadata"
    )
    preserve_story_names: bool = Field(
        default=False,
        description="Keep display names the export identifier cannot reproduce",
    )
    strip_residual_roots: bool = Field(
        default=False, description="Run the textual residual-root cleanup pass"
    )
    prettier_command: str = Field(
        default="", description="External formatter command, e.g. 'npx prettier'"
    )
    formatter_timeout: int = Field(
        default=30, description="Timeout for the external formatter in seconds"
    )

    # Batch configuration
    story_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_STORY_PATTERNS),
        description="Glob patterns of candidate story files",
    )
    max_workers: int = Field(default=4, ge=1, description="Parallel workers for batch runs")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON formatted logs")


class TransformOptions(BaseModel):
    """Per-invocation options of the storiesOf transform."""

    legacy_function_name: str = "storiesOf"
    legacy_package_prefix: str = "@storybook/"
    quote_style: Literal["single", "double"] = "single"
    trailing_comma: bool = True
    tab_width: int = Field(default=2, ge=1, le=8)
    story_annotation_property: str = "story"
    preserve_story_names: bool = False
    strip_residual_roots: bool = False
    prettier_command: List[str] = Field(default_factory=list)
    formatter_timeout: int = 30
    grammar: Optional[Literal["javascript", "typescript", "tsx"]] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "TransformOptions":
        """Build options from settings, letting keyword overrides win."""
        settings = settings or get_settings()
        values = {
            "legacy_function_name": settings.legacy_function_name,
            "legacy_package_prefix": settings.legacy_package_prefix,
            "quote_style": settings.quote_style,
            "trailing_comma": settings.trailing_comma,
            "tab_width": settings.tab_width,
            "story_annotation_property": settings.story_annotation_property,
            "preserve_story_names": settings.preserve_story_names,
            "strip_residual_roots": settings.strip_residual_roots,
            "prettier_command": shlex.split(settings.prettier_command),
            "formatter_timeout": settings.formatter_timeout,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
