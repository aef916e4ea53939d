"""Pydantic data models for company knowledge data."""

from .knowledge import (
    CompanyStats,
    DocumentRecord,
    DocumentStatus,
    FileType,
    VoiceSettings,
)

__all__ = [
    "CompanyStats",
    "DocumentRecord",
    "DocumentStatus",
    "FileType",
    "VoiceSettings",
]
