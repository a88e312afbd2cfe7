"""Configuration section models."""

from txaudit.config.models.audit import AuditConfig
from txaudit.config.models.observability import LoggingConfig

__all__ = ["AuditConfig", "LoggingConfig"]
