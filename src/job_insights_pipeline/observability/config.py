"""
OpenTelemetry Tracing Configuration

Loads tracing settings from environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Environment Variables:
        TRACING_ENABLED: Enable span export (default: false)
        TRACING_SERVICE_NAME: Service name on exported spans (default: job-insights-pipeline)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP endpoint (console exporter if empty)
        TRACING_CAPTURE_CONTENT: Attach prompts/responses to spans (default: false)

    PRIVACY WARNING:
        Setting TRACING_CAPTURE_CONTENT=true exports raw prompts, which may
        contain the user's resume text, to the configured collector.
    """

    enabled: bool = False
    service_name: str = "job-insights-pipeline"
    collector_endpoint: str | None = None
    capture_content: bool = False

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("TRACING_ENABLED", "false").lower() in ("true", "1", "yes"),
            service_name=os.environ.get("TRACING_SERVICE_NAME", "job-insights-pipeline"),
            collector_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            capture_content=os.environ.get("TRACING_CAPTURE_CONTENT", "false").lower() in ("true", "1", "yes"),
        )


# Global config singleton
_config: TracingConfig | None = None


def get_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
