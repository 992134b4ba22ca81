"""
Phoenix Tracing Configuration
OpenTelemetry spans exported to Phoenix when an API key is configured,
no-op spans otherwise
"""

import logging
from contextlib import contextmanager
from functools import wraps

from phoenix.otel import register

from water_spots.config import PHOENIX_API_KEY, PHOENIX_PROJECT_NAME

logger = logging.getLogger(__name__)


class TracerWrapper:
    """
    Wrapper around OpenTelemetry Tracer that adds a .tool() decorator
    and handles openinference_span_kind
    """

    def __init__(self, tracer):
        self._tracer = tracer

    def start_as_current_span(self, name, openinference_span_kind=None, **kwargs):
        """Handle openinference_span_kind parameter"""
        attributes = kwargs.get('attributes', {})

        if openinference_span_kind:
            attributes['openinference.span.kind'] = openinference_span_kind

        kwargs['attributes'] = attributes
        return self._tracer.start_as_current_span(name, **kwargs)

    def tool(self, name: str = None, description: str = None):
        """Decorator to trace async tool calls"""
        def decorator(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                span_name = name or func.__name__

                with self._tracer.start_as_current_span(
                    span_name,
                    attributes={
                        "openinference.span.kind": "tool",
                        "tool.name": span_name,
                        "tool.description": description or "",
                    }
                ) as span:
                    try:
                        result = await func(*args, **kwargs)
                        span.set_attribute("tool.success", True)
                        return result
                    except Exception as e:
                        span.set_attribute("tool.success", False)
                        span.set_attribute("tool.error", str(e))
                        span.record_exception(e)
                        raise
            return wrapper
        return decorator


class DummySpan:
    def set_attribute(self, *args, **kwargs):
        pass

    def record_exception(self, *args, **kwargs):
        pass

    def set_status(self, *args, **kwargs):
        pass


class DummyTracer:
    """Tracer used when Phoenix is not configured"""

    def start_as_current_span(self, *args, **kwargs):
        @contextmanager
        def dummy_span():
            yield DummySpan()
        return dummy_span()

    def tool(self, *args, **kwargs):
        def decorator(func):
            return func
        return decorator


def setup_phoenix_tracing(api_key=PHOENIX_API_KEY, project_name=PHOENIX_PROJECT_NAME):
    """
    Setup Phoenix tracing

    register() picks up PHOENIX_API_KEY and PHOENIX_COLLECTOR_ENDPOINT from
    the environment.

    Returns:
        TracerWrapper, or None when tracing is not configured or fails
    """
    if not api_key:
        logger.info("PHOENIX_API_KEY not configured, tracing disabled")
        return None

    try:
        tracer_provider = register(
            protocol="http/protobuf",
            project_name=project_name,
        )
        logger.info("Phoenix tracing initialized for project %s", project_name)

        return TracerWrapper(tracer_provider.get_tracer(__name__))

    except Exception as e:
        logger.error("Failed to initialize Phoenix tracing: %s", e)
        return None


# Initialize Tracer
tracer = setup_phoenix_tracing() or DummyTracer()

__all__ = ['tracer', 'TracerWrapper', 'DummyTracer', 'setup_phoenix_tracing']
