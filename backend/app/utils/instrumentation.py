"""
Server-side event logging helper.

Events go to the structured log only; there is no event store.
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


def log_event(
    event_name: str,
    properties: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> None:
    """
    Emit an ``event_logged`` record for ``event_name``.

    Args:
        event_name: Name of the event (e.g., "recommendations_impression", "adapter_failed")
        properties: Optional dict of event properties
        request_id: Optional request ID for correlating events

    Never raises; a failure to log is itself logged as a warning.
    """
    try:
        logger.info(
            "event_logged",
            extra={
                "event_name": event_name,
                "request_id": request_id,
                "properties": properties or {},
            },
        )
    except Exception as e:
        # Never break the request path
        logger.warning(
            "Failed to log event: event_name=%s, error=%s",
            event_name,
            str(e),
            exc_info=True,
        )
