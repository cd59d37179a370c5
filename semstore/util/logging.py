"""
Structured logging utility for the semantic store.
"""

import logging
import sys
from typing import Any, Dict, Optional

TEXT_PREVIEW_CHARS = 50


def preview(text: Optional[str], limit: int = TEXT_PREVIEW_CHARS) -> Optional[str]:
    """Truncate text for log output."""
    if text is None:
        return None
    return text[:limit] + "..." if len(text) > limit else text


class StructuredLogger:
    """Structured logger with consistent formatting."""

    def __init__(self, name: str = "semstore", level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(level)
            formatter = logging.Formatter(
                '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str = "success",
                      duration_ms: Optional[float] = None,
                      details: Optional[Dict[str, Any]] = None):
        """Log structured operation with status and timing."""
        message_parts = [f"operation={operation}", f"status={status}"]

        if duration_ms is not None:
            message_parts.append(f"duration_ms={duration_ms:.2f}")

        if details:
            detail_str = " ".join([f"{k}={v}" for k, v in details.items()])
            message_parts.append(detail_str)

        message = " | ".join(message_parts)

        if status == "success":
            self.logger.info(message)
        elif status == "error":
            self.logger.error(message)
        else:
            self.logger.warning(message)

    def log_vector_operation(self, operation: str, record_id: str,
                             details: Dict[str, Any] = None,
                             status: str = "success", duration_ms: float = None):
        """Log a record store operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, duration_ms, log_details)

    def log_embedding_call(self, provider: str, purpose: str, text: str,
                           status: str = "success", duration_ms: float = None,
                           error: str = None):
        """Log a call to an embedding provider."""
        details = {"provider": provider, "purpose": purpose, "text": repr(preview(text))}
        if error:
            details["error"] = preview(error, 100)

        self.log_operation("embedding.embed", status, duration_ms, details)

    def log_index_rebuild(self, strategy: str, record_count: int, dimension: int,
                          status: str = "success", duration_ms: float = None):
        """Log a similarity index rebuild."""
        details = {"strategy": strategy, "records": record_count, "dimension": dimension}
        self.log_operation("index.rebuild", status, duration_ms, details)

    def log_query(self, text: str, k: int, hits: int,
                  status: str = "success", duration_ms: float = None):
        """Log a semantic query."""
        details = {"query": repr(preview(text)), "k": k, "hits": hits}
        self.log_operation("semantic.query", status, duration_ms, details)


def get_logger(name: str, level: int = logging.INFO) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, level)


# Global logger instance
logger = StructuredLogger()
