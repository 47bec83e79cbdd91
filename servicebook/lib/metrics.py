"""
Prometheus-compatible metrics for observability.

Tracks key booking indicators:
- Bookings created (by service)
- Slot conflicts rejected
- Status transitions (by old/new status)
- Notification sink failures

Usage:
    from servicebook.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_bookings_created(service_id="3")
    metrics.increment_status_transitions(old_status="pending", new_status="confirmed")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style metrics collector for the booking backend.

    Counters:
    - bookings_created_total: Bookings inserted (labels: service_id)
    - booking_conflicts_total: Booking attempts rejected for an occupied slot (labels: reason)
    - booking_status_transitions_total: Status changes (labels: old_status, new_status)
    - notifications_failed_total: Booking events the notification sink could not record (labels: event)

    Thread-safe for concurrent increments.
    """

    def __init__(self):
        self._lock = Lock()

        # Counters: key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Booking Metrics =====

    def increment_bookings_created(self, service_id: str, amount: int = 1):
        """Increment bookings created counter."""
        self._increment("bookings_created_total", {"service_id": str(service_id)}, amount)

    def increment_conflicts(self, reason: str = "overlap", amount: int = 1):
        """
        Increment rejected booking attempts.

        Args:
            reason: overlap, outside_window, constraint (unique index) or reactivation
            amount: Increment amount
        """
        self._increment("booking_conflicts_total", {"reason": reason.lower()}, amount)

    def increment_status_transitions(self, old_status: str, new_status: str, amount: int = 1):
        """Increment status transition counter."""
        labels = {
            "old_status": old_status.lower(),
            "new_status": new_status.lower(),
        }
        self._increment("booking_status_transitions_total", labels, amount)

    def increment_notification_failures(self, event: str, amount: int = 1):
        """Increment notification sink failures."""
        self._increment("notifications_failed_total", {"event": event.lower()}, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        # Group counters by metric name
        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            output_lines.append(f"# HELP {metric_name} {self._get_help_text(metric_name)}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                output_lines.append(f"{metric_name}{{{labels_str}}} {value}")

            output_lines.append("")  # Blank line between metrics

        return "\n".join(output_lines)

    def _get_help_text(self, metric_name: str) -> str:
        """Get help text for metric."""
        help_texts = {
            "bookings_created_total": "Total number of bookings created",
            "booking_conflicts_total": "Total number of booking attempts rejected for an unavailable slot",
            "booking_status_transitions_total": "Total number of booking status transitions",
            "notifications_failed_total": "Total number of booking events the notification sink failed to record",
        }
        return help_texts.get(metric_name, "Counter metric")

    def get_counter_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """
        Get current value of a specific counter.

        Args:
            metric_name: Name of the metric
            labels: Label filters

        Returns:
            Current counter value
        """
        return self._get_value(metric_name, labels)

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Global singleton instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Get global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset global metrics collector (for testing)."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset_all()
