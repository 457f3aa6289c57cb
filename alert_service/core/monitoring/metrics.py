"""Métricas Prometheus del núcleo de alertas."""

from __future__ import annotations

from prometheus_client import Counter

SAMPLES_PROCESSED = Counter(
    "alerting_samples_processed_total",
    "Total samples evaluated by the rule engine",
    ["status"],  # accepted, rejected
)

RULES_TRIGGERED = Counter(
    "alerting_rules_triggered_total",
    "Total rule triggers",
    ["rule"],
)

RULE_ACTION_FAILURES = Counter(
    "alerting_rule_action_failures_total",
    "Rule actions that raised",
    ["rule"],
)

NOTIFICATIONS = Counter(
    "alerting_notifications_total",
    "Notifications dispatched to the gateway",
    ["kind"],
)

NOTIFICATIONS_SUPPRESSED = Counter(
    "alerting_notifications_suppressed_total",
    "Notifications suppressed by the cooldown window",
    ["kind"],
)

POLL_CYCLES = Counter(
    "alerting_poll_cycles_total",
    "Poller cycles",
    ["status"],  # success, failed
)
