"""
Prometheus metrics for the CI trigger application.
"""

from prometheus_client import Counter


webhooks_received_total = Counter(
    "ci_trigger_webhooks_received_total",
    "Total number of GitHub webhooks received",
    ["event_type"],  # event_type = issue_comment|pull_request|ping
)

triggers_processed_total = Counter(
    "ci_trigger_triggers_processed_total",
    "Total number of /run triggers processed",
    ["outcome"],  # outcome = created|pipeline_not_found|unknown_arguments|...
)

trigger_runs_denied_total = Counter(
    "ci_trigger_runs_denied_total",
    "Total number of trigger runs refused for unauthorized users",
)
