"""Schema sync: preview, apply and self-throttled auto-sync."""

from formbridge.sync.options import OptionSyncDiff, build_option_sync_diff
from formbridge.sync.orchestrator import SchemaSyncOrchestrator

__all__ = ["OptionSyncDiff", "SchemaSyncOrchestrator", "build_option_sync_diff"]
