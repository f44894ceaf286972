from dataclasses import dataclass, field


@dataclass
class SourceMetrics:
    """Track load metrics for each source file."""
    name: str
    file: str = ""
    event_count: int = 0
    skipped: int = 0
    errors: int = 0
    error_messages: list = field(default_factory=list)
    duration_ms: float = 0.0


def format_source_summary(metrics):
    """Summary table lines for a list of SourceMetrics."""
    lines = [
        "=" * 60,
        "SOURCE SUMMARY",
        "=" * 60,
        f"{'Source':<24} {'Events':>7} {'Skipped':>8} {'Errors':>7} {'Time':>10}",
        "-" * 60,
    ]
    for m in sorted(metrics, key=lambda m: m.name):
        time_str = f"{m.duration_ms:.0f}ms"
        lines.append(f"{m.name[:24]:<24} {m.event_count:>7} {m.skipped:>8} {m.errors:>7} {time_str:>10}")
    lines.append("-" * 60)
    total_events = sum(m.event_count for m in metrics)
    total_skipped = sum(m.skipped for m in metrics)
    total_errors = sum(m.errors for m in metrics)
    total_time = sum(m.duration_ms for m in metrics)
    lines.append(f"{'TOTAL':<24} {total_events:>7} {total_skipped:>8} {total_errors:>7} {total_time:.0f}ms")
    lines.append("=" * 60)
    return lines
