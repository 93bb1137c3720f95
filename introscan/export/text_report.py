"""Plain text reports for terminal display."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from introscan.model import Intro, OutcomeStatus, QueuedEpisode, RunSummary


def format_timestamp(seconds: float) -> str:
    """Format an offset into an episode as [H:]M:SS.ss."""
    minutes, secs = divmod(max(seconds, 0.0), 60)
    hours, minutes = divmod(int(minutes), 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:05.2f}"
    return f"{minutes}:{secs:05.2f}"


def text_report(summary: RunSummary) -> str:
    """Summarize one analysis run."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("Run Summary")
    lines.append("=" * 60)
    lines.append(f"  Queued:     {summary.total_queued}")
    lines.append(f"  Processed:  {summary.total_processed} ({summary.progress}%)")
    lines.append(f"  Seasons:    {len(summary.seasons)}")
    for status in OutcomeStatus:
        n = summary.count(status)
        if n:
            lines.append(f"    {status.value:<18} {n}")
    if summary.regenerated:
        lines.append("  EDL regeneration was forced for this run")
    lines.append("")

    lines.append("-" * 60)
    lines.append("Seasons")
    lines.append("-" * 60)
    lines.append(f"  {'Series':<28} {'Season':>6} {'Eps':>4} {'Done':>4}  {'Status'}")
    lines.append(f"  {'------':<28} {'------':>6} {'---':>4} {'----':>4}  {'------'}")
    for s in sorted(summary.seasons, key=lambda r: (r.series_name.lower(), r.season_number)):
        edl = "  +edl" if s.wrote_markers else ""
        lines.append(
            f"  {s.series_name[:28]:<28} {s.season_number:>6} {s.episodes:>4} "
            f"{s.analyzed:>4}  {s.status.value}{edl}"
        )
    lines.append("")

    failed = [s for s in summary.seasons if s.status is OutcomeStatus.FAILED]
    if failed:
        lines.append("-" * 60)
        lines.append("Failures")
        lines.append("-" * 60)
        for s in failed:
            lines.append(f"  {s.series_name} season {s.season_number}: {s.error}")
        lines.append("")

    return "\n".join(lines)


def intro_report(
    intros: Sequence[Intro],
    episodes: Mapping[str, QueuedEpisode] | None = None,
) -> str:
    """List stored intros, grouped by series and season where known."""
    episodes = episodes or {}
    lines: list[str] = []
    valid = sum(1 for i in intros if i.valid)
    lines.append(f"{len(intros)} analyzed episode(s), {valid} with an intro")
    lines.append("")

    def _key(intro: Intro) -> tuple:
        ep = episodes.get(intro.episode_id)
        if ep is None:
            return ("~", 0, intro.episode_id)
        return (ep.series_name.lower(), ep.season_number, ep.name.lower())

    for intro in sorted(intros, key=_key):
        ep = episodes.get(intro.episode_id)
        label = f"{ep.series_name} S{ep.season_number:02d} {ep.name}" if ep else intro.episode_id
        if intro.valid:
            span = f"{format_timestamp(intro.intro_start)} -> {format_timestamp(intro.intro_end)}"
        else:
            span = "no intro"
        lines.append(f"  {label:<56} {span}")

    return "\n".join(lines)
