"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Iterable, Optional

from .clock import format_clock_time, format_minutes_label, to_local, weekday_key
from .history import HistoryEntry
from .planner import DayStructure, Feasibility
from .stats import ActivityRow, StatsResult, StatsUnit


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def print_stats(self, result: StatsResult, unit: Optional[StatsUnit] = None) -> None:
        if unit is not None:
            self.print_unit(unit)
            return

        print(f"{result.period.capitalize()} stats (offset {result.offset})")
        print("-" * 40)
        print(f"  {'Unit':<10} {'Tracked':>10} {'Inactive':>10}")
        for item in result.units:
            print(
                f"  {item.label:<10} "
                f"{format_minutes_label(item.tracked_minutes):>10} "
                f"{format_minutes_label(item.inactivity_minutes):>10}"
            )
        print()

        if result.table:
            print("Activities:")
            print_rows(result.table)
        else:
            print("No activity recorded in this window.")

        nav = []
        if result.has_prev:
            nav.append(f"older: --offset {result.offset + 1}")
        if result.has_next:
            nav.append(f"newer: --offset {result.offset - 1}")
        if nav:
            print()
            print("  ".join(nav))

    def print_unit(self, unit: StatsUnit) -> None:
        print(f"Breakdown for {unit.label}")
        print("-" * 40)
        print(f"Tracked:  {format_minutes_label(unit.tracked_minutes)}")
        print(f"Inactive: {format_minutes_label(unit.inactivity_minutes)}")
        print()
        if unit.rows:
            print_rows(unit.rows)
        else:
            print("No activity recorded for this unit.")

    def print_history(self, entries: Iterable[HistoryEntry]) -> None:
        entries = list(entries)
        if not entries:
            print("No sessions recorded yet.")
            return
        for entry in entries:
            session = entry.session
            started = to_local(session.session_start).strftime("%Y-%m-%d")
            ended = session.session_end or session.session_start
            window = f"{format_clock_time(session.session_start)}-{format_clock_time(ended)}"
            flag = " (auto-stopped)" if session.auto_stopped else ""
            print(
                f"  {started} {window}  {entry.activity.label[:30]:<30} "
                f"{entry.duration_text}{flag}"
            )

    def print_plan(self, structure: DayStructure, feasibility: Feasibility) -> None:
        print(f"Plan for {structure.date.isoformat()} ({weekday_key(structure.date)})")
        print("-" * 40)
        if structure.is_working_day:
            print(f"Day:      {structure.day_start_time}-{structure.work_window_end}")
            print(f"Lunch:    {structure.lunch_break_start}-{structure.lunch_break_end}")
        else:
            print("Non-working day.")
        print(
            f"Planned:  {format_minutes_label(feasibility.total_duration_minutes)} of "
            f"{format_minutes_label(feasibility.daily_work_target_minutes)} "
            f"across {feasibility.activities_count} activities"
        )
        print(f"Status:   {feasibility.status.value} ({feasibility.color})")
        for load, minutes in feasibility.cognitive_load_distribution.items():
            print(f"  {load:<9} {format_minutes_label(minutes):>8}")


def print_rows(rows: Iterable[ActivityRow]) -> None:
    for row in rows:
        print(
            f"  [{row.priority:<6}] {row.label[:30]:<30} {row.formatted:>8} {row.percent:>4d}%"
        )