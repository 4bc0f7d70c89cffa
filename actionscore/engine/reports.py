"""
reports.py — Weekly / monthly report snapshot builder.
Summarises stored daily scores and completions over a period.
"""

from datetime import date, timedelta
from typing import Iterable, Optional, Tuple

from actionscore.engine.enums import ReportType

PERIOD_DAYS = {
    ReportType.WEEKLY: 7,
    ReportType.MONTHLY: 30,
}
TOP_TASKS = 5


def report_period(report_type: ReportType, end_date: date) -> Tuple[date, date]:
    days = PERIOD_DAYS[report_type]
    return end_date - timedelta(days=days - 1), end_date


def _pillar_averages(scores, pillars) -> list:
    breakdown = []
    for p in pillars:
        values = [
            ps["score"]
            for s in scores
            for ps in (s.pillar_scores or [])
            if ps.get("pillar_id") == p.id and ps.get("due_tasks", 0) > 0
        ]
        avg = round(sum(values) / len(values), 1) if values else 0.0
        breakdown.append({"id": p.id, "name": p.name, "emoji": getattr(p, "emoji", None), "avg_score": avg})
    return breakdown


def _task_rates(tasks, completions) -> list:
    names = {t.id: t.name for t in tasks}
    counts = {}
    for c in completions:
        done, total = counts.get(c.task_id, (0, 0))
        counts[c.task_id] = (done + (1 if c.completed else 0), total + 1)

    rates = [
        {"task_id": task_id, "name": names.get(task_id, "Unknown"),
         "completion_rate": round(done / total * 100) if total else 0}
        for task_id, (done, total) in counts.items()
    ]
    return sorted(rates, key=lambda r: (-r["completion_rate"], r["task_id"]))


def build_report(
    report_type: ReportType,
    end_date: date,
    scores: Iterable,
    tasks: Iterable = (),
    completions: Iterable = (),
    pillars: Iterable = (),
    stats: Optional[object] = None,
) -> dict:
    start_date, end_date = report_period(report_type, end_date)
    scores = sorted(
        (s for s in scores if start_date <= s.date <= end_date),
        key=lambda s: s.date,
    )

    if scores:
        avg = round(sum(s.action_score for s in scores) / len(scores), 1)
        best = max(scores, key=lambda s: (s.action_score, s.date))
        worst = min(scores, key=lambda s: (s.action_score, -s.date.toordinal()))
        best_day = {"date": best.date.isoformat(), "score": best.action_score}
        worst_day = {"date": worst.date.isoformat(), "score": worst.action_score}
    else:
        avg = 0.0
        best_day = worst_day = {"date": None, "score": 0.0}

    rates = _task_rates(list(tasks), list(completions))
    skipped = sorted(rates, key=lambda r: (r["completion_rate"], r["task_id"]))[:TOP_TASKS]

    return {
        "type": report_type.value,
        "date_range": {"start": start_date.isoformat(), "end": end_date.isoformat()},
        "summary": {
            "avg_score": avg,
            "passing_days": sum(1 for s in scores if s.is_passing),
            "total_days": PERIOD_DAYS[report_type],
            "best_day": best_day,
            "worst_day": worst_day,
            "total_xp_earned": sum(s.xp_earned or 0 for s in scores),
            "current_streak": stats.current_streak if stats is not None else 0,
            "best_streak": stats.best_streak if stats is not None else 0,
        },
        "pillar_breakdown": _pillar_averages(scores, list(pillars)),
        "daily_scores": [
            {"date": s.date.isoformat(), "action_score": s.action_score, "is_passing": s.is_passing}
            for s in scores
        ],
        "top_tasks": rates[:TOP_TASKS],
        "skipped_tasks": skipped,
    }
