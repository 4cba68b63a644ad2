"""
Service layer to assemble the stats dashboard.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Optional

from ebbinglish import database, word_repo
from ebbinglish.analytics.constants import DAILY_SERIES_DAYS, SUCCESS_WINDOW_DAYS, WEEK_DAYS
from ebbinglish.analytics.heatmap import build_heatmap
from ebbinglish.analytics.metrics import (
    compute_avg_per_active_day,
    compute_current_streak,
    compute_due_counts,
    compute_grade_split,
    compute_health_score,
    compute_longest_streak,
    compute_mastered_count,
    compute_stage_distribution,
    compute_stage_weighted,
    compute_success_rate,
    count_by_day,
    daily_series,
    percent,
    select_difficult_words,
)
from ebbinglish.analytics.queries import load_review_logs_df, load_review_states_df
from ebbinglish.analytics.types import StatsDashboard
from ebbinglish.clock import ensure_utc, utc_now
from ebbinglish.config import HEATMAP_DAYS
from ebbinglish.errors import study_action


@study_action("Invalid stats request", "Failed to load stats")
def build_stats_dashboard(user_id: str, now: Optional[datetime] = None) -> StatsDashboard:
    """
    Build all KPI values and series needed by the stats page.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    today = now.date()
    today_start = datetime.combine(today, time.min, tzinfo=timezone.utc)
    start_30 = today - timedelta(days=SUCCESS_WINDOW_DAYS - 1)

    with database.session_scope() as session:
        totals = word_repo.count_words(session, user_id)
        states_df = load_review_states_df(session, user_id)
        logs_df = load_review_logs_df(session, user_id)

    logs_30 = logs_df[logs_df["day"] >= start_30] if not logs_df.empty else logs_df
    day_counts = count_by_day(logs_df["day"])
    daily_14 = daily_series(day_counts, today - timedelta(days=DAILY_SERIES_DAYS - 1), today)
    daily_7 = daily_series(day_counts, today - timedelta(days=WEEK_DAYS - 1), today)
    active_days = set(day_counts.index)

    active_review_words = len(states_df)
    due_now, overdue = compute_due_counts(states_df, now, today_start)
    mastered = compute_mastered_count(states_df)
    grade_split = compute_grade_split(logs_30)
    success_30d = compute_success_rate(grade_split)
    mastery_rate = percent(mastered, active_review_words)

    return StatsDashboard(
        total_words=totals["total"],
        priority_words=totals["priority"],
        words_with_note=totals["with_note"],
        never_reviewed=totals["never_reviewed"],
        active_review_words=active_review_words,
        due_now=due_now,
        overdue=overdue,
        stage_counts=compute_stage_distribution(states_df),
        mastered=mastered,
        grade_split_30d=grade_split,
        success_30d=success_30d,
        reviews_today=int(daily_14.iloc[-1]),
        reviews_7d=int(daily_7.sum()),
        daily_reviews_14d=daily_14,
        current_streak=compute_current_streak(active_days, today),
        longest_streak=compute_longest_streak(active_days),
        avg_per_active_day_30d=compute_avg_per_active_day(logs_30),
        review_coverage=percent(active_review_words, totals["total"]),
        mastery_rate=mastery_rate,
        health_score=compute_health_score(mastery_rate, success_30d, compute_stage_weighted(states_df)),
        difficult_words=select_difficult_words(states_df),
        heatmap=build_heatmap(logs_df["reviewed_at"].tolist(), days=HEATMAP_DAYS, today=today),
    )
