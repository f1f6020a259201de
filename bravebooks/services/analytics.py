# bravebooks/services/analytics.py
"""
Per-user reading analytics.

Every tracked page visit is folded into one UserAnalytics row. Two update
rules coexist and are kept as separate named operations:

  fold_running_average(avg, count, sample)
      new_avg = (avg * count + sample) / (count + 1), count + 1
      used for every average (page-type times, clicks per page, cue timing,
      engagement score)

  recompute_ratio(part, whole)
      round(part / whole * 100), recomputed from the raw totals each time
      used for cue completion rate, linear reading share, print rate

Folds are pure functions over plain dicts; `track_event` wraps them with the
per-user lock and persistence.
"""
from __future__ import annotations

import copy
import datetime as dt
import logging
from collections import Counter, defaultdict
from typing import Any, Optional

from bravebooks.db.base import new_id, utcnow
from bravebooks.db.store import Store
from bravebooks.models.reading_session import PageEngagement
from bravebooks.models.user_analytics import UserAnalytics
from bravebooks.utils.locks import locks

logger = logging.getLogger(__name__)

TOTAL_SPREADS = 54
BASELINE_ENGAGEMENT = 50
PAGE_TYPES = ("story", "cue", "activity", "navigation", "other")
BUCKETED_PAGE_TYPES = ("story", "cue", "activity")
NAVIGATION_SOURCES = ("toc", "chapter_nav", "spread_nav", "breadcrumb", "home_button", "direct_url", "other")

# the collectible cue in each chapter of the free book
KNOWN_CUES = (
    ("Golden Leaf", 1),
    ("Rainbow Tail", 2),
    ("Bravery Badge", 3),
    ("Sparkling Petal", 4),
    ("Gratitude Leaf", 5),
    ("Dew Cup", 6),
)


# ========= fold primitives =========
def fold_running_average(avg: float, count: int, sample: float) -> tuple[float, int]:
    """Fold one sample into a running average; returns (new_avg, new_count)."""
    new_avg = (avg * count + sample) / (count + 1)
    return new_avg, count + 1


def recompute_ratio(part: float, whole: float) -> int:
    """Percentage of part in whole, recomputed from totals; 0 when whole is 0."""
    if not whole:
        return 0
    return round(part / whole * 100)


def cue_engagement_score(time_before_click: float) -> int:
    """50 base, +30 once the reader waited 10s, +20 more at 20s; clamped 0..100."""
    score = BASELINE_ENGAGEMENT
    if time_before_click >= 10:
        score += 30
    if time_before_click >= 20:
        score += 20
    return max(0, min(100, score))


def scroll_behavior(interaction_count: int) -> str:
    if interaction_count > 10:
        return "fast"
    if interaction_count > 5:
        return "moderate"
    return "slow"


def new_profile(user_id: str) -> dict:
    return {
        "user_id": user_id,
        "total_sessions": 0,
        "total_reading_time": 0.0,
        "average_session_duration": 0.0,
        "pages_read": 0,
        "completion_rate": 0,
        "engagement_score": float(BASELINE_ENGAGEMENT),
        "interaction_patterns": {
            "clicks_per_page": 0.0,
            "pause_frequency": 0.0,
            "scroll_behavior": "moderate",
        },
        "page_type_metrics": {
            f"{t}_pages": {"count": 0, "average_time": 0.0} for t in BUCKETED_PAGE_TYPES
        },
        "cue_engagement": {
            "total_cues_encountered": 0,
            "total_cues_completed": 0,
            "completion_rate": 0,
            "average_time_before_click": 0.0,
            "scored_cues": 0,
            "favorite_cues": [],
            "cue_metrics": {},
        },
        "navigation_patterns": {
            "sources": {},
            "toc_usage": 0,
            "back_button_usage": 0,
            "linear_reading": 0,
            "preferred_navigation_method": None,
            "average_session_depth": 0.0,
        },
        "print_activity_engagement": {
            "total_print_clicks": 0,
            "pages_printed": [],
            "target_counts": {},
            "print_engagement_rate": 0,
            "most_printed_activities": [],
        },
        "last_calculated": None,
    }


# ========= section folds =========
def fold_page_type(metrics: dict, page_type: str, engaged_seconds: float) -> dict:
    """Running average of engagement time for story/cue/activity pages."""
    out = copy.deepcopy(metrics)
    if page_type not in BUCKETED_PAGE_TYPES:
        return out
    bucket = out.setdefault(f"{page_type}_pages", {"count": 0, "average_time": 0.0})
    bucket["average_time"], bucket["count"] = fold_running_average(
        bucket["average_time"], bucket["count"], engaged_seconds
    )
    return out


def fold_cues(cue_stats: dict, engagement_score: float, cues: list[dict]) -> tuple[dict, float]:
    """Returns (cue_engagement, engagement_score) after folding `cues`."""
    ce = copy.deepcopy(cue_stats)
    metrics = ce.setdefault("cue_metrics", {})
    for cue in cues:
        wait = float(cue.get("time_before_click") or 0)
        completed = cue.get("completion_status") == "completed"

        ce["average_time_before_click"], ce["total_cues_encountered"] = fold_running_average(
            ce["average_time_before_click"], ce["total_cues_encountered"], wait
        )
        if completed:
            ce["total_cues_completed"] += 1

        engagement_score, ce["scored_cues"] = fold_running_average(
            engagement_score, ce.get("scored_cues", 0), cue_engagement_score(wait)
        )

        name = cue.get("cue_name") or "unknown"
        m = metrics.setdefault(
            name,
            {
                "encounters": 0,
                "completions": 0,
                "average_time_before_click": 0.0,
                "chapter_id": cue.get("chapter_id"),
                "cue_icon": cue.get("cue_icon"),
            },
        )
        m["average_time_before_click"], m["encounters"] = fold_running_average(
            m["average_time_before_click"], m["encounters"], wait
        )
        if completed:
            m["completions"] += 1

    ce["completion_rate"] = recompute_ratio(ce["total_cues_completed"], ce["total_cues_encountered"])
    ranked = sorted(metrics.items(), key=lambda kv: (-kv[1]["completions"], -kv[1]["encounters"], kv[0]))
    ce["favorite_cues"] = [name for name, _ in ranked[:5]]
    return ce, engagement_score


def fold_navigation(nav: dict, source: str, pages_read: int, total_sessions: int) -> dict:
    out = copy.deepcopy(nav)
    sources = out.setdefault("sources", {})
    sources[source] = sources.get(source, 0) + 1
    if source == "toc":
        out["toc_usage"] = out.get("toc_usage", 0) + 1
    elif source == "home_button":
        out["back_button_usage"] = out.get("back_button_usage", 0) + 1

    total = sum(sources.values())
    linear = sources.get("chapter_nav", 0) + sources.get("spread_nav", 0)
    out["linear_reading"] = recompute_ratio(linear, total)
    out["preferred_navigation_method"] = max(sources.items(), key=lambda kv: kv[1])[0]
    out["average_session_depth"] = round(pages_read / max(total_sessions, 1), 2)
    return out


def fold_print(print_stats: dict, print_data: dict, page_number: Optional[int], activity_pages: int) -> dict:
    out = copy.deepcopy(print_stats)
    clicks = int(print_data.get("print_clicks") or 0)
    if clicks <= 0:
        return out
    out["total_print_clicks"] = out.get("total_print_clicks", 0) + clicks

    printed = out.setdefault("pages_printed", [])
    if page_number is not None and page_number not in printed:
        printed.append(page_number)

    counts = out.setdefault("target_counts", {})
    for target in print_data.get("print_targets") or []:
        counts[target] = counts.get(target, 0) + 1
    out["most_printed_activities"] = [
        t for t, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:5]
    ]
    out["print_engagement_rate"] = recompute_ratio(out["total_print_clicks"], max(activity_pages, 1))
    return out


def fold_event(profile: dict, event: dict, *, now: Optional[dt.datetime] = None) -> dict:
    """Fold one tracked page visit into a profile. Pure: returns a new dict."""
    p = copy.deepcopy(profile)
    page = event.get("page_data") or {}
    timing = event.get("timing_data") or {}
    interactions = event.get("interactions") or []
    cues = event.get("cue_interactions") or []
    print_data = event.get("print_data") or {}

    page_type = page.get("page_type") or "story"
    source = page.get("navigation_source") or "other"
    engaged = float(timing.get("actual_engagement_time") or 0)
    first_pause = float(timing.get("time_before_first_interaction") or 0)

    # per-page averages fold over pages seen so far
    pages_before = p["pages_read"]
    ip = dict(p["interaction_patterns"])
    ip["clicks_per_page"], _ = fold_running_average(ip.get("clicks_per_page", 0.0), pages_before, len(interactions))
    ip["pause_frequency"], _ = fold_running_average(ip.get("pause_frequency", 0.0), pages_before, first_pause)
    ip["scroll_behavior"] = scroll_behavior(len(interactions))
    p["interaction_patterns"] = ip

    p["pages_read"] = pages_before + 1
    p["total_reading_time"] = p["total_reading_time"] + engaged
    p["average_session_duration"] = p["total_reading_time"] / max(p["total_sessions"], 1)

    p["page_type_metrics"] = fold_page_type(p["page_type_metrics"], page_type, engaged)

    if cues:
        p["cue_engagement"], p["engagement_score"] = fold_cues(
            p["cue_engagement"], p["engagement_score"], cues
        )

    p["navigation_patterns"] = fold_navigation(
        p["navigation_patterns"], source, p["pages_read"], p["total_sessions"]
    )

    if print_data:
        activity_pages = p["page_type_metrics"].get("activity_pages", {}).get("count", 0)
        p["print_activity_engagement"] = fold_print(
            p["print_activity_engagement"], print_data, page.get("page_number"), activity_pages
        )

    p["completion_rate"] = min(100, recompute_ratio(p["pages_read"], TOTAL_SPREADS))
    p["last_calculated"] = now or utcnow()
    return p


def event_engagement_score(event: dict) -> int:
    interactions = event.get("interactions") or []
    cues = event.get("cue_interactions") or []
    return min(100, (len(interactions) + len(cues) * 5) * 2)


# ========= persistence =========
def _load_or_create(store: Store, user_id: str) -> UserAnalytics:
    row = store.get_analytics(user_id)
    if row is None:
        row = UserAnalytics(user_id=user_id)
        row.apply_profile(new_profile(user_id))
        store.put_analytics(row)
        logger.info("Created analytics profile for user %s", user_id)
    return row


def _chapter_key(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def note_session_started(store: Store, user_id: str) -> None:
    """Count a newly created reading session against the user's profile."""
    with locks.hold(("analytics", user_id)):
        row = _load_or_create(store, user_id)
        profile = row.to_profile()
        profile["total_sessions"] += 1
        profile["average_session_duration"] = profile["total_reading_time"] / profile["total_sessions"]
        nav = dict(profile["navigation_patterns"])
        nav["average_session_depth"] = round(profile["pages_read"] / profile["total_sessions"], 2)
        profile["navigation_patterns"] = nav
        row.apply_profile(profile)
        store.commit()


def note_reading_time(store: Store, user_id: str, seconds: float) -> None:
    """Add reader-reported time (progress sync) to the profile totals."""
    if seconds <= 0:
        return
    with locks.hold(("analytics", user_id)):
        row = _load_or_create(store, user_id)
        profile = row.to_profile()
        profile["total_reading_time"] += seconds
        profile["average_session_duration"] = profile["total_reading_time"] / max(profile["total_sessions"], 1)
        profile["last_calculated"] = utcnow()
        row.apply_profile(profile)
        store.commit()


def track_event(store: Store, user_id: str, event: dict) -> dict:
    """
    Fold one enhanced page event for `user_id`, store the page engagement and
    update the reading session in place. Returns the response body fields.
    """
    page = event.get("page_data") or {}
    timing = event.get("timing_data") or {}
    interactions = event.get("interactions") or []
    cues = event.get("cue_interactions") or []
    print_data = event.get("print_data") or {}
    completed = sum(1 for c in cues if c.get("completion_status") == "completed")

    with locks.hold(("analytics", user_id)):
        row = _load_or_create(store, user_id)
        row.apply_profile(fold_event(row.to_profile(), event))

        session = store.get_session(event.get("session_id") or "")
        if session is not None and session.user_id != user_id:
            session = None
        if session is not None and session.is_active:
            pages = list(session.pages_visited or [])
            page_number = page.get("page_number")
            if page_number is not None and page_number not in pages:
                pages.append(page_number)
            session.pages_visited = pages
            session.interactions_count = (session.interactions_count or 0) + len(interactions)
            session.cues_collected = (session.cues_collected or 0) + completed
            so_far = timing.get("session_duration_so_far")
            if so_far is not None:
                session.total_duration = max(session.total_duration or 0, int(so_far))

        engagement = store.add_page_engagement(
            PageEngagement(
                id=new_id("engagement"),
                session_id=session.id if session is not None else None,
                user_id=user_id,
                page_number=int(page.get("page_number") or 0),
                chapter_id=_chapter_key(page.get("chapter_id")),
                page_type=page.get("page_type") or "story",
                navigation_source=page.get("navigation_source"),
                time_on_page=float(timing.get("time_on_page") or 0),
                actual_engagement_time=float(timing.get("actual_engagement_time") or 0),
                interactions=interactions,
                cue_interactions=cues,
                print_clicks=int(print_data.get("print_clicks") or 0),
            )
        )
        store.commit()

    if session is not None:
        seen = store.list_session_engagements(session.id)
    else:
        seen = [engagement]

    return {
        "session_id": event.get("session_id"),
        "page_engagement_id": engagement.id,
        "analytics_summary": {
            "total_pages_this_session": len(seen),
            "total_interactions_this_session": sum(len(e.interactions or []) for e in seen),
            "cues_completed_this_session": sum(
                1
                for e in seen
                for c in (e.cue_interactions or [])
                if c.get("completion_status") == "completed"
            ),
            "print_clicks_this_session": sum(e.print_clicks or 0 for e in seen),
            "current_engagement_score": event_engagement_score(event),
        },
    }


def wipe_user_analytics(store: Store, user_id: str) -> bool:
    with locks.hold(("analytics", user_id)):
        existed = store.delete_analytics(user_id)
        store.commit()
    logger.info("Analytics wiped for user %s (profile existed: %s)", user_id, existed)
    return existed


# ========= read side =========
def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, dt.datetime) else value


def _profile_for(store: Store, user_id: str) -> dict:
    row = store.get_analytics(user_id)
    profile = row.to_profile() if row is not None else new_profile(user_id)
    profile["last_calculated"] = _iso(profile.get("last_calculated"))
    return profile


def page_analytics(engagements: list[PageEngagement], limit: int = 20) -> list[dict]:
    by_page: dict[int, dict] = defaultdict(lambda: {"visits": 0, "total_time": 0.0, "interactions": 0})
    for e in engagements:
        s = by_page[e.page_number]
        s["visits"] += 1
        s["total_time"] += e.actual_engagement_time or 0
        s["interactions"] += len(e.interactions or [])
    rows = [
        {
            "page_number": page,
            "visits": s["visits"],
            "total_time": s["total_time"],
            "average_time": s["total_time"] / s["visits"],
            "interaction_density": s["interactions"] / s["visits"],
        }
        for page, s in by_page.items()
    ]
    rows.sort(key=lambda r: (-r["visits"], r["page_number"]))
    return rows[:limit]


def _engagement_trend(engagements: list[PageEngagement]) -> str:
    times = [e.actual_engagement_time or 0 for e in engagements]
    if len(times) < 2:
        return "insufficient_data"
    recent = times[-5:]
    earlier = times[-10:-5] or times[:1]
    recent_avg = sum(recent) / len(recent)
    earlier_avg = sum(earlier) / len(earlier)
    if recent_avg > earlier_avg * 1.1:
        return "increasing"
    if recent_avg < earlier_avg * 0.9:
        return "decreasing"
    return "stable"


def _recommendations(profile: dict) -> list[str]:
    score = profile["engagement_score"]
    if score > 80:
        recs = ["Highly engaged reader: suggest the next book in the series."]
    elif score > 50:
        recs = ["Steady engagement: interactive cues are working, keep them coming."]
    else:
        recs = ["Low cue engagement: try shorter sessions with more interactive pages."]
    if profile["print_activity_engagement"].get("total_print_clicks", 0) == 0:
        recs.append("Printable activities have not been tried yet.")
    return recs


def get_user_analytics(store: Store, user_id: str) -> dict:
    profile = _profile_for(store, user_id)
    sessions = store.list_sessions(user_id, limit=10)
    engagements = store.list_page_engagements(user_id)
    return {
        "user_id": user_id,
        "overview": {
            "total_sessions": profile["total_sessions"],
            "total_reading_time": profile["total_reading_time"],
            "average_session_duration": profile["average_session_duration"],
            "pages_read": profile["pages_read"],
            "completion_rate": profile["completion_rate"],
            "engagement_score": profile["engagement_score"],
            "last_active": sessions[0].session_start.isoformat() if sessions else None,
        },
        "profile": profile,
        "recent_sessions": [s.to_dict() for s in sessions],
        "page_analytics": page_analytics(engagements),
        "behavior_insights": {
            "reading_patterns": {
                "preferred_navigation_method": profile["navigation_patterns"].get("preferred_navigation_method"),
                "scroll_behavior": profile["interaction_patterns"].get("scroll_behavior"),
                "average_clicks_per_page": profile["interaction_patterns"].get("clicks_per_page", 0),
            },
            "engagement_trend": _engagement_trend(engagements),
            "recommendations": _recommendations(profile),
        },
    }


def platform_summary(store: Store) -> dict:
    rows = store.list_analytics()
    cutoff = utcnow() - dt.timedelta(days=7)
    active = {
        e.user_id for e in store.list_page_engagements() if e.created_at and e.created_at >= cutoff
    }
    top = sorted(rows, key=lambda r: r.total_reading_time or 0, reverse=True)[:5]
    return {
        "total_users": len(rows),
        "total_sessions": store.count_sessions(),
        "total_reading_time": sum(r.total_reading_time or 0 for r in rows),
        "total_pages_read": sum(r.pages_read or 0 for r in rows),
        "average_engagement_score": (
            sum(r.engagement_score for r in rows) / len(rows) if rows else float(BASELINE_ENGAGEMENT)
        ),
        "active_users_7d": len(active),
        "top_users": [
            {
                "user_id": r.user_id,
                "total_reading_time": r.total_reading_time,
                "pages_read": r.pages_read,
                "engagement_score": r.engagement_score,
            }
            for r in top
        ],
    }


def enhanced_summary(store: Store) -> dict:
    rows = store.list_analytics()
    summary = platform_summary(store)

    page_types: dict[str, dict] = {}
    for key in (f"{t}_pages" for t in BUCKETED_PAGE_TYPES):
        count = 0
        weighted = 0.0
        for r in rows:
            bucket = (r.page_type_metrics or {}).get(key) or {}
            count += bucket.get("count", 0)
            weighted += bucket.get("count", 0) * bucket.get("average_time", 0.0)
        page_types[key] = {"count": count, "average_time": weighted / count if count else 0.0}

    cue_rows = []
    for name, chapter in KNOWN_CUES:
        encounters = 0
        completions = 0
        for r in rows:
            m = ((r.cue_engagement or {}).get("cue_metrics") or {}).get(name) or {}
            encounters += m.get("encounters", 0)
            completions += m.get("completions", 0)
        cue_rows.append({
            "cue_name": name,
            "chapter": chapter,
            "encounters": encounters,
            "completions": completions,
            "completion_rate": recompute_ratio(completions, encounters),
        })

    sources: Counter = Counter()
    printed: Counter = Counter()
    for r in rows:
        sources.update((r.navigation_patterns or {}).get("sources") or {})
        printed.update((r.print_activity_engagement or {}).get("target_counts") or {})
    total_nav = sum(sources.values())

    summary.update({
        "page_type_metrics": page_types,
        "cue_analytics": cue_rows,
        "navigation_insights": {
            "sources": dict(sources),
            "linear_reading": recompute_ratio(sources["chapter_nav"] + sources["spread_nav"], total_nav),
            "most_used": sources.most_common(1)[0][0] if sources else None,
        },
        "most_printed_activities": [t for t, _ in printed.most_common(5)],
    })
    return summary
