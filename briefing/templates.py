"""
Briefing - Templates.

Renders a DailyBriefing as an email subject, an HTML body and a plain
text body. All upstream text is HTML-escaped; unsubscribe links carry
an {{EMAIL}} placeholder filled per recipient.
"""

import html
from datetime import datetime
from typing import Optional

from briefing.models import EMAIL_PLACEHOLDER, BriefingTemplate, DailyBriefing, Subscriber
from core.clock import HAWAII_TZ


DASHBOARD_URL = "https://islandpulse.example"
UNSUBSCRIBE_URL = f"{DASHBOARD_URL}/unsubscribe?email={EMAIL_PLACEHOLDER}"
PREFERENCES_URL = f"{DASHBOARD_URL}/preferences?email={EMAIL_PLACEHOLDER}"

_STYLE = """
body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; background: #f5f7fa; }
.container { max-width: 600px; margin: 0 auto; background: white; border-radius: 12px; overflow: hidden; }
.header { background: #0369a1; color: white; padding: 30px; text-align: center; }
.content { padding: 30px; }
.section { margin-bottom: 30px; }
.card { color: white; padding: 20px; border-radius: 8px; }
.weather { background: #f59e0b; }
.surf { background: #0ea5e9; }
.sunset { background: #ea580c; text-align: center; }
.news-item { border-left: 4px solid #dc2626; padding-left: 15px; margin-bottom: 20px; }
.event-item { background: #f3f4f6; padding: 15px; border-radius: 8px; margin-bottom: 10px; }
.footer { background: #374151; color: white; padding: 20px; text-align: center; font-size: 12px; }
"""


def format_clock(dt: datetime) -> str:
    """6:45 PM style, in Hawaii time."""
    local = dt.astimezone(HAWAII_TZ)
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{local.hour % 12 or 12}:{local.minute:02d} {suffix}"


def format_date(dt: datetime) -> str:
    """Monday, May 6, 2024 style, in Hawaii time."""
    local = dt.astimezone(HAWAII_TZ)
    return f"{local:%A}, {local:%B} {local.day}, {local.year}"


def time_ago(when: datetime, now: datetime) -> str:
    hours = int((now - when).total_seconds() // 3600)
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


def subject_for(briefing: DailyBriefing) -> str:
    return f"🌺 Your {briefing.island.display_name} Update - {format_date(briefing.generated_at)}"


def _e(value: Optional[object]) -> str:
    return html.escape(str(value)) if value is not None else ""


def render_html(briefing: DailyBriefing) -> str:
    island = briefing.island.display_name
    current = briefing.weather.current
    now = briefing.generated_at
    subject = subject_for(briefing)

    sections = [
        '<div class="section"><div class="card weather">',
        "<h2>🌤️ Today's Weather</h2>",
        f"<div><strong>{current.temperature_f}°F</strong> {_e(current.conditions)}</div>",
        f"<div>💨 {current.wind_speed_mph} mph {_e(current.wind_direction)} · 💧 {current.humidity}% humidity</div>",
        "</div></div>",
    ]

    spot = briefing.top_spot
    if spot is not None:
        sections += [
            '<div class="section"><div class="card surf">',
            "<h2>🏄 Top Surf Spot Today</h2>",
            f"<div><strong>{_e(spot.name)}</strong></div>",
            f"<div>{spot.wave_min_ft:g}-{spot.wave_max_ft:g} ft</div>",
            f"<div>Quality: {spot.quality.value.capitalize()} · Period: {spot.period_s}s</div>",
            "</div></div>",
        ]

    if briefing.top_news:
        sections.append('<div class="section"><h2>📰 Top Stories</h2>')
        for article in briefing.top_news:
            sections += [
                '<div class="news-item">',
                f'<h3><a href="{_e(article.url)}">{_e(article.title)}</a></h3>',
                f"<p>{_e(article.summary)}</p>",
                f"<small>{_e(article.publisher.name)} · {time_ago(article.published_at, now)}</small>",
                "</div>",
            ]
        sections.append("</div>")

    if briefing.events:
        sections.append("<div class=\"section\"><h2>🎉 Today's Events</h2>")
        for event in briefing.events:
            sections += [
                '<div class="event-item">',
                f"<h3>{_e(event.title)}</h3>",
                f"<div>📍 {_e(event.venue.name)}</div>",
                f"<div>🕐 {format_clock(event.start)}</div>",
                "</div>",
            ]
        sections.append("</div>")

    sections += [
        '<div class="section"><div class="card sunset">',
        "<h2>🌅 Tonight's Sunset</h2>",
        f"<div><strong>{format_clock(briefing.sunset)}</strong></div>",
        "</div></div>",
    ]

    lines = [
        "<!DOCTYPE html>",
        "<html>",
        '<head><meta charset="utf-8">',
        f"<title>{_e(subject)}</title>",
        f"<style>{_STYLE}</style></head>",
        '<body><div class="container">',
        '<div class="header">',
        "<h1>🌺 Island Pulse</h1>",
        f"<p>{_e(briefing.greeting)}, {_e(island)}! Here's your daily briefing for {format_date(now)}</p>",
        "</div>",
        '<div class="content">',
        *sections,
        f'<p style="text-align: center"><a href="{DASHBOARD_URL}">View Full Dashboard</a></p>',
        "</div>",
        '<div class="footer">',
        "<p>You're receiving this because you subscribed to daily Hawaii updates.</p>",
        f'<p><a href="{UNSUBSCRIBE_URL}">Unsubscribe</a> | <a href="{PREFERENCES_URL}">Update Preferences</a></p>',
        "</div>",
        "</div></body>",
        "</html>",
    ]
    return "\n".join(lines)


def render_text(briefing: DailyBriefing) -> str:
    island = briefing.island.display_name
    current = briefing.weather.current

    lines = [
        f"🌺 ISLAND PULSE - {island.upper()} DAILY BRIEFING 🌺",
        format_date(briefing.generated_at),
        "",
        f"{briefing.greeting}, {island}!",
        "",
        "🌤️ WEATHER",
        f"{current.temperature_f}°F - {current.conditions}",
        f"Wind: {current.wind_speed_mph} mph {current.wind_direction}",
        f"Humidity: {current.humidity}%",
    ]

    spot = briefing.top_spot
    if spot is not None:
        lines += [
            "",
            "🏄 TOP SURF SPOT",
            f"{spot.name}: {spot.wave_min_ft:g}-{spot.wave_max_ft:g} ft",
            f"Quality: {spot.quality.value} · Period: {spot.period_s}s",
        ]

    if briefing.top_news:
        lines += ["", "📰 TOP STORIES"]
        for index, article in enumerate(briefing.top_news, start=1):
            lines += [
                f"{index}. {article.title}",
                f"   {article.summary}",
                f"   Source: {article.publisher.name}",
            ]

    if briefing.events:
        lines += ["", "🎉 TODAY'S EVENTS"]
        for event in briefing.events:
            lines += [
                f"• {event.title}",
                f"  📍 {event.venue.name}",
                f"  🕐 {format_clock(event.start)}",
            ]

    lines += [
        "",
        f"🌅 TONIGHT'S SUNSET: {format_clock(briefing.sunset)}",
        "",
        "Have a wonderful day in paradise! 🌺",
        "",
        "---",
        f"Visit {DASHBOARD_URL} for real-time updates",
        f"Unsubscribe: {UNSUBSCRIBE_URL}",
    ]
    return "\n".join(lines)


def render_briefing(briefing: DailyBriefing) -> BriefingTemplate:
    return BriefingTemplate(
        subject=subject_for(briefing),
        html=render_html(briefing),
        text=render_text(briefing),
    )


def render_welcome(subscriber: Subscriber) -> BriefingTemplate:
    """Confirmation sent once, right after a subscription succeeds."""
    island = subscriber.island.display_name
    subject = f"🌺 Welcome to Island Pulse - Your {island} Updates!"
    features = [
        ("🌤️", "Current weather and forecasts"),
        ("🏄", "Surf conditions and the best spots"),
        ("📰", "Top local news stories"),
        ("🎉", "Events happening today"),
        ("🌅", "Sunset time for tonight"),
    ]

    html_lines = [
        "<!DOCTYPE html>",
        "<html>",
        f"<head><meta charset=\"utf-8\"><title>{_e(subject)}</title><style>{_STYLE}</style></head>",
        "<body><div class=\"container\">",
        "<div class=\"header\">",
        "<h1>🌺 Welcome to Island Pulse!</h1>",
        f"<p>Your daily {_e(island)} updates start tomorrow</p>",
        "</div>",
        "<div class=\"content\">",
        f"<p>Aloha! Thanks for subscribing to daily updates for {_e(island)}.</p>",
        "<p>Every morning at 6 AM HST you'll receive:</p>",
        "<ul>",
        *(f"<li>{icon} {label}</li>" for icon, label in features),
        "</ul>",
        f'<p>Visit <a href="{DASHBOARD_URL}">Island Pulse</a> any time for real-time updates.</p>',
        "</div>",
        "<div class=\"footer\">",
        f'<p><a href="{UNSUBSCRIBE_URL}">Unsubscribe</a> | <a href="{PREFERENCES_URL}">Update Preferences</a></p>',
        "</div>",
        "</div></body>",
        "</html>",
    ]

    text_lines = [
        "🌺 WELCOME TO ISLAND PULSE! 🌺",
        "",
        f"Aloha! Thanks for subscribing to daily updates for {island}.",
        "",
        "Every morning at 6 AM HST you'll receive:",
        *(f"{icon} {label}" for icon, label in features),
        "",
        "Your first briefing arrives tomorrow morning.",
        "",
        "---",
        f"Visit {DASHBOARD_URL} for real-time updates",
        f"Unsubscribe: {UNSUBSCRIBE_URL}",
    ]

    return BriefingTemplate(subject=subject, html="\n".join(html_lines), text="\n".join(text_lines))
