"""
=====================================================
Voice Lead Agent - Lead Dashboard HTML
=====================================================
"""

from html import escape
from typing import Dict

from services.business.business_base import mask_phone


STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
.container { max-width: 1200px; margin: 0 auto; }
.header { background: linear-gradient(135deg, #2563eb 0%, #1d4ed8 100%); color: white; padding: 30px; border-radius: 10px; margin-bottom: 30px; }
.stats-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; margin-bottom: 30px; }
.stat-card { background: white; padding: 25px; border-radius: 10px; text-align: center; border-left: 4px solid #2563eb; }
.stat-number { font-size: 2.5em; font-weight: bold; color: #2563eb; }
.stat-label { color: #666; font-size: 0.9em; text-transform: uppercase; letter-spacing: 1px; }
.section { background: white; padding: 25px; border-radius: 10px; margin-bottom: 20px; }
.section h2 { color: #333; border-bottom: 2px solid #2563eb; padding-bottom: 10px; margin-top: 0; }
.lead-item { border: 1px solid #eee; padding: 15px; margin: 10px 0; border-radius: 8px; background: #fafafa; }
.lead-item.emergency { border-left: 4px solid #dc2626; }
.score { font-weight: bold; }
.empty { color: #888; font-style: italic; }
"""


def _stat(value, label: str) -> str:
    return (
        f'<div class="stat-card"><div class="stat-number">{escape(str(value))}</div>'
        f'<div class="stat-label">{escape(label)}</div></div>'
    )


def _lead_item(lead: Dict) -> str:
    info = lead['lead_info']
    classes = "lead-item emergency" if info.get('hasEmergency') else "lead-item"
    name = info.get('contactName') or "Unknown caller"
    service = info.get('serviceType') or "unspecified"
    return (
        f'<div class="{classes}">'
        f'<strong>{escape(name)}</strong> ({escape(mask_phone(lead["phone_number"]))}) '
        f'<span class="score">Score {escape(str(lead["score"]))}</span><br>'
        f'Service: {escape(service)} | Urgency: {escape(info.get("urgencyLevel") or "normal")} '
        f'| Last contact: {escape(lead["last_contact"] or "-")}'
        f'</div>'
    )


def _conversation_item(conversation: Dict) -> str:
    return (
        f'<div class="lead-item">Call {escape(conversation["call_sid"])} from '
        f'{escape(mask_phone(conversation["phone_number"]))}: '
        f'{escape(str(conversation["message_count"]))} messages, '
        f'last at {escape(conversation["last_message_at"] or "-")}</div>'
    )


def render_lead_dashboard(overview: Dict, title: str = "Lead Dashboard") -> str:
    """Full HTML page for a lead overview"""
    summary = overview['summary']
    stats = "".join([
        _stat(summary['total_leads'], "Total Leads"),
        _stat(summary['emergency_leads'], "Emergencies"),
        _stat(summary['high_score_leads'], "High-Score Leads"),
        _stat(summary['average_score'], "Average Score"),
    ])
    service_rows = "".join(
        f"<li>{escape(service)}: {count}</li>"
        for service, count in sorted(summary['service_types'].items())
    ) or '<li class="empty">No service requests yet</li>'

    leads = "".join(_lead_item(lead) for lead in overview['leads']) \
        or '<p class="empty">No leads yet</p>'
    conversations = "".join(_conversation_item(c) for c in overview['conversations']) \
        or '<p class="empty">No conversations yet</p>'

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)}</title><style>{STYLE}</style></head>
<body>
<div class="container">
<div class="header"><h1>{escape(title)}</h1></div>
<div class="stats-grid">{stats}</div>
<div class="section"><h2>Service Types</h2><ul>{service_rows}</ul></div>
<div class="section"><h2>Recent Leads</h2>{leads}</div>
<div class="section"><h2>Recent Conversations</h2>{conversations}</div>
</div>
</body>
</html>"""


def render_unavailable(title: str = "Lead Dashboard") -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)} - Database Unavailable</title></head>
<body>
<h1>{escape(title)}</h1>
<p>Database connection not available.</p>
<p>No persistent data to display.</p>
</body>
</html>"""
