"""
=====================================================
Voice Lead Agent - Dashboard Service
=====================================================
Read-side reporting over recent leads and conversations.
"""

from typing import Dict, List, Optional

import psutil
from loguru import logger

from services.database import Database, load_json
from services.lead.lead_base import LeadInfo


def summarize_leads(leads: List[Dict], high_score_threshold: int = 70) -> Dict:
    """
    Aggregate counts over lead dicts (as returned by get_lead_overview)

    Returns:
        {
            'total_leads', 'emergency_leads', 'high_score_leads',
            'average_score', 'service_types'
        }
    """
    total = len(leads)
    emergency = sum(1 for lead in leads if lead['lead_info'].get('hasEmergency'))
    high_score = sum(1 for lead in leads if (lead['score'] or 0) >= high_score_threshold)

    service_types: Dict[str, int] = {}
    for lead in leads:
        service_type = lead['lead_info'].get('serviceType')
        if service_type:
            service_types[service_type] = service_types.get(service_type, 0) + 1

    average = round(sum(lead['score'] or 0 for lead in leads) / total, 1) if total else 0.0

    return {
        'total_leads': total,
        'emergency_leads': emergency,
        'high_score_leads': high_score,
        'average_score': average,
        'service_types': service_types,
    }


class DashboardService:
    """
    Dashboard service for business owners

    Every request re-queries the store; nothing is cached.
    """

    def __init__(
        self,
        database: Database,
        lead_limit: int = 20,
        conversation_limit: int = 10,
        high_score_threshold: int = 70,
    ):
        self.database = database
        self.lead_limit = lead_limit
        self.conversation_limit = conversation_limit
        self.high_score_threshold = high_score_threshold

    @staticmethod
    def _row_to_lead(row) -> Dict:
        lead_info = LeadInfo.from_dict(load_json(row['lead_info'], {}))
        return {
            'tenant_id': row['tenant_id'],
            'phone_number': row['phone_number'],
            'lead_info': lead_info.to_dict(),
            'score': row['score'],
            'last_contact': row['last_contact'].isoformat() if row['last_contact'] else None,
            'last_call_sid': row['last_call_sid'],
        }

    @staticmethod
    def _row_to_conversation(row) -> Dict:
        return {
            'call_sid': row['call_sid'],
            'phone_number': row['phone_number'],
            'message_count': row['message_count'],
            'last_message_at': row['last_message_at'].isoformat() if row['last_message_at'] else None,
        }

    # ============================================================
    # LEAD OVERVIEW
    # ============================================================

    async def get_lead_overview(self, business_id: Optional[str] = None) -> Dict:
        """
        Recent leads and conversations with summary counts

        Args:
            business_id: Restrict to one tenant; None for all tenants

        Returns:
            {'available', 'summary', 'leads', 'conversations'}; available is
            False with empty data when the store cannot be read
        """
        try:
            pool = await self.database.get_pool()

            lead_rows = await pool.fetch(
                """
                SELECT tenant_id, phone_number, lead_info, score, last_contact, last_call_sid
                FROM leads
                WHERE ($1::text IS NULL OR tenant_id = $1) AND expires_at > NOW()
                ORDER BY last_contact DESC
                LIMIT $2
                """,
                business_id, self.lead_limit,
            )
            conversation_rows = await pool.fetch(
                """
                SELECT call_sid, phone_number, COUNT(*) AS message_count,
                       MAX(created_at) AS last_message_at
                FROM conversation_messages
                WHERE ($1::text IS NULL OR tenant_id = $1) AND expires_at > NOW()
                GROUP BY call_sid, phone_number
                ORDER BY last_message_at DESC
                LIMIT $2
                """,
                business_id, self.conversation_limit,
            )
        except Exception as e:
            logger.error(f"Dashboard: Error loading lead overview: {e}")
            return {
                'available': False,
                'error': str(e),
                'summary': summarize_leads([], self.high_score_threshold),
                'leads': [],
                'conversations': [],
            }

        leads = [self._row_to_lead(row) for row in lead_rows]
        return {
            'available': True,
            'summary': summarize_leads(leads, self.high_score_threshold),
            'leads': leads,
            'conversations': [self._row_to_conversation(row) for row in conversation_rows],
        }

    # ============================================================
    # SYSTEM HEALTH
    # ============================================================

    @staticmethod
    def get_system_health() -> Dict:
        """Host resource usage for the health endpoint"""
        try:
            cpu_percent = psutil.cpu_percent(interval=None)
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')
        except Exception as e:
            logger.warning(f"Dashboard: Could not read system health: {e}")
            return {'status': 'unknown'}

        worst = max(cpu_percent, memory.percent, disk.percent)
        status = 'healthy' if worst < 70 else 'warning' if worst < 90 else 'danger'
        return {
            'status': status,
            'cpu_percent': cpu_percent,
            'memory_percent': memory.percent,
            'disk_percent': disk.percent,
        }
