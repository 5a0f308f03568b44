"""
=====================================================
Voice Lead Agent - Business Resolver
=====================================================
Maps the dialed Twilio number to a tenant business.

The call path must never fail on tenant lookup: every miss or error
resolves to the default tenant.
"""

from typing import Any, Dict, Optional

from loguru import logger

from services.database import Database, load_json
from .business_base import (
    AIConfig,
    DEFAULT_TENANT_ID,
    Industry,
    Schedule,
    Tenant,
    TenantContext,
    default_tenant,
    mask_phone,
)
from .industry_templates import IndustryTemplateStore


class BusinessResolver:
    """PostgreSQL-backed tenant directory"""

    def __init__(self, database: Database, templates: IndustryTemplateStore):
        self.database = database
        self.templates = templates

    # ---- helpers ------------------------------------------------

    @staticmethod
    def _row_to_tenant(row) -> Tenant:
        return Tenant(
            id=str(row["id"]),
            company_name=row["company_name"] or "Your Business",
            industry=Industry.from_value(row["industry"]),
            services=list(row["services"] or []),
            schedule=Schedule.from_dict(load_json(row["schedule"], {})),
            twilio_numbers=list(row["twilio_numbers"] or []),
        )

    def _context(self, tenant: Tenant, ai_config: AIConfig, is_default: bool = False) -> TenantContext:
        return TenantContext(
            tenant=tenant,
            ai_config=ai_config,
            template=self.templates.template_for(tenant.industry),
            is_default=is_default,
        )

    def default_context(self) -> TenantContext:
        """Context for the built-in default tenant"""
        return self._context(default_tenant(), AIConfig(), is_default=True)

    async def _load_ai_config(self, pool, business_id: str) -> AIConfig:
        row = await pool.fetchrow(
            "SELECT config FROM ai_assistants WHERE business_id = $1",
            business_id,
        )
        if row is None:
            logger.info(f"BusinessResolver: No AI config for {business_id}, using defaults")
            return AIConfig()
        return AIConfig.from_dict(load_json(row["config"], {}))

    # ---- public API ---------------------------------------------

    async def resolve(self, called_number: str) -> TenantContext:
        """
        Resolve the business that owns the dialed number.

        Args:
            called_number: E.164 number the caller dialed (Twilio "To")

        Returns:
            TenantContext; the default tenant on no match or any failure
        """
        number = (called_number or "").strip()
        if not number:
            return self.default_context()

        try:
            pool = await self.database.get_pool()
            row = await pool.fetchrow(
                """
                SELECT id, company_name, industry, services, schedule, twilio_numbers
                FROM businesses
                WHERE $1 = ANY(twilio_numbers)
                LIMIT 1
                """,
                number,
            )
            if row is None:
                logger.info(f"BusinessResolver: No business for {mask_phone(number)}, using default tenant")
                return self.default_context()

            tenant = self._row_to_tenant(row)
            ai_config = await self._load_ai_config(pool, tenant.id)
            logger.info(f"BusinessResolver: Found business {tenant.company_name} (ID: {tenant.id})")
            return self._context(tenant, ai_config)

        except Exception as e:
            logger.warning(f"BusinessResolver: Lookup failed, using default tenant: {e}")
            return self.default_context()

    async def resolve_by_id(self, business_id: str) -> Optional[TenantContext]:
        """Tenant by id for the owner-facing API; None if unknown"""
        if not business_id or business_id == DEFAULT_TENANT_ID:
            return self.default_context()

        pool = await self.database.get_pool()
        row = await pool.fetchrow(
            """
            SELECT id, company_name, industry, services, schedule, twilio_numbers
            FROM businesses
            WHERE id = $1
            """,
            business_id,
        )
        if row is None:
            return None

        tenant = self._row_to_tenant(row)
        return self._context(tenant, await self._load_ai_config(pool, tenant.id))

    async def update_ai_config(self, business_id: str, updates: Dict[str, Any]) -> AIConfig:
        """
        Merge camelCase updates over the stored assistant config.

        Raises:
            ValueError: for the built-in default tenant
            DatabaseUnavailableError: when the store is down
        """
        if business_id == DEFAULT_TENANT_ID:
            raise ValueError("The default business configuration cannot be modified")

        pool = await self.database.get_pool()
        current = await self._load_ai_config(pool, business_id)
        updated = current.merged(updates)

        await pool.execute(
            """
            INSERT INTO ai_assistants (business_id, config, updated_at)
            VALUES ($1, $2, NOW())
            ON CONFLICT (business_id) DO UPDATE
                SET config = EXCLUDED.config,
                    updated_at = EXCLUDED.updated_at
            """,
            business_id, updated.to_dict(),
        )
        logger.info(f"BusinessResolver: Updated AI config for business {business_id}")
        return updated
