"""
Database layer with PostgreSQL connection pooling.
Schema is created idempotently on startup.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Any, List, Dict
import config

logger = logging.getLogger(__name__)
_pool = None

# Timeout for acquiring connection from pool (seconds)
POOL_ACQUIRE_TIMEOUT = 10.0
SCHEMA_LOCK_ID = 20480


async def init_db():
    """Initialize pool and schema"""
    global _pool
    import asyncpg

    logger.info("Connecting to PostgreSQL...")
    _pool = await asyncpg.create_pool(
        config.DATABASE_URL,
        min_size=config.DB_POOL_MIN,
        max_size=config.DB_POOL_MAX,
        max_inactive_connection_lifetime=300,
        command_timeout=60,
    )
    logger.info(f"PostgreSQL pool initialized (min={config.DB_POOL_MIN}, max={config.DB_POOL_MAX})")

    await _create_schema()


async def close_db():
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("PostgreSQL pool closed")


@asynccontextmanager
async def get_connection():
    """Get connection from pool with timeout"""
    if not _pool:
        raise RuntimeError("Database pool not initialized")

    try:
        conn = await asyncio.wait_for(
            _pool.acquire(),
            timeout=POOL_ACQUIRE_TIMEOUT
        )
    except asyncio.TimeoutError:
        logger.error(f"Failed to acquire DB connection within {POOL_ACQUIRE_TIMEOUT}s - pool may be exhausted")
        raise RuntimeError(f"Database connection pool timeout after {POOL_ACQUIRE_TIMEOUT}s")

    try:
        yield DBWrapper(conn)
    finally:
        await _pool.release(conn)


@asynccontextmanager
async def transaction():
    """Connection whose statements commit or roll back together"""
    async with get_connection() as db:
        async with db.conn.transaction():
            yield db


class DBWrapper:
    """Consistent interface for asyncpg"""
    def __init__(self, conn):
        self.conn = conn

    async def execute(self, query: str, *args):
        return await self.conn.execute(query, *args)

    async def executemany(self, query: str, args_list):
        return await self.conn.executemany(query, args_list)

    async def fetch(self, query: str, *args) -> List[Dict]:
        return [dict(r) for r in await self.conn.fetch(query, *args)]

    async def fetchrow(self, query: str, *args) -> Optional[Dict]:
        row = await self.conn.fetchrow(query, *args)
        return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        return await self.conn.fetchval(query, *args)


def escape_like(text: Optional[str]) -> str:
    """Escape special characters for LIKE queries"""
    if not text:
        return ""
    return str(text).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_set_clause(fields: Dict[str, Any], allowed: set, start: int = 1) -> tuple:
    """SET fragment and values for an UPDATE; unknown keys are ignored"""
    parts, values = [], []
    for key, value in fields.items():
        if key not in allowed:
            continue
        values.append(value)
        parts.append(f"{key} = ${start + len(values) - 1}")
    return ", ".join(parts), values


def paginate(page: int, limit: int) -> tuple:
    """(limit, offset) for 1-based pages"""
    page = max(1, page)
    limit = max(1, min(limit, config.MAX_PAGE_LIMIT))
    return limit, (page - 1) * limit


async def check_db_health() -> bool:
    try:
        async with get_connection() as db:
            return await db.fetchval("SELECT 1") == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


TABLES = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        full_name TEXT,
        avatar_url TEXT,
        phone TEXT,
        role TEXT NOT NULL DEFAULT 'donor' CHECK (role IN ('admin', 'charity', 'donor')),
        is_verified BOOLEAN DEFAULT FALSE,
        is_active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS charities (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID UNIQUE NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        organization_name TEXT NOT NULL,
        description TEXT,
        website_url TEXT,
        logo_url TEXT,
        contact_email TEXT,
        contact_phone TEXT,
        address TEXT,
        registration_number TEXT,
        verification_status TEXT NOT NULL DEFAULT 'pending'
            CHECK (verification_status IN ('pending', 'under_review', 'approved', 'rejected', 'resubmission_required')),
        verification_notes TEXT,
        document_urls TEXT[] DEFAULT '{}',
        available_balance NUMERIC(14, 2) NOT NULL DEFAULT 0 CHECK (available_balance >= 0),
        total_received NUMERIC(14, 2) NOT NULL DEFAULT 0 CHECK (total_received >= 0),
        total_withdrawn NUMERIC(14, 2) NOT NULL DEFAULT 0 CHECK (total_withdrawn >= 0),
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS campaigns (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        charity_id UUID NOT NULL REFERENCES charities(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        goal_amount NUMERIC(14, 2) NOT NULL CHECK (goal_amount > 0),
        current_amount NUMERIC(14, 2) NOT NULL DEFAULT 0 CHECK (current_amount >= 0),
        image_url TEXT,
        status TEXT NOT NULL DEFAULT 'draft'
            CHECK (status IN ('draft', 'pending', 'active', 'paused', 'completed', 'cancelled')),
        start_date TIMESTAMPTZ,
        end_date TIMESTAMPTZ,
        category TEXT,
        location TEXT,
        seed_amount_released NUMERIC(14, 2) NOT NULL DEFAULT 0,
        milestone_amount_released NUMERIC(14, 2) NOT NULL DEFAULT 0,
        seed_released_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS milestones (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        target_amount NUMERIC(14, 2) NOT NULL CHECK (target_amount > 0),
        evidence_description TEXT,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed', 'verified')),
        verified_at TIMESTAMPTZ,
        verified_by UUID REFERENCES profiles(id),
        funds_released BOOLEAN NOT NULL DEFAULT FALSE,
        released_amount NUMERIC(14, 2) NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS milestone_proofs (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        milestone_id UUID NOT NULL REFERENCES milestones(id) ON DELETE CASCADE,
        proof_url TEXT NOT NULL,
        description TEXT,
        verification_status TEXT NOT NULL DEFAULT 'pending'
            CHECK (verification_status IN ('pending', 'approved', 'rejected', 'resubmission_required')),
        verification_notes TEXT,
        verified_by UUID REFERENCES profiles(id),
        verified_at TIMESTAMPTZ,
        submitted_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS donations (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES profiles(id),
        campaign_id UUID NOT NULL REFERENCES campaigns(id),
        amount NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'completed', 'failed', 'refunded')),
        payment_method TEXT NOT NULL,
        transaction_id TEXT UNIQUE,
        message TEXT,
        is_anonymous BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS fund_disbursements (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        charity_id UUID NOT NULL REFERENCES charities(id) ON DELETE CASCADE,
        milestone_id UUID REFERENCES milestones(id) ON DELETE SET NULL,
        amount NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
        disbursement_type TEXT NOT NULL CHECK (disbursement_type IN ('seed', 'milestone', 'final', 'manual')),
        status TEXT NOT NULL DEFAULT 'completed',
        approved_by UUID REFERENCES profiles(id),
        approved_at TIMESTAMPTZ DEFAULT NOW(),
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS campaign_reviews (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment TEXT,
        status TEXT NOT NULL DEFAULT 'approved' CHECK (status IN ('pending', 'approved', 'rejected')),
        admin_notes TEXT,
        reviewed_by UUID REFERENCES profiles(id),
        reviewed_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW(),
        UNIQUE (campaign_id, user_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS charity_feedback (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        charity_id UUID NOT NULL REFERENCES charities(id) ON DELETE CASCADE,
        donor_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW(),
        UNIQUE (charity_id, donor_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS withdrawal_transactions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        charity_id UUID NOT NULL REFERENCES charities(id) ON DELETE CASCADE,
        amount NUMERIC(14, 2) NOT NULL CHECK (amount > 0),
        bank_name TEXT NOT NULL,
        bank_account_last4 TEXT NOT NULL,
        account_holder TEXT,
        transaction_reference TEXT UNIQUE NOT NULL,
        status TEXT NOT NULL DEFAULT 'completed' CHECK (status IN ('completed', 'failed')),
        processed_at TIMESTAMPTZ DEFAULT NOW(),
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_logs (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID REFERENCES profiles(id) ON DELETE SET NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT,
        details JSONB DEFAULT '{}',
        ip_address TEXT,
        user_agent TEXT,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        type TEXT NOT NULL,
        title TEXT NOT NULL,
        message TEXT NOT NULL,
        action_url TEXT,
        metadata JSONB DEFAULT '{}',
        is_read BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS campaign_categories (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL UNIQUE,
        slug TEXT NOT NULL UNIQUE,
        description TEXT,
        icon TEXT,
        color TEXT,
        display_order INTEGER NOT NULL DEFAULT 0,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS campaign_updates (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
        charity_id UUID NOT NULL REFERENCES charities(id) ON DELETE CASCADE,
        created_by UUID REFERENCES profiles(id) ON DELETE SET NULL,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        update_type TEXT NOT NULL DEFAULT 'general'
            CHECK (update_type IN ('milestone', 'impact', 'general')),
        milestone_id UUID REFERENCES milestones(id) ON DELETE SET NULL,
        image_url TEXT,
        status TEXT NOT NULL DEFAULT 'published'
            CHECK (status IN ('draft', 'published', 'archived')),
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """,
]

# name, slug, description, icon, color
DEFAULT_CATEGORIES = [
    ("Education", "education", "Scholarships, school supplies and learning programs", "graduation-cap", "#3B82F6"),
    ("Healthcare", "health", "Medical assistance, hospital bills and health programs", "heart-pulse", "#EF4444"),
    ("Disaster Relief", "disaster", "Emergency response and recovery after calamities", "life-buoy", "#F97316"),
    ("Environment", "environment", "Conservation, reforestation and clean-up drives", "leaf", "#22C55E"),
    ("Community Development", "community", "Infrastructure and programs for local communities", "users", "#8B5CF6"),
    ("Food Security", "food", "Feeding programs and food banks", "utensils", "#EAB308"),
    ("Animal Welfare", "animals", "Rescue, shelter and care for animals", "paw-print", "#A16207"),
    ("Children & Youth", "children", "Programs supporting children and young people", "baby", "#EC4899"),
    ("Elderly Care", "elderly", "Support and care for senior citizens", "hand-heart", "#6366F1"),
    ("Water & Sanitation", "water", "Clean water access and sanitation facilities", "droplet", "#06B6D4"),
    ("Livelihood", "livelihood", "Skills training and income-generating projects", "briefcase", "#14B8A6"),
    ("Other", "other", "Causes that do not fit another category", "circle-ellipsis", "#6B7280"),
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_campaigns_charity ON campaigns(charity_id)",
    "CREATE INDEX IF NOT EXISTS idx_campaigns_status ON campaigns(status)",
    "CREATE INDEX IF NOT EXISTS idx_milestones_campaign ON milestones(campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_milestone_proofs_milestone ON milestone_proofs(milestone_id)",
    "CREATE INDEX IF NOT EXISTS idx_donations_user ON donations(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_donations_campaign_status ON donations(campaign_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_disbursements_campaign ON fund_disbursements(campaign_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_disbursements_one_seed ON fund_disbursements(campaign_id) WHERE disbursement_type = 'seed'",
    "CREATE INDEX IF NOT EXISTS idx_reviews_campaign ON campaign_reviews(campaign_id)",
    "CREATE INDEX IF NOT EXISTS idx_feedback_charity ON charity_feedback(charity_id)",
    "CREATE INDEX IF NOT EXISTS idx_withdrawals_charity ON withdrawal_transactions(charity_id, processed_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_entity ON audit_logs(entity_type, entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_created ON audit_logs(created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, is_read)",
    "CREATE INDEX IF NOT EXISTS idx_campaign_updates_campaign ON campaign_updates(campaign_id, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_categories_active ON campaign_categories(is_active, display_order)",
]


async def _create_schema():
    """Create all tables and indexes with lock to prevent race conditions"""
    async with get_connection() as db:
        # Advisory lock: several API workers may start at once
        lock_acquired = await db.fetchval("SELECT pg_try_advisory_lock($1)", SCHEMA_LOCK_ID)

        if not lock_acquired:
            logger.info("Schema initialization in progress by another worker, skipping...")
            return

        try:
            await db.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')
            for ddl in TABLES:
                await db.execute(ddl)
            for idx in INDEXES:
                try:
                    await db.execute(idx)
                except Exception as e:
                    logger.warning(f"Index creation failed: {e}")
            await db.executemany("""
                INSERT INTO campaign_categories (name, slug, description, icon, color, display_order)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (slug) DO NOTHING
            """, [(*c, i + 1) for i, c in enumerate(DEFAULT_CATEGORIES)])

            logger.info("Database schema initialized")

        finally:
            await db.execute("SELECT pg_advisory_unlock($1)", SCHEMA_LOCK_ID)
