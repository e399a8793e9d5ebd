"""
Parameterized SQL queries for media plan versions and reference data.

This module provides functions that generate PostgreSQL queries for the
finance endpoints. Implements the Repository Pattern: services receive rows,
never SQL, and the calculation engines never see the database at all.

Tables:
    media_plan_master: One row per campaign (MBA number) with the number of
        its current version.
    media_plan_versions: Every saved version of a plan, including the
        serialized delivery and billing schedules.
    <channel>_line_items: One table per media channel holding line items
        keyed by line_item_id and scoped to a plan version.
    publishers: Publisher reference data with pub_<channel> flags.
"""

from typing import List, Optional


# One line item table per media channel
LINE_ITEM_TABLES: List[str] = [
    "television_line_items",
    "radio_line_items",
    "search_line_items",
    "social_media_line_items",
    "newspaper_line_items",
    "magazines_line_items",
    "ooh_line_items",
    "cinema_line_items",
    "digital_display_line_items",
    "digital_audio_line_items",
    "digital_video_line_items",
    "bvod_line_items",
    "integration_line_items",
    "prog_display_line_items",
    "prog_video_line_items",
    "prog_bvod_line_items",
    "prog_audio_line_items",
    "prog_ooh_line_items",
    "influencers_line_items",
]


def get_media_plan_masters_query() -> str:
    """
    Generate SQL to fetch every campaign master row.

    Returns:
        str: Query returning id, mba_number and version_number per master.
    """
    return """
        SELECT
            id,
            mba_number,
            version_number,
            mp_client_name,
            mp_campaignname
        FROM media_plan_master
        ORDER BY mba_number
    """


def get_media_plan_versions_query(mba_number: Optional[str] = None) -> str:
    """
    Generate SQL to fetch plan versions with their schedules.

    Args:
        mba_number: When given, the query takes it as $1 and returns only
            that campaign's versions.

    Returns:
        str: Parameterized PostgreSQL query string.

    Example:
        >>> sql = get_media_plan_versions_query(mba_number="MBA-001")
        >>> rows = await conn.fetch(sql, "MBA-001")
    """
    mba_filter = "WHERE v.mba_number = $1" if mba_number else ""

    return f"""
        SELECT
            v.id,
            v.media_plan_master_id,
            v.mba_number,
            v.version_number,
            v.mp_client_name,
            v.campaign_name,
            v.mp_campaignname,
            v.client_slug,
            v.campaign_start_date,
            v.campaign_end_date,
            v.delivery_schedule,
            v.billing_schedule,
            v.created_at,
            v.updated_at
        FROM media_plan_versions v
        {mba_filter}
        ORDER BY v.mba_number, v.version_number
    """


def get_line_item_flags_query(tables: Optional[List[str]] = None) -> str:
    """
    Generate SQL to fetch client-pays-for-media flags for chosen versions.

    Takes $1 as an array of media_plan_versions ids. Every channel table is
    read in one UNION ALL so a single round trip covers the whole plan.

    Args:
        tables: Line item tables to read; defaults to every channel table.

    Returns:
        str: Query returning line_item_id, client_pays_for_media and the
            source table name.
    """
    selects = [
        f"""
        SELECT
            line_item_id,
            client_pays_for_media,
            '{table}' AS source_table
        FROM {table}
        WHERE media_plan_version = ANY($1::int[])
        """
        for table in (tables or LINE_ITEM_TABLES)
    ]
    return "\nUNION ALL\n".join(selects)


def get_publishers_query() -> str:
    """
    Generate SQL to fetch publisher reference data.

    Returns:
        str: Query returning every publisher column, including the
            pub_<channel> flags.
    """
    return """
        SELECT *
        FROM publishers
        ORDER BY publisher_name
    """
