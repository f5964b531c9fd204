"""
Utility module for Supabase access.
This module provides the client factory and batched writes used by the course store.
"""
import logging
from typing import List, Dict, Any, Optional
from supabase import create_client, Client
from coursepilot.config import Config

# Initialize logging
logger = logging.getLogger(__name__)

def get_supabase_client(access_token: Optional[str] = None) -> Client:
    """
    Create a Supabase client for one request.

    Args:
        access_token (Optional[str]): Caller's JWT, forwarded so row-level policies apply

    Returns:
        Client: Supabase client instance

    Raises:
        ValueError: If Supabase credentials are missing
    """
    if not Config.SUPABASE_URL or not Config.SUPABASE_KEY:
        raise ValueError("Supabase URL or key is missing in configuration")

    supabase_client = create_client(Config.SUPABASE_URL, Config.SUPABASE_KEY)
    if access_token:
        supabase_client.postgrest.auth(access_token)
    return supabase_client

def bulk_upsert(
    supabase_client: Client,
    table: str,
    records: List[Dict[str, Any]],
    id_field: str = "id",
    batch_size: int = 100
) -> Dict[str, Any]:
    """
    Insert or update multiple records in a Supabase table in batches.

    Records carry client-generated ids, so replaying a batch is harmless.

    Args:
        supabase_client (Client): Supabase client instance
        table (str): Name of the table to upsert into
        records (List[Dict[str, Any]]): List of records to upsert
        id_field (str): Name of the conflict column
        batch_size (int): Number of records to upsert in each batch

    Returns:
        Dict[str, Any]: Success count, returned rows and errors
    """
    result = {
        "success_count": 0,
        "data": [],
        "errors": []
    }

    if not records:
        logger.debug(f"No records provided for bulk upsert into {table}")
        return result

    # Process records in batches
    for i in range(0, len(records), batch_size):
        batch = records[i:i+batch_size]
        try:
            response = supabase_client.table(table).upsert(batch, on_conflict=id_field).execute()

            if response.data:
                result["success_count"] += len(response.data)
                result["data"].extend(response.data)
                logger.info(f"Successfully upserted {len(response.data)} records into {table}")
            else:
                error_msg = f"No data returned from upsert into {table} for batch {i//batch_size + 1}"
                logger.warning(error_msg)
                result["errors"].append(error_msg)

        except Exception as e:
            error_msg = f"Error upserting batch {i//batch_size + 1} into {table}: {str(e)}"
            logger.error(error_msg)
            result["errors"].append(error_msg)

    return result

def fetch_in(
    supabase_client: Client,
    table: str,
    column: str,
    values: List[str],
    order_by: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Fetch every row of ``table`` whose ``column`` is in ``values`` with one query.

    Returns:
        List[Dict[str, Any]]: Matching rows, ordered by ``order_by`` when given
    """
    if not values:
        return []

    query = supabase_client.table(table).select('*').in_(column, values)
    if order_by:
        query = query.order(order_by)
    response = query.execute()
    return response.data or []

def extract_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    """Return the token of an ``Authorization: Bearer <token>`` header, if any."""
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
