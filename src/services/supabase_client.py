"""Supabase client wrapper with async context manager support and table helpers."""

import os
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from src.utils.errors import ConflictError, StaleStateError, SupabaseError

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        # Serverless: no session persistence, token refresh is the caller's job
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


def is_configured() -> bool:
    """Whether the service role credentials are present in the environment."""
    return bool(os.environ.get("SUPABASE_URL") and os.environ.get("SUPABASE_SERVICE_ROLE_KEY"))


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type and not issubclass(exc_type, ConflictError):
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _values(values: Iterable[Any]) -> list:
    return [_value(v) for v in values]


def _is_duplicate(error: Exception) -> bool:
    return getattr(error, "code", None) == "23505" or "duplicate key" in str(error).lower()


def _or_pair(column_a: str, column_b: str, user_id: str) -> str:
    """PostgREST or-filter matching rows where either column equals user_id."""
    return f"{column_a}.eq.{user_id},{column_b}.eq.{user_id}"


def _search_term(term: str) -> str:
    # Characters with meaning inside a PostgREST or-filter
    for char in ",()%*\\":
        term = term.replace(char, " ")
    return " ".join(term.split())


async def _fetch_one(table: str, column: str, value: Any) -> Optional[dict]:
    async with SupabaseClient() as client:
        try:
            result = client.table(table).select("*").eq(column, _value(value)).limit(1).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to get {table} row: {e}")
    return result.data[0] if result.data else None


async def _insert_one(table: str, row: dict) -> dict:
    async with SupabaseClient() as client:
        try:
            result = client.table(table).insert(row).execute()
        except Exception as e:
            if _is_duplicate(e):
                raise ConflictError(f"Duplicate {table} row")
            raise SupabaseError(f"Failed to insert {table} row: {e}")
    if result.data:
        return result.data[0]
    raise SupabaseError(f"Failed to insert {table} row: no data returned")


async def _update_one(
    table: str,
    row_id: str,
    updates: dict,
    expected_status: Any = None,
    touch: bool = True,
) -> dict:
    """Update a row by id; with expected_status the write only lands if the status is unchanged."""
    payload = {key: _value(value) for key, value in updates.items()}
    if touch:
        payload.setdefault("updated_at", utc_now_iso())

    async with SupabaseClient() as client:
        try:
            query = client.table(table).update(payload).eq("id", row_id)
            if expected_status is not None:
                query = query.eq("status", _value(expected_status))
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to update {table} row: {e}")

    if result.data:
        return result.data[0]
    if expected_status is not None:
        raise StaleStateError(
            f"{table} row {row_id} is no longer {_value(expected_status)}; reload and retry"
        )
    raise SupabaseError(f"Failed to update {table} row: {row_id}")


async def _count(table: str, **filters: Any) -> int:
    async with SupabaseClient() as client:
        try:
            query = client.table(table).select("id", count="exact")
            for column, value in filters.items():
                if isinstance(value, (list, tuple)):
                    query = query.in_(column, _values(value))
                else:
                    query = query.eq(column, _value(value))
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to count {table}: {e}")
    return result.count or 0


# Profiles
async def get_profile(user_id: str) -> Optional[dict]:
    """Get profile by user ID."""
    return await _fetch_one("profiles", "id", user_id)


async def get_profile_by_username(username: str) -> Optional[dict]:
    return await _fetch_one("profiles", "username", username)


async def get_profiles_by_ids(user_ids: Iterable[str]) -> dict[str, dict]:
    """Map of user ID -> profile for the given IDs."""
    ids = sorted(set(user_ids))
    if not ids:
        return {}
    async with SupabaseClient() as client:
        try:
            result = client.table("profiles").select("*").in_("id", ids).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to get profiles: {e}")
    return {row["id"]: row for row in (result.data or [])}


async def update_profile(user_id: str, updates: dict) -> dict:
    """Update a profile."""
    return await _update_one("profiles", user_id, updates)


async def count_profiles() -> int:
    return await _count("profiles")


# Requests
async def create_request(request_data: dict) -> dict:
    """Create a new marketplace request."""
    return await _insert_one("requests", request_data)


async def get_request(request_id: str) -> Optional[dict]:
    """Get request by ID."""
    return await _fetch_one("requests", "id", request_id)


async def list_requests(
    status: Any = None,
    user_id: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[dict]:
    """List requests, newest first."""
    async with SupabaseClient() as client:
        try:
            query = client.table("requests").select("*")
            if status is not None:
                query = query.eq("status", _value(status))
            if user_id:
                query = query.eq("user_id", user_id)
            if category:
                query = query.eq("category", category)
            term = _search_term(search) if search else ""
            if term:
                query = query.or_(f"title.ilike.%{term}%,description.ilike.%{term}%")
            query = query.order("created_at", desc=True)
            if limit:
                query = query.limit(limit)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list requests: {e}")
    return result.data or []


async def update_request(request_id: str, updates: dict, expected_status: Any = None) -> dict:
    """Update a request, optionally guarded on its current status."""
    return await _update_one("requests", request_id, updates, expected_status)


async def delete_request(request_id: str) -> None:
    async with SupabaseClient() as client:
        try:
            client.table("requests").delete().eq("id", request_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to delete request: {e}")


async def count_requests(status: Any = None, user_id: Optional[str] = None) -> int:
    filters = {}
    if status is not None:
        filters["status"] = status
    if user_id:
        filters["user_id"] = user_id
    return await _count("requests", **filters)


# Request interests
async def create_interest(interest_data: dict) -> dict:
    return await _insert_one("request_interests", interest_data)


async def get_interest(interest_id: str) -> Optional[dict]:
    return await _fetch_one("request_interests", "id", interest_id)


async def get_user_interest(request_id: str, user_id: str) -> Optional[dict]:
    """The interest a user expressed in a request, if any."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("request_interests")
                .select("*")
                .eq("request_id", request_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to get interest: {e}")
    return result.data[0] if result.data else None


async def list_interests(request_id: str, status: Any = None) -> list[dict]:
    async with SupabaseClient() as client:
        try:
            query = client.table("request_interests").select("*").eq("request_id", request_id)
            if status is not None:
                query = query.eq("status", _value(status))
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list interests: {e}")
    return result.data or []


async def update_interest(interest_id: str, updates: dict, expected_status: Any = None) -> dict:
    # request_interests has no updated_at column
    return await _update_one("request_interests", interest_id, updates, expected_status, touch=False)


# Deals
async def create_deal(deal_data: dict) -> dict:
    return await _insert_one("deals", deal_data)


async def get_deal(deal_id: str) -> Optional[dict]:
    return await _fetch_one("deals", "id", deal_id)


async def update_deal(deal_id: str, updates: dict, expected_status: Any = None) -> dict:
    """Update a deal, optionally guarded on its current status."""
    return await _update_one("deals", deal_id, updates, expected_status)


async def list_deals_for_user(user_id: str, statuses: Optional[Iterable[Any]] = None) -> list[dict]:
    """Deals where the user is requester or accepter, newest first."""
    async with SupabaseClient() as client:
        try:
            query = client.table("deals").select("*").or_(_or_pair("requester_id", "accepter_id", user_id))
            if statuses is not None:
                query = query.in_("status", _values(statuses))
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list deals: {e}")
    return result.data or []


async def list_deals_for_request(request_id: str, statuses: Optional[Iterable[Any]] = None) -> list[dict]:
    async with SupabaseClient() as client:
        try:
            query = client.table("deals").select("*").eq("request_id", request_id)
            if statuses is not None:
                query = query.in_("status", _values(statuses))
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list deals for request: {e}")
    return result.data or []


async def count_deals(statuses: Optional[Iterable[Any]] = None, user_id: Optional[str] = None) -> int:
    async with SupabaseClient() as client:
        try:
            query = client.table("deals").select("id", count="exact")
            if statuses is not None:
                query = query.in_("status", _values(statuses))
            if user_id:
                query = query.or_(_or_pair("requester_id", "accepter_id", user_id))
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to count deals: {e}")
    return result.count or 0


# Conversations and messages
async def find_conversation(user_a: str, user_b: str) -> Optional[dict]:
    """Conversation between two users, in either participant order."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("conversations")
                .select("*")
                .or_(
                    f"and(participant1_id.eq.{user_a},participant2_id.eq.{user_b}),"
                    f"and(participant1_id.eq.{user_b},participant2_id.eq.{user_a})"
                )
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to find conversation: {e}")
    return result.data[0] if result.data else None


async def create_conversation(conversation_data: dict) -> dict:
    return await _insert_one("conversations", conversation_data)


async def get_conversation(conversation_id: str) -> Optional[dict]:
    return await _fetch_one("conversations", "id", conversation_id)


async def touch_conversation(conversation_id: str) -> dict:
    return await _update_one("conversations", conversation_id, {})


async def list_conversations(user_id: str) -> list[dict]:
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("conversations")
                .select("*")
                .or_(_or_pair("participant1_id", "participant2_id", user_id))
                .order("updated_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to list conversations: {e}")
    return result.data or []


async def create_message(message_data: dict) -> dict:
    return await _insert_one("messages", message_data)


async def get_message(message_id: str) -> Optional[dict]:
    return await _fetch_one("messages", "id", message_id)


async def list_messages(conversation_id: str) -> list[dict]:
    """Messages in a conversation, oldest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("messages")
                .select("*")
                .eq("conversation_id", conversation_id)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to list messages: {e}")
    return result.data or []


async def list_user_messages(user_id: str) -> list[dict]:
    """Messages sent or received by a user, newest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("messages")
                .select("*")
                .or_(_or_pair("sender_id", "receiver_id", user_id))
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to list messages: {e}")
    return result.data or []


async def mark_message_read(message_id: str) -> dict:
    return await _update_one("messages", message_id, {"is_read": True}, touch=False)


# Reviews
async def create_review(review_data: dict) -> dict:
    return await _insert_one("reviews", review_data)


async def list_reviews_for_deals(deal_ids: Iterable[str]) -> list[dict]:
    ids = sorted(set(deal_ids))
    if not ids:
        return []
    async with SupabaseClient() as client:
        try:
            result = client.table("reviews").select("*").in_("deal_id", ids).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list reviews: {e}")
    return result.data or []


async def list_reviews_for_user(reviewee_id: str, limit: Optional[int] = None) -> list[dict]:
    """Reviews a user has received, newest first."""
    async with SupabaseClient() as client:
        try:
            query = client.table("reviews").select("*").eq("reviewee_id", reviewee_id).order("created_at", desc=True)
            if limit:
                query = query.limit(limit)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list reviews: {e}")
    return result.data or []


# Badges
async def list_badges(user_id: str) -> list[dict]:
    async with SupabaseClient() as client:
        try:
            result = client.table("user_badges").select("*").eq("user_id", user_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to list badges: {e}")
    return result.data or []


async def create_badge(user_id: str, badge_type: Any) -> dict:
    return await _insert_one("user_badges", {
        "user_id": user_id,
        "badge_type": _value(badge_type),
        "earned_at": utc_now_iso(),
    })


# Disputes
async def create_dispute(dispute_data: dict) -> dict:
    return await _insert_one("disputes", dispute_data)


async def get_open_dispute(deal_id: str) -> Optional[dict]:
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("disputes")
                .select("*")
                .eq("deal_id", deal_id)
                .eq("status", "open")
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to get dispute: {e}")
    return result.data[0] if result.data else None


async def update_dispute(dispute_id: str, updates: dict) -> dict:
    return await _update_one("disputes", dispute_id, updates, expected_status="open", touch=False)


# Roles
async def has_role(user_id: str, role: str) -> bool:
    """Ask the database's has_role() function."""
    async with SupabaseClient() as client:
        try:
            result = client.rpc("has_role", {"_user_id": user_id, "_role": role}).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to check role: {e}")
    return bool(result.data)
