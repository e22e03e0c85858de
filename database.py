"""
Database connection and query helpers for Supabase.
Pure database layer, no business logic.
"""
from supabase import create_client, Client
from typing import Optional, Dict, Any, List, Union
from config import settings
from utils.exceptions import DatabaseError
import asyncio
import logging
import threading
import time

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = 10.0


class SupabaseClient:
    """
    Thread-safe singleton Supabase client wrapper.

    Data access goes through the service-role client; ownership is enforced by
    the repositories with explicit user_id filters. The anon client is only used
    for Supabase Auth flows.
    """

    _instance = None
    _initialized = False
    _lock = threading.RLock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            self._client: Optional[Client] = None
            self._service_client: Optional[Client] = None
            self._is_available: Optional[bool] = None
            self._total_queries = 0
            self._initialized = True
            logger.info("[DATABASE] Singleton SupabaseClient initialized")

    @property
    def client(self) -> Client:
        """Get client with anon key (for auth flows)."""
        if self._client is None:
            logger.info(f"[DATABASE] Creating Supabase client with URL: {settings.supabase_url[:50]}...")
            try:
                self._client = create_client(settings.supabase_url, settings.supabase_anon_key)
            except Exception as e:
                logger.error(f"[DATABASE] Failed to create Supabase client: {e}")
                raise DatabaseError(f"Failed to create Supabase client: {e}", operation="connect")
        return self._client

    @property
    def service_client(self) -> Client:
        """Get client with service key (bypasses RLS)."""
        if self._service_client is None:
            try:
                self._service_client = create_client(settings.supabase_url, settings.get_service_key)
                logger.info("[DATABASE] Service client created")
            except ValueError:
                raise
            except Exception as e:
                logger.error(f"[DATABASE] Failed to create service client: {e}")
                raise DatabaseError(f"Failed to create service client: {e}", operation="connect")
        return self._service_client

    @property
    def storage(self):
        """Get storage client (service key, bucket policies are enforced by path)."""
        return self.service_client.storage

    @property
    def auth(self):
        """
        Get a Supabase Auth client bound to the anon key.

        A fresh client is returned per call so that one user's session never
        leaks into another request.
        """
        return create_client(settings.supabase_url, settings.supabase_anon_key).auth

    @property
    def admin_auth(self):
        """Supabase Auth admin API (service key), used to revoke sessions."""
        return self.service_client.auth.admin

    def is_available(self) -> bool:
        """Check if Supabase is reachable."""
        if self._is_available is not None:
            return self._is_available

        try:
            result = self.service_client.table("user_credits").select("user_id").limit(1).execute()
            self._is_available = result.data is not None
        except Exception as e:
            logger.error(f"[DATABASE] Supabase connection error: {e}")
            self._is_available = False
        return self._is_available

    def _client_for(self, use_service_key: bool) -> Client:
        return self.service_client if use_service_key else self.client

    def execute_query(
        self,
        table: str,
        operation: str,
        data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None,
        filters: Optional[Dict[str, Any]] = None,
        single: bool = False,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        in_filters: Optional[Dict[str, List[Any]]] = None,
        ilike: Optional[Dict[str, str]] = None,
        not_null: Optional[List[str]] = None,
        use_service_key: bool = True,
        columns: str = "*"
    ) -> Any:
        """
        Execute database query with proper error handling.

        Args:
            table: Table name
            operation: 'select', 'insert', 'update', 'delete'
            data: Data for insert/update operations
            filters: Equality filters for select/update/delete operations
            single: Return single record (or None) instead of list
            order_by: Order by clause (e.g., "created_at:desc")
            limit: Limit number of results
            offset: Offset for pagination
            in_filters: Column membership filters ({"id": [...]})
            ilike: Case-insensitive pattern filters ({"prompt": "%cat%"})
            not_null: Columns that must not be null
            use_service_key: Whether to use service key (bypasses RLS)
        """
        if operation not in ("select", "insert", "update", "delete"):
            raise ValueError(f"Unsupported operation: {operation}")
        if operation in ("insert", "update") and not data:
            raise ValueError(f"Data required for {operation} operation")

        start_time = time.time()
        with self._lock:
            self._total_queries += 1

        try:
            query = self._client_for(use_service_key).table(table)

            if operation == "select":
                query = query.select(columns)
            elif operation == "insert":
                query = query.insert(data)
            elif operation == "update":
                query = query.update(data)
            else:
                query = query.delete()

            for key, value in (filters or {}).items():
                query = query.eq(key, value)
            for key, values in (in_filters or {}).items():
                query = query.in_(key, list(values))
            for key, pattern in (ilike or {}).items():
                query = query.ilike(key, pattern)
            for column in not_null or []:
                query = query.not_.is_(column, "null")

            if operation == "select":
                if order_by:
                    column, _, direction = order_by.partition(":")
                    query = query.order(column, desc=direction.lower() == "desc")
                if offset is not None and limit:
                    query = query.range(offset, offset + limit - 1)
                elif limit:
                    query = query.limit(limit)

            result = query.execute()
            rows = result.data or []

            logger.debug(
                f"[DATABASE] {operation.upper()} {table}: {len(rows)} rows "
                f"in {(time.time() - start_time) * 1000:.1f}ms"
            )

            if single:
                return rows[0] if rows else None
            return rows

        except (ValueError, DatabaseError):
            raise
        except Exception as e:
            logger.error(f"[DATABASE] {operation} on {table} failed: {e}")
            raise DatabaseError(f"Database {operation} on {table} failed: {e}", operation=operation, table=table)

    def execute_rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a Supabase RPC (stored procedure) with the service client."""
        try:
            result = self.service_client.rpc(function_name, params or {}).execute()
            return result.data
        except Exception as e:
            logger.error(f"[DATABASE] RPC function {function_name} failed: {e}")
            raise DatabaseError(f"RPC {function_name} failed: {e}", operation="rpc", table=function_name)

    async def execute_query_async(self, table: str, operation: str, timeout: float = DEFAULT_QUERY_TIMEOUT,
                                  **kwargs) -> Any:
        """Run execute_query off the event loop with a timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.execute_query, table, operation, **kwargs),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"[DATABASE] Query timeout after {timeout}s for {operation} on {table}")
            raise DatabaseError(f"{operation} on {table} timed out after {timeout}s", operation=operation, table=table)

    async def execute_rpc_async(self, function_name: str, params: Optional[Dict[str, Any]] = None,
                                timeout: float = DEFAULT_QUERY_TIMEOUT) -> Any:
        """Run execute_rpc off the event loop with a timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.execute_rpc, function_name, params),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"[DATABASE] RPC timeout after {timeout}s for {function_name}")
            raise DatabaseError(f"RPC {function_name} timed out after {timeout}s", operation="rpc", table=function_name)

    def get_performance_metrics(self) -> Dict[str, Any]:
        return {
            "total_queries": self._total_queries,
            "client_ready": self._client is not None,
            "service_client_ready": self._service_client is not None,
        }


db: Optional[SupabaseClient] = None
_db_initialization_lock = threading.Lock()


async def get_database() -> SupabaseClient:
    """
    FastAPI dependency returning the database singleton.
    Creates it lazily if the lifespan hook has not run (e.g. scripts).
    """
    global db
    if db is None:
        with _db_initialization_lock:
            if db is None:
                db = SupabaseClient()
    return db


async def initialize_database() -> bool:
    """Create the singleton and check connectivity once at start-up."""
    global db
    with _db_initialization_lock:
        if db is None:
            db = SupabaseClient()

    start_time = time.time()
    available = await asyncio.to_thread(db.is_available)
    elapsed_ms = (time.time() - start_time) * 1000

    if available:
        logger.info(f"[DATABASE] Connection verified in {elapsed_ms:.1f}ms")
    else:
        logger.warning(f"[DATABASE] Supabase not reachable after {elapsed_ms:.1f}ms; requests will retry lazily")
    return available
