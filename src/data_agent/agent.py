"""
DataAgent — the session-side composition.

Wires inbound envelopes from the WebSocket manager to handlers, owns the
artifact catalog, and answers every request on the same envelope id.

Inbound types:
- data_req / warehouse_req: run ``payload.query`` on the matching executor
- user_prompt_req: resolve ``payload.prompt`` into an artifact
- components_update: replace the catalog, sync the candidate store
- auth_login_req / auth_verify_req: credential checks
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Union

from qdrant_client import AsyncQdrantClient

from data_agent.auth import Auth, AuthResult, CredentialStore
from data_agent.catalog import Catalog, CatalogSnapshot
from data_agent.config import Settings
from data_agent.errors import AuthError, SessionError
from data_agent.executors import QueryExecutor, SqlAlchemyExecutor
from data_agent.llm.completion import CompletionClient
from data_agent.llm.embedding import SentenceEmbedder
from data_agent.models.envelope import Endpoint, Envelope, Role
from data_agent.models.events import RESPONSE_TYPES, InboundType, OutboundType
from data_agent.resolver.pipeline import IntentResolver
from data_agent.schema import load_schema, render_documentation
from data_agent.store import CandidateStore
from data_agent.transport.websocket import WebSocketManager

logger = logging.getLogger(__name__)

Handler = Callable[[Envelope], Awaitable[Any]]


def _payload(envelope: Envelope) -> dict[str, Any]:
    return envelope.payload if isinstance(envelope.payload, dict) else {}


class DataAgent:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: WebSocketManager,
        resolver: IntentResolver,
        executor: Optional[QueryExecutor] = None,
        warehouse: Optional[QueryExecutor] = None,
        credentials: Optional[Auth] = None,
        store: Optional[CandidateStore] = None,
        completion: Optional[CompletionClient] = None,
    ):
        self.settings = settings
        self.transport = transport
        self.resolver = resolver
        self.executor = executor
        self.warehouse = warehouse
        self.credentials = credentials
        self.store = store
        self.catalog = Catalog()

        self._completion = completion
        self._tasks: set["asyncio.Task[Any]"] = set()
        self._stopped = asyncio.Event()
        self._handlers: dict[str, Handler] = {
            InboundType.DATA_REQ: self._handle_data_req,
            InboundType.WAREHOUSE_REQ: self._handle_warehouse_req,
            InboundType.USER_PROMPT_REQ: self._handle_user_prompt_req,
            InboundType.COMPONENTS_UPDATE: self._handle_components_update,
            InboundType.AUTH_LOGIN_REQ: self._handle_auth_login_req,
            InboundType.AUTH_VERIFY_REQ: self._handle_auth_verify_req,
        }
        self._remove_handler = transport.add_envelope_handler(self.dispatch)
        if transport.on_give_up is None:
            transport.on_give_up = self._stopped.set

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataAgent":
        """Build the agent and all of its collaborators from configuration."""
        completion = CompletionClient(
            api_key=settings.GROQ_API_KEY,
            base_url=settings.GROQ_BASE_URL,
            model=settings.COMPLETION_MODEL,
        )
        store = None
        if settings.MATCHING_METHOD == "vector" or settings.CANDIDATE_SYNC:
            store = CandidateStore(
                AsyncQdrantClient(url=settings.QDRANT_URL),
                SentenceEmbedder(settings.EMBEDDING_MODEL),
            )
        schema_doc = render_documentation(load_schema(settings.SCHEMA_FILE or None))
        resolver = IntentResolver(
            completion,
            schema_doc,
            store=store,
            matching_method=settings.MATCHING_METHOD,
            collection=settings.collection_name,
            top_k=settings.TOP_K,
            row_limit=settings.DEFAULT_ROW_LIMIT,
            model=settings.COMPLETION_MODEL,
            rerank_model=settings.RERANK_MODEL,
        )
        transport = WebSocketManager(
            url=settings.WEBSOCKET_URL,
            user_id=settings.USER_ID,
            project_id=settings.PROJECT_ID,
            agent_type=settings.AGENT_TYPE,
            reconnect_interval=settings.RECONNECT_INTERVAL,
            max_reconnect_attempts=settings.MAX_RECONNECT_ATTEMPTS,
            request_timeout=settings.REQUEST_TIMEOUT,
            max_message_size=settings.MAX_MESSAGE_SIZE,
        )
        return cls(
            settings,
            transport=transport,
            resolver=resolver,
            executor=SqlAlchemyExecutor(settings.DATABASE_URL, name="database") if settings.DATABASE_URL else None,
            warehouse=SqlAlchemyExecutor(settings.WAREHOUSE_URL, name="warehouse") if settings.WAREHOUSE_URL else None,
            credentials=Auth(CredentialStore(settings.USERS_FILE)),
            store=store,
            completion=completion,
        )

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # --- Lifecycle ---

    async def start(self) -> None:
        await self.transport.connect()

    async def run(self) -> None:
        """Connect, load the catalog, then serve until stopped or reconnection gives up."""
        await self.start()
        try:
            await self.request_catalog()
        except Exception as e:
            logger.warning(f"Could not load components from the host: {e}")
        await self._stopped.wait()

    async def stop(self) -> None:
        self._stopped.set()
        self._remove_handler()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.transport.disconnect()

        if self.store is not None:
            await self.store.close()
        if self._completion is not None:
            await self._completion.close()
        for executor in (self.executor, self.warehouse):
            if isinstance(executor, SqlAlchemyExecutor):
                executor.dispose()

    # --- Catalog ---

    async def request_catalog(self, timeout: Optional[float] = None) -> CatalogSnapshot:
        """Ask the host for its component list and replace the catalog with it."""
        request = Envelope(
            id=f"component-list-{int(time.time() * 1000)}",
            type=OutboundType.COMPONENT_LIST_REQ,
            from_=Endpoint(type=Role.DATA_AGENT),
            payload={},
        )
        logger.info("Requesting component list from host")
        reply = await self.transport.send_and_wait(request, timeout or self.settings.REQUEST_TIMEOUT)
        return self.replace_catalog(reply.payload)

    def replace_catalog(self, payload: Any) -> CatalogSnapshot:
        if isinstance(payload, dict):
            payload = payload.get("components", [])
        if not isinstance(payload, list):
            raise SessionError("Component list must be a list")
        snapshot = self.catalog.replace(payload)
        logger.info(f"Stored {len(snapshot)} components in memory (version {snapshot.version})")
        self._schedule_sync(snapshot)
        return snapshot

    def _schedule_sync(self, snapshot: CatalogSnapshot) -> None:
        if self.store is None or not self.settings.CANDIDATE_SYNC or not len(snapshot):
            return
        task = asyncio.get_running_loop().create_task(
            self.store.sync(
                self.settings.collection_name,
                snapshot.artifacts,
                force_recreate=self.settings.CANDIDATE_FORCE_RECREATE,
            )
        )
        self._track(task)
        task.add_done_callback(self._log_sync_result)

    def _log_sync_result(self, task: "asyncio.Task[int]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Candidate store sync failed: {error}")
        else:
            logger.info(f"Synced {task.result()} components to {self.settings.collection_name}")

    def _track(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # --- Dispatch ---

    def dispatch(self, envelope: Envelope) -> None:
        """Start handling one inbound envelope in its own task."""
        handler = self._handlers.get(envelope.type)
        if handler is None:
            logger.warning(f"Unknown message type: {envelope.type}")
            return
        self._track(asyncio.get_running_loop().create_task(self._respond(handler, envelope)))

    async def _respond(self, handler: Handler, envelope: Envelope) -> None:
        try:
            payload = await handler(envelope)
        except Exception as e:
            logger.error(f"Error handling {envelope.type} ({envelope.id}): {e}")
            payload = {"error": str(e)}

        reply = envelope.reply(RESPONSE_TYPES[envelope.type], payload)
        if envelope.type == InboundType.USER_PROMPT_REQ:
            reply.to = Endpoint(type=Role.RUNTIME, id=envelope.from_.id)
        await self.transport.send(reply)

    # --- Handlers ---

    async def _execute(self, executor: Optional[QueryExecutor], envelope: Envelope) -> Any:
        query = _payload(envelope).get("query")
        if not isinstance(query, str) or not query.strip():
            return {"error": "Invalid query"}
        if executor is None:
            raise SessionError(f"No executor configured for {envelope.type}")

        result = await executor.execute(query)
        if not result.success:
            logger.error(f"Query execution failed: {result.errors}")
            return {"error": "; ".join(result.errors) or "Query failed", "errors": result.errors}
        return result.data

    async def _handle_data_req(self, envelope: Envelope) -> Any:
        return await self._execute(self.executor, envelope)

    async def _handle_warehouse_req(self, envelope: Envelope) -> Any:
        return await self._execute(self.warehouse, envelope)

    async def _handle_user_prompt_req(self, envelope: Envelope) -> dict[str, Any]:
        prompt = _payload(envelope).get("prompt") or ""
        snapshot = self.catalog.current
        logger.info(f"Resolving prompt against {len(snapshot)} components")
        result = await self.resolver.resolve(prompt, snapshot)
        name = result.artifact.name if result.artifact else None
        logger.info(f"Resolved prompt via {result.method}: {name}")
        return result.to_payload()

    async def _handle_components_update(self, envelope: Envelope) -> dict[str, Any]:
        snapshot = self.replace_catalog(envelope.payload)
        return {"success": True, "count": len(snapshot), "version": snapshot.version}

    def _auth_payload(self, result: AuthResult) -> dict[str, Any]:
        if result.success:
            return {"success": True, "data": {"username": result.username}}
        return {"success": False, "error": result.message}

    def _require_credentials(self) -> Auth:
        if self.credentials is None:
            raise AuthError("Authentication is not configured")
        return self.credentials

    async def _handle_auth_login_req(self, envelope: Envelope) -> dict[str, Any]:
        login_data: Union[str, None] = _payload(envelope).get("login_data")
        if not login_data:
            return {"success": False, "error": "Login data not provided"}
        result = await asyncio.to_thread(self._require_credentials().login, login_data, envelope.from_.id)
        return self._auth_payload(result)

    async def _handle_auth_verify_req(self, envelope: Envelope) -> dict[str, Any]:
        token: Union[str, None] = _payload(envelope).get("token")
        if not token:
            return {"success": False, "error": "Token not provided"}
        result = await asyncio.to_thread(self._require_credentials().verify, token)
        return self._auth_payload(result)
