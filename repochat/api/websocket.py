"""Chat WebSocket with ConnectionManager, JWT auth, heartbeat, and Redis Pub/Sub."""
import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from repochat.dependencies import account_from_token, get_db, get_embedder, get_llm
from repochat.exceptions import AppException
from repochat.integrations.ai.embeddings import EmbeddingService
from repochat.integrations.ai.llm_client import LLMClient
from repochat.models.account import Account
from repochat.schemas.chat import ChatMessageRequest, ChatMessageResponse
from repochat.services import chat_service

logger = logging.getLogger(__name__)

router = APIRouter()

RECEIVE_TIMEOUT_SECONDS = 90
CHANNEL_PATTERN = "ws:account:*"


class ConnectionManager:
    """Per-account WebSocket connections with optional Redis Pub/Sub for multi-instance."""

    def __init__(self):
        # account_id -> list of active websockets
        self.active_connections: dict[str, list[WebSocket]] = {}
        self._pubsub = None
        self._listener_task: asyncio.Task | None = None

    async def connect(self, websocket: WebSocket, account_id: str):
        await websocket.accept()
        self.active_connections.setdefault(account_id, []).append(websocket)
        logger.info("WS connected: account=%s (total=%d)", account_id, self._total())

    async def disconnect(self, websocket: WebSocket, account_id: str):
        conns = self.active_connections.get(account_id, [])
        if websocket in conns:
            conns.remove(websocket)
        if not conns:
            self.active_connections.pop(account_id, None)
        logger.info("WS disconnected: account=%s (total=%d)", account_id, self._total())

    async def send_to_account(self, account_id: str, message: dict, exclude: WebSocket | None = None):
        """Send a message to the local connections of one account."""
        for ws in list(self.active_connections.get(account_id, [])):
            if ws is exclude:
                continue
            try:
                await ws.send_json(message)
            except Exception:
                logger.warning("Failed to send WS message to account %s", account_id)

    def is_online(self, account_id: str) -> bool:
        return bool(self.active_connections.get(account_id))

    def _total(self) -> int:
        return sum(len(v) for v in self.active_connections.values())

    # --- Redis Pub/Sub for cross-instance support ---

    async def start_redis_listener(self):
        try:
            from repochat.utils.redis_client import get_redis
            redis = await get_redis()
            self._pubsub = redis.pubsub()
            await self._pubsub.psubscribe(CHANNEL_PATTERN)
            self._listener_task = asyncio.create_task(self._redis_listener())
            logger.info("Redis Pub/Sub listener started for chat WebSocket")
        except Exception:
            logger.warning("Redis Pub/Sub unavailable, chat WebSocket limited to single instance")

    async def _redis_listener(self):
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "pmessage":
                    continue
                account_id = message["channel"].split(":")[-1]
                try:
                    envelope = json.loads(message["data"])
                except (json.JSONDecodeError, TypeError):
                    continue
                # messages published by this instance were already delivered locally
                if envelope.get("origin") == id(self):
                    continue
                await self.send_to_account(account_id, envelope["message"])
        except asyncio.CancelledError:
            logger.info("Redis Pub/Sub listener cancelled")
        except Exception:
            logger.warning("Redis Pub/Sub listener stopped", exc_info=True)

    async def stop_redis_listener(self):
        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
        if self._pubsub:
            await self._pubsub.punsubscribe(CHANNEL_PATTERN)
            await self._pubsub.close()
            self._pubsub = None

    async def publish_to_account(self, account_id: str, message: dict):
        """Deliver locally, then fan out to other instances via Redis."""
        await self.send_to_account(account_id, message)
        if self._pubsub is None:
            return
        try:
            from repochat.utils.redis_client import get_redis
            redis = await get_redis()
            await redis.publish(
                f"ws:account:{account_id}",
                json.dumps({"origin": id(self), "message": message}),
            )
        except Exception:
            logger.warning("Redis publish failed for account %s", account_id)


manager = ConnectionManager()


def _message_event(message) -> dict:
    return {
        "type": "chat:message",
        "data": ChatMessageResponse.model_validate(message).model_dump(mode="json"),
    }


async def _handle_chat_message(
    websocket: WebSocket,
    payload: dict,
    account: Account,
    db: AsyncSession,
    llm: LLMClient,
    embedder: EmbeddingService,
):
    account_key = str(account.id)
    try:
        request = ChatMessageRequest.model_validate(payload)
    except ValidationError:
        await websocket.send_json({"type": "chat:error", "data": {"message": "Invalid chat message"}})
        return

    try:
        user_message = await chat_service.post_user_message(db, account, request.text)
        await db.commit()
        await manager.publish_to_account(account_key, _message_event(user_message))

        reply = await chat_service.generate_reply(
            db,
            account,
            user_message,
            llm=llm,
            embedder=embedder,
            repo_id=request.repo_id,
            search_query=request.search_query,
        )
        await db.commit()
        await manager.publish_to_account(account_key, _message_event(reply))
    except AppException as exc:
        await db.rollback()
        logger.warning("Chat message failed for account %s: %s", account.id, exc.detail)
        await websocket.send_json({"type": "chat:error", "data": {"message": "Message could not be processed"}})


@router.websocket("/ws/chat")
async def chat_websocket(
    websocket: WebSocket,
    token: str = Query(...),
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
    embedder: EmbeddingService = Depends(get_embedder),
):
    """Chat channel for one account.

    Server events: ``chat:history`` on connect, ``chat:message`` for every new
    user and assistant message, ``chat:typing`` from the account's other
    connections, ``chat:error`` and ``pong``.
    Client events: ``chat:message`` ``{text, repo_id?, search_query?}``,
    ``chat:typing`` and ``ping`` (every 30s keeps the socket alive).
    """
    try:
        account = await account_from_token(db, token)
        await db.commit()
    except HTTPException as exc:
        await websocket.close(code=4001, reason=exc.detail)
        return

    account_key = str(account.id)
    await manager.connect(websocket, account_key)

    try:
        try:
            history = await chat_service.get_history(db, account.id)
            await websocket.send_json({
                "type": "chat:history",
                "data": [ChatMessageResponse.model_validate(m).model_dump(mode="json") for m in history],
            })
        except AppException:
            await websocket.send_json({"type": "chat:error", "data": {"message": "Chat history unavailable"}})

        while True:
            try:
                raw = await asyncio.wait_for(websocket.receive_text(), timeout=RECEIVE_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.info("WS timeout for account %s", account_key)
                await websocket.close(code=1000, reason="Timeout")
                break

            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue

            msg_type = msg.get("type")
            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif msg_type == "chat:typing":
                await manager.send_to_account(
                    account_key,
                    {"type": "chat:typing", "data": {"username": account.username}},
                    exclude=websocket,
                )
            elif msg_type == "chat:message":
                await _handle_chat_message(websocket, msg.get("data") or {}, account, db, llm, embedder)

    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for account %s", account_key)
    finally:
        await manager.disconnect(websocket, account_key)
