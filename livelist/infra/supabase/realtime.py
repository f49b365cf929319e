"""Supabase Realtime transport for the change feed"""
import logging
from typing import Any, Callable, Dict, Optional

from supabase import AsyncClient  # type: ignore

logger = logging.getLogger(__name__)

RawCallback = Callable[[Dict[str, Any]], None]


class RealtimeFeedTransport:
    """
    Thin wrapper over Supabase Realtime channels.

    Callbacks receive the raw payload dict exactly as the realtime client
    delivers it; normalisation happens in the change feed subscriber.
    """

    def __init__(self, client: AsyncClient, schema: str = "public"):
        self._client = client
        self._schema = schema

    async def subscribe_table(
        self,
        channel_name: str,
        table: str,
        workspace_id: Optional[str],
        callback: RawCallback,
    ) -> Any:
        """Subscribe to post-commit changes of one table

        The workspace filter is applied server-side where supported; the
        subscriber re-checks it locally.
        """
        channel = self._client.channel(channel_name)
        filter_expr = f"workspace_id=eq.{workspace_id}" if workspace_id else None
        channel.on_postgres_changes(
            "*",
            schema=self._schema,
            table=table,
            filter=filter_expr,
            callback=callback,
        )
        await channel.subscribe()
        logger.info(f"Subscribed to {table} changes on channel {channel_name}")
        return channel

    async def subscribe_broadcast(self, channel_name: str, event: str, callback: RawCallback) -> Any:
        """Subscribe to an advisory broadcast event"""
        channel = self._client.channel(channel_name)
        channel.on_broadcast(event, callback)
        await channel.subscribe()
        logger.info(f"Subscribed to broadcast '{event}' on channel {channel_name}")
        return channel

    async def broadcast(self, channel: Any, event: str, payload: Dict[str, Any]) -> None:
        """Send a broadcast message on an already subscribed channel"""
        await channel.send_broadcast(event, payload)

    async def unsubscribe(self, channel: Any) -> None:
        """Tear down a channel"""
        await self._client.remove_channel(channel)
