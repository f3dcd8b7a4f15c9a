"""Mirror of propagation events onto Redis pub/sub for cross-process push."""

import json
import logging

import redis
from redis.exceptions import ConnectionError

from trike_dispatch.pubsub.channels import ChannelEvent
from trike_dispatch.settings import RedisSettings

logger = logging.getLogger(__name__)

SNAPSHOT_TTL = 1800  # 30 minutes


class RedisChannelMirror:
    """Synchronous Redis publisher for propagation events.

    Every event is published on a Redis channel named after its topic and
    the latest payload per topic is kept under `snapshot:<topic>` so
    out-of-process observers can catch up on connect.
    Uses the sync Redis client to work from any thread, including the
    FastAPI worker threads that run lifecycle operations.
    """

    def __init__(self, client: "redis.Redis[str]") -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisChannelMirror":
        client = redis.Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            password=settings.password or None,
            decode_responses=True,
        )
        return cls(client)

    def publish(self, event: ChannelEvent) -> None:
        message = json.dumps(event.model_dump(mode="json"))
        try:
            self._client.publish(event.topic, message)
            self._client.setex(f"snapshot:{event.topic}", SNAPSHOT_TTL, message)
        except ConnectionError as e:
            logger.error("Failed to publish to channel %s: %s", event.topic, e)

    def close(self) -> None:
        self._client.close()
