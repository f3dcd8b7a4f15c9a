from trike_dispatch.redis_client.publisher import SNAPSHOT_TTL, RedisChannelMirror

__all__ = ["RedisChannelMirror", "SNAPSHOT_TTL"]
