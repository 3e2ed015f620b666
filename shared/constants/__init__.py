from .environments import Environment
from .redis_keys import RedisKeys
from .sources import Sources

__all__ = ["Environment", "RedisKeys", "Sources"]
