# autoshop/core/redis.py
import redis.asyncio as redis
from autoshop.core.config import settings

# Асинхронный клиент Redis. Соединение открывается лениво, при первой команде.
# decode_responses=True автоматически декодирует ответы из байтов в строки
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
