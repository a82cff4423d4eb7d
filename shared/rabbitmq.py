import logging

import aio_pika

EXCHANGE_NAME = "domain_events"

logger = logging.getLogger(__name__)


class RabbitPublisher:
    """
    Publishes domain events to the ``domain_events`` topic exchange.

    Without a URL every call is a no-op. ``publish`` reports failure through
    its return value; only ``connect`` raises, so startup can decide what to
    do about a missing broker.
    """

    def __init__(self, url: str | None, service_name: str = "psw-service"):
        self.url = url
        self.service_name = service_name
        self.enabled = bool(url)
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def connected(self) -> bool:
        return self._exchange is not None and self._connection is not None and not self._connection.is_closed

    def _forget(self):
        self._connection = None
        self._exchange = None

    async def connect(self):
        if not self.enabled or self.connected:
            return

        try:
            self._connection = await aio_pika.connect_robust(self.url)
            channel = await self._connection.channel()
            self._exchange = await channel.declare_exchange(
                EXCHANGE_NAME,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
        except Exception as e:
            logger.warning("[%s] broker connect failed: %s", self.service_name, e)
            self._forget()
            raise
        logger.info("[%s] publishing to exchange %s", self.service_name, EXCHANGE_NAME)

    async def publish(self, routing_key: str, message_body: str) -> bool:
        if not self.enabled:
            return False

        try:
            await self.connect()
        except Exception:
            return False

        message = aio_pika.Message(
            body=message_body.encode("utf-8"),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            app_id=self.service_name,
        )
        try:
            await self._exchange.publish(message, routing_key=routing_key)
        except Exception as e:
            logger.warning("[%s] dropped %s event: %s", self.service_name, routing_key, e)
            return False
        logger.debug("[%s] published %s", self.service_name, routing_key)
        return True

    async def close(self):
        try:
            if self._connection and not self._connection.is_closed:
                await self._connection.close()
        finally:
            self._forget()
