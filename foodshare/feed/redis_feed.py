from redis import Redis

from foodshare.feed.base import ChangeEvent, ChangeFeed, Subscription


class RedisSubscription(Subscription):

    def __init__(self, pubsub, channel, logger=None):
        self.pubsub = pubsub
        self.logger = logger
        self.pubsub.subscribe(channel)

    def get(self, timeout):
        message = self.pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        if not message or message.get('type') != 'message':
            return None
        try:
            return ChangeEvent.from_json(message['data'])
        except (ValueError, KeyError, TypeError) as e:
            # Skip payloads we cannot read rather than dropping the stream
            if self.logger:
                self.logger.warning(f'Ignoring malformed change event: {e}')
            return None

    def close(self):
        self.pubsub.close()


class RedisChangeFeed(ChangeFeed):
    """Redis pub/sub feed; works across worker processes."""

    def __init__(self, client, channel, logger=None):
        self.client = client
        self.channel = channel
        self.logger = logger

    @classmethod
    def from_url(cls, url, channel, logger=None):
        return cls(Redis.from_url(url), channel, logger=logger)

    def publish(self, event):
        self.client.publish(self.channel, event.to_json())

    def subscribe(self):
        return RedisSubscription(self.client.pubsub(), self.channel, logger=self.logger)
