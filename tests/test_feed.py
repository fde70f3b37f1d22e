import json

from foodshare.feed import ChangeEvent, MemoryChangeFeed, get_change_feed, INSERT, UPDATE
from foodshare.feed.redis_feed import RedisChangeFeed


def test_memory_feed_fans_out_to_every_subscriber():
    feed = MemoryChangeFeed()
    first, second = feed.subscribe(), feed.subscribe()

    feed.publish(ChangeEvent(INSERT, 7, 'pending'))

    assert first.get(timeout=0.1) == ChangeEvent(INSERT, 7, 'pending')
    assert second.get(timeout=0.1) == ChangeEvent(INSERT, 7, 'pending')
    assert first.get(timeout=0.01) is None


def test_closed_subscription_stops_receiving():
    feed = MemoryChangeFeed()
    with feed.subscribe() as subscription:
        assert feed.subscriber_count == 1
    assert feed.subscriber_count == 0

    feed.publish(ChangeEvent(UPDATE, 1))
    assert subscription.get(timeout=0.01) is None


def test_event_json_payload():
    event = ChangeEvent(UPDATE, 3, 'accepted')
    assert json.loads(event.to_json()) == {'op': 'UPDATE', 'donation_id': 3, 'status': 'accepted'}
    assert ChangeEvent.from_json(event.to_json().encode('utf-8')) == event


class FakePubSub:

    def __init__(self, messages):
        self.messages = list(messages)
        self.channels = []
        self.closed = False

    def subscribe(self, channel):
        self.channels.append(channel)

    def get_message(self, ignore_subscribe_messages=True, timeout=0):
        return self.messages.pop(0) if self.messages else None

    def close(self):
        self.closed = True


class FakeRedis:

    def __init__(self, messages=()):
        self.published = []
        self.pubsub_instance = FakePubSub(messages)

    def publish(self, channel, payload):
        self.published.append((channel, payload))
        return 1

    def pubsub(self):
        return self.pubsub_instance


def test_redis_feed_publishes_json_on_channel():
    client = FakeRedis()
    feed = RedisChangeFeed(client, 'donations_channel')

    feed.publish(ChangeEvent(INSERT, 5, 'pending'))

    channel, payload = client.published[0]
    assert channel == 'donations_channel'
    assert ChangeEvent.from_json(payload) == ChangeEvent(INSERT, 5, 'pending')


def test_redis_subscription_reads_and_skips_bad_payloads():
    client = FakeRedis(messages=[
        {'type': 'message', 'data': b'not json'},
        {'type': 'message', 'data': ChangeEvent(UPDATE, 9, 'accepted').to_json().encode('utf-8')},
    ])
    feed = RedisChangeFeed(client, 'donations_channel')

    with feed.subscribe() as subscription:
        assert subscription.get(timeout=0.1) is None
        assert subscription.get(timeout=0.1) == ChangeEvent(UPDATE, 9, 'accepted')
        assert subscription.get(timeout=0.1) is None

    assert client.pubsub_instance.channels == ['donations_channel']
    assert client.pubsub_instance.closed


def test_app_uses_memory_feed_in_tests(app_ctx):
    feed = get_change_feed()
    assert isinstance(feed, MemoryChangeFeed)
    assert get_change_feed() is feed
