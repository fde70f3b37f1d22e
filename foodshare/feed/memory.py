import queue
import threading

from foodshare.feed.base import ChangeFeed, Subscription


class MemorySubscription(Subscription):

    def __init__(self, feed):
        self._feed = feed
        self.queue = queue.Queue()

    def get(self, timeout):
        try:
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self):
        self._feed._unsubscribe(self)


class MemoryChangeFeed(ChangeFeed):
    """In-process fan-out. Only reaches listeners served by the same worker process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = set()

    def publish(self, event):
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.queue.put(event)

    def subscribe(self):
        subscription = MemorySubscription(self)
        with self._lock:
            self._subscribers.add(subscription)
        return subscription

    def _unsubscribe(self, subscription):
        with self._lock:
            self._subscribers.discard(subscription)

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)
