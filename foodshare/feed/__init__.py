from flask import current_app

from foodshare.feed.base import ChangeEvent, ChangeFeed, Subscription, INSERT, UPDATE, DELETE
from foodshare.feed.memory import MemoryChangeFeed

_FEED_EXTENSION_KEY = 'change_feed'


def get_change_feed():
    """
    Return the change feed for the current app (singleton per app).
    Cached in current_app.extensions like the storage provider.
    """
    if _FEED_EXTENSION_KEY in current_app.extensions:
        return current_app.extensions[_FEED_EXTENSION_KEY]

    provider = current_app.config.get('CHANGE_FEED_PROVIDER', 'memory').lower()
    if provider == 'redis':
        from foodshare.feed.redis_feed import RedisChangeFeed
        feed = RedisChangeFeed.from_url(
            current_app.config['REDIS_URL'],
            current_app.config.get('CHANGE_FEED_CHANNEL', 'donations_channel'),
            logger=current_app.logger
        )
    else:
        feed = MemoryChangeFeed()

    current_app.logger.info(f'Change feed provider: {feed.__class__.__name__}')
    current_app.extensions[_FEED_EXTENSION_KEY] = feed
    return feed


__all__ = ['ChangeEvent', 'ChangeFeed', 'Subscription', 'INSERT', 'UPDATE', 'DELETE',
           'MemoryChangeFeed', 'get_change_feed']
