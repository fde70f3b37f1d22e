from flask import current_app

from foodshare.storage.local import LocalStorageProvider

# Key for storing storage provider in Flask app extensions
_STORAGE_EXTENSION_KEY = 'storage_provider'


def get_storage():
    """
    Return storage provider based on configuration (singleton per app).
    The provider is cached in current_app.extensions to avoid recreating it.
    """
    if _STORAGE_EXTENSION_KEY in current_app.extensions:
        return current_app.extensions[_STORAGE_EXTENSION_KEY]

    provider = current_app.config.get('STORAGE_PROVIDER', 'local').lower()
    current_app.logger.info(f'Storage provider requested: {provider} (creating new instance)')

    if provider == 's3':
        # boto3 is only imported when S3 is actually configured
        from foodshare.storage.s3 import S3StorageProvider
        storage_instance = S3StorageProvider(current_app.config)
    else:
        storage_instance = LocalStorageProvider(current_app.config)

    current_app.extensions[_STORAGE_EXTENSION_KEY] = storage_instance
    current_app.logger.debug(f'Storage provider cached: {storage_instance.__class__.__name__}')

    return storage_instance
