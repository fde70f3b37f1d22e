import os
import shutil
from flask import url_for, current_app
from werkzeug.security import safe_join

from foodshare.storage.base import StorageProvider


class LocalStorageProvider(StorageProvider):
    """Store files on the local filesystem under UPLOAD_FOLDER, served by main.uploaded_file."""

    def __init__(self, config):
        self.upload_folder = os.path.abspath(config.get('UPLOAD_FOLDER', 'static/uploads'))
        os.makedirs(self.upload_folder, exist_ok=True)

    def path_for(self, key: str) -> str:
        path = safe_join(self.upload_folder, key.lstrip('/'))
        if path is None:
            raise ValueError(f'Unsafe storage key: {key}')
        return path

    def save(self, key: str, file_path: str) -> str:
        current_app.logger.info(f'LocalStorage.save: key={key}, file_path={file_path}')
        dest_path = self.path_for(key)
        os.makedirs(os.path.dirname(dest_path), exist_ok=True)
        if os.path.abspath(file_path) != os.path.abspath(dest_path):
            shutil.copyfile(file_path, dest_path)
        return key

    def url_for(self, key: str) -> str:
        rel_path = key.lstrip('/')
        return url_for('main.uploaded_file', key=rel_path, _external=False)

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        # Raise when missing: callers log the failure as an orphan/cleanup warning
        os.remove(path)
        current_app.logger.info(f'LocalStorage.remove: deleted {key}')
