import os
import boto3
from botocore.client import Config
from flask import current_app

from foodshare.storage.base import StorageProvider


class S3StorageProvider(StorageProvider):
    """S3-compatible storage (AWS S3 / MinIO). Buckets are private, so reads go through presigned URLs."""

    def __init__(self, config):
        self.bucket = config.get('BUCKET') or os.environ.get('BUCKET', '')
        self.endpoint = config.get('ENDPOINT') or os.environ.get('ENDPOINT', '')
        # Endpoint used in presigned URLs handed to browsers
        self.public_endpoint = config.get('PUBLIC_ENDPOINT') or self.endpoint
        self.region = config.get('REGION') or os.environ.get('REGION', 'auto')
        self.url_expires = int(config.get('S3_URL_EXPIRES') or 604800)
        access_key = config.get('ACCESS_KEY_ID') or os.environ.get('ACCESS_KEY_ID', '')
        secret_key = config.get('SECRET_ACCESS_KEY') or os.environ.get('SECRET_ACCESS_KEY', '')

        if not self.bucket:
            current_app.logger.error('BUCKET not configured')
            raise ValueError('BUCKET is required but not set. Please set BUCKET environment variable.')
        if not access_key or not secret_key:
            current_app.logger.error('S3 credentials not configured')
            raise ValueError('ACCESS_KEY_ID and SECRET_ACCESS_KEY are required for S3 storage.')

        use_ssl_config = config.get('S3_USE_SSL')
        if use_ssl_config is None or use_ssl_config == '':
            self.use_ssl = not self.endpoint or self.endpoint.lower().startswith('https')
        else:
            self.use_ssl = str(use_ssl_config).lower() in ('true', '1', 'yes')

        current_app.logger.info(
            f'S3StorageProvider initialized: bucket={self.bucket}, endpoint={self.endpoint or "aws"}, '
            f'public_endpoint={self.public_endpoint or "aws"}, region={self.region}, use_ssl={self.use_ssl}'
        )

        client_config = Config(
            signature_version='s3v4',
            connect_timeout=30,
            read_timeout=60,
            retries={'max_attempts': 3}
        )
        self.client = boto3.client(
            's3',
            endpoint_url=self.endpoint or None,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=self.region,
            use_ssl=self.use_ssl,
            config=client_config
        )

        if self.public_endpoint and self.public_endpoint != self.endpoint:
            self.public_client = boto3.client(
                's3',
                endpoint_url=self.public_endpoint,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=self.region,
                use_ssl=self.public_endpoint.lower().startswith('https'),
                config=Config(signature_version='s3v4', s3={'addressing_style': 'path'})
            )
        else:
            self.public_client = self.client

    def save(self, key: str, file_path: str) -> str:
        current_app.logger.info(f'S3Storage.save: key={key}, file_path={file_path}')
        if not os.path.exists(file_path):
            raise FileNotFoundError(f'File not found: {file_path}')

        try:
            self.client.upload_file(file_path, self.bucket, key)
        except Exception as e:
            current_app.logger.error(f'S3Storage.save: Error uploading {key}: {e}', exc_info=True)
            raise
        current_app.logger.info(f'S3Storage: uploaded s3://{self.bucket}/{key}')
        return key

    def url_for(self, key: str) -> str:
        """Presigned GET URL for key; signing is local, no network call is made."""
        normalized_key = key.lstrip('/')
        url = self.public_client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket, 'Key': normalized_key},
            ExpiresIn=self.url_expires
        )
        if not url:
            raise ValueError(f'Failed to generate presigned URL for {key}')
        return url

    def remove(self, key: str) -> None:
        normalized_key = key.lstrip('/')
        try:
            self.client.delete_object(Bucket=self.bucket, Key=normalized_key)
        except Exception as e:
            current_app.logger.error(f'S3Storage.remove: Error deleting {key}: {e}', exc_info=True)
            raise
        current_app.logger.info(f'S3Storage: deleted s3://{self.bucket}/{normalized_key}')
