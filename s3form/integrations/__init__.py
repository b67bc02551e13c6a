"""Integrations with third-party clients and frameworks."""
from .boto3_client import Boto3StorageClient, Boto3ClientConfig, MultipartHandle
from .aiohttp_form import receive_form, FormResult, FormError

__all__ = [
    'Boto3StorageClient',
    'Boto3ClientConfig',
    'MultipartHandle',
    'receive_form',
    'FormResult',
    'FormError',
]
