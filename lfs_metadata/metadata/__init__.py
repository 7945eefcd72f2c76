"""
Object Metadata and Credential Store
"""
from .store import MetadataStore
from .errors import (
    MetaStoreError, AuthError, BucketNotFound, ObjectNotFound,
    CodecError, EncodeError, DecodeError, StoreUnavailable,
)

__all__ = ['MetadataStore', 'MetaStoreError', 'AuthError', 'BucketNotFound',
           'ObjectNotFound', 'CodecError', 'EncodeError', 'DecodeError',
           'StoreUnavailable']
