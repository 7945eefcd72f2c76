"""
LFS metadata store: object metadata and user credentials for a
large-object transfer service.
"""
from .database.models import MetaObject, MetaUser, RequestVars
from .metadata import MetadataStore

__version__ = "0.1.0"

__all__ = ['MetadataStore', 'MetaObject', 'MetaUser', 'RequestVars']
