"""
Storage engine and partition tables
"""
from .connection import DatabaseManager
from .models import MetaObject, MetaUser, RequestVars, USERS_BUCKET, OBJECTS_BUCKET

__all__ = ['DatabaseManager', 'MetaObject', 'MetaUser', 'RequestVars',
           'USERS_BUCKET', 'OBJECTS_BUCKET']
