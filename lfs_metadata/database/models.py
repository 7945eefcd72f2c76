"""
Partition tables and metadata records

Each partition of the store is one table with a key/value contract:
`users` maps a user name to a password digest, `objects` maps an oid
to its encoded MetaObject.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import Column, String, LargeBinary
from sqlalchemy.orm import declarative_base

Base = declarative_base()

USERS_BUCKET = "users"
OBJECTS_BUCKET = "objects"


class UserRecord(Base):
    __tablename__ = USERS_BUCKET

    name = Column(String, primary_key=True, doc="User name")
    value = Column(LargeBinary, nullable=False, doc="Salted password digest")


class ObjectRecord(Base):
    __tablename__ = OBJECTS_BUCKET

    oid = Column(String, primary_key=True, doc="Content identifier")
    value = Column(LargeBinary, nullable=False, doc="Encoded MetaObject")


@dataclass
class MetaObject:
    """A tracked large object. `existing` is never persisted."""
    oid: str
    size: int
    existing: bool = False


@dataclass
class MetaUser:
    """A registered credential holder"""
    name: str


@dataclass
class RequestVars:
    """Request descriptor built by transfer handlers"""
    oid: str
    size: int = 0
    authorization: str = ""
    user: Optional[str] = None
    repo: Optional[str] = None
