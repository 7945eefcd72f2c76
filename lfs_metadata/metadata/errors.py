"""
Metadata store error taxonomy
"""


class MetaStoreError(Exception):
    """Base class for every error raised by the metadata store"""


class AuthError(MetaStoreError):
    """Credential failed authentication; raised before any store access"""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class BucketNotFound(MetaStoreError):
    """A required partition is missing from the store"""

    def __init__(self, bucket: str):
        self.bucket = bucket
        super().__init__(f"Bucket not found: {bucket}")


class ObjectNotFound(MetaStoreError):
    """The requested oid has no record"""

    def __init__(self, oid: str):
        self.oid = oid
        super().__init__(f"Object not found: {oid}")


class CodecError(MetaStoreError):
    """Stored value could not be encoded or decoded"""


class EncodeError(CodecError):
    pass


class DecodeError(CodecError):
    pass


class StoreUnavailable(MetaStoreError):
    """The backing file could not be opened or locked, or the store is closed"""
