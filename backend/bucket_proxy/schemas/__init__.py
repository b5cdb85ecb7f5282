from bucket_proxy.schemas.storage import ObjectDescriptor

__all__ = [
    "ObjectDescriptor",
]
