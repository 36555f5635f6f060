"""Custom exceptions for the cache and usage-analytics layer

This module defines the exception hierarchy:
- Base exception for all cache-layer errors
- Store errors (connectivity, timeout, decoding) that the store adapter
  converts into fail-open results
- Projection input errors that are surfaced to the caller

All exceptions inherit from CacheLayerError to allow catching all
cache-related errors in a single except block when needed.
"""


class CacheLayerError(Exception):
    """Base exception for all cache-layer errors

    Use this to catch any error raised by this package:
    ```python
    try:
        projection = engine.project(daily_cost)
    except CacheLayerError as e:
        logger.error("projection_failed", error=str(e))
    ```
    """

    pass


class StoreError(CacheLayerError):
    """Base for failures talking to the backing key-value store

    Never escapes the store adapter. The adapter maps each subclass to a
    StoreErrorKind and degrades the operation to a miss or no-op.
    """

    pass


class StoreUnavailable(StoreError):
    """Backing store could not be reached

    Raised when:
    - Connection refused or reset
    - Authentication rejected
    - Client not configured
    """

    pass


class StoreTimeout(StoreError):
    """Store operation exceeded its time bound"""

    pass


class SerializationError(StoreError):
    """Stored value could not be decoded back to its original shape

    Raised when:
    - Stored payload is not valid JSON
    - JSON does not validate against the expected cached model
    - Value cannot be encoded to JSON on write
    """

    pass


class ProjectionInputInvalid(CacheLayerError):
    """Projection input is negative or not a finite number

    Cost saved can never be negative by construction, so this indicates
    an upstream bug rather than an environmental fault and is raised to
    the caller.
    """

    pass


class ConfigValidationError(CacheLayerError):
    """Configuration validation failed"""

    pass
