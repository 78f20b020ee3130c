"""
Content digests for generated documents.

The digest lets callers tell whether the document they received is the
one currently held in the artifact store, which may have been replaced
by a later request.

This module hashes bytes, and bytes only.
"""

import hashlib
from typing import Union


def compute_document_hash(document_bytes: Union[bytes, bytearray]) -> str:
    """
    Compute a deterministic, human-readable digest of document bytes.

    Returns:
        A SHA-256 hex digest with an explicit algorithm prefix.
        Example: ``SHA-256:3b7c0e4c...``
    """
    if not isinstance(document_bytes, (bytes, bytearray)):
        raise TypeError(
            "compute_document_hash expects bytes, "
            f"got {type(document_bytes).__name__}"
        )

    digest = hashlib.sha256(document_bytes).hexdigest()
    return f"SHA-256:{digest}"
