import hashlib
import json
from typing import Any, Mapping

# Opaque order identifier: hex content hash of the signed order.
OrderFingerprint = str


def fingerprint_of(order_fields: Mapping[str, Any]) -> OrderFingerprint:
    """
    Hashes the canonical JSON form of an order. Key order does not matter.
    """
    canonical = json.dumps(order_fields, sort_keys=True, separators=(",", ":"), default=str)
    return "0x" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def pair_id_of(fingerprint_a: OrderFingerprint, fingerprint_b: OrderFingerprint) -> str:
    return "0x" + hashlib.sha256((fingerprint_a + fingerprint_b).encode("utf-8")).hexdigest()
