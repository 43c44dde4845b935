# app/catalog/ipn.py

from __future__ import annotations

# Prefixes reserved for parts that may carry their own BOM.
ASSEMBLY_PREFIXES: tuple[str, ...] = ("PCA-", "ASY-")


def is_assembly_ipn(ipn: str) -> bool:
    """
    True when `ipn` follows the assembly naming convention.

    Matching is case-insensitive: "pca-001" is an assembly just like "PCA-001".
    """
    return ipn.strip().upper().startswith(ASSEMBLY_PREFIXES)
