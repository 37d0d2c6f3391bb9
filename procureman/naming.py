"""
Material name normalization — isolated, testable, reusable.

Materials are matched by name at receipt time. The canonical form folds
case, accents and repeated whitespace so that "Cemento", "cemento " and
"CEMENTÓ" land on the same key.

Examples:
    normalize_name("Fierro  Estriado 8mm")  # "fierro estriado 8mm"
    normalize_name("Ferretería")            # "ferreteria"
"""

import unicodedata


def normalize_name(value: str) -> str:
    """
    Canonical key for a material name.

    Args:
        value: Free-text material name

    Returns:
        Case-folded, accent-stripped name with single spaces
    """
    decomposed = unicodedata.normalize('NFKD', value or '')
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return ' '.join(stripped.casefold().split())


def same_material(a: str, b: str) -> bool:
    """True if both names normalize to the same key."""
    return normalize_name(a) == normalize_name(b)
