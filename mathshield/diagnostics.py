"""Token diagnostics.

A transformation that mangles a token (escaping it, splitting it, dropping
it) cannot be detected while it runs. These helpers compare the text before
and after a transformation, and look for namespace markers left over after
restoration, so a broken page can be reported instead of silently shipped.
"""

from __future__ import annotations

import re

from mathshield.vault import DEFAULT_NAMESPACE, token_pattern


def extract_tokens(text: str, namespace: str = DEFAULT_NAMESPACE) -> list[str]:
    """Extract all well-formed tokens from text, in order."""
    return [m.group(0) for m in token_pattern(namespace).finditer(text)]


def count_tokens(text: str, namespace: str = DEFAULT_NAMESPACE) -> dict[str, int]:
    """Count well-formed tokens by category."""
    counts: dict[str, int] = {}
    for match in token_pattern(namespace).finditer(text):
        category = match.group("category")
        counts[category] = counts.get(category, 0) + 1
    return counts


def validate_tokens(protected: str, transformed: str, namespace: str = DEFAULT_NAMESPACE) -> list[str]:
    """Check that every token of the protected text survived the transformation.

    Returns:
        Tokens missing from `transformed` (empty if all present), in the
        order they appear in `protected`
    """
    survivors = set(extract_tokens(transformed, namespace))
    return [t for t in extract_tokens(protected, namespace) if t not in survivors]


def find_lost_tokens(text: str, namespace: str = DEFAULT_NAMESPACE) -> list[str]:
    """Find fragments of tokens still present in restored text.

    Anything starting with the namespace marker counts, including tokens that
    were partially rewritten (e.g. `mathjax::inline::ab&#58;&#58;1::M`).
    """
    marker = re.compile(re.escape(namespace) + r"::[^\s<>\"']*")
    return [m.group(0) for m in marker.finditer(text)]
