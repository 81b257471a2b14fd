from __future__ import annotations

import unicodedata
from types import MappingProxyType
from typing import Mapping

# Visually equivalent code points folded onto one ASCII representative.
PUNCT_EQUIV: Mapping[str, str] = MappingProxyType(
    {
        # Hyphens / dashes
        "\u2010": "-",
        "\u2011": "-",
        "\u2012": "-",
        "\u2013": "-",
        "\u2014": "-",
        "\u2212": "-",
        # Double quotes
        "\u201C": '"',
        "\u201D": '"',
        "\u201E": '"',
        "\u00AB": '"',
        "\u00BB": '"',
        # Single quotes
        "\u2018": "'",
        "\u2019": "'",
        "\u201B": "'",
        # Non-breaking / narrow spaces
        "\u00A0": " ",
        "\u202F": " ",
    }
)

_TRANSLATION = str.maketrans(dict(PUNCT_EQUIV))


def canon(s: str) -> str:
    """Normalize ``s`` to NFC and fold punctuation variants to ASCII."""
    return unicodedata.normalize("NFC", s).translate(_TRANSLATION)
