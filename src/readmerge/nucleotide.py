"""IUPAC nucleotide codes as 4-bit masks.

Bit 0 is A, bit 1 is C, bit 2 is G, bit 3 is T. An ambiguity letter is the
union of the bases it stands for. Anything unrecognised (including ``N``,
gaps and lowercase letters) is treated as "any base".
"""

from __future__ import annotations

from typing import Dict

A = 1
C = 2
G = 4
T = 8
ANY = A | C | G | T

_NUC2BITS: Dict[str, int] = {
    "A": A,
    "C": C,
    "G": G,
    "T": T,
    "M": A | C,
    "R": A | G,
    "W": A | T,
    "S": C | G,
    "Y": C | T,
    "K": G | T,
    "V": A | C | G,
    "H": A | C | T,
    "D": A | G | T,
    "B": C | G | T,
}

_BITS2NUC: Dict[int, str] = {bits: nuc for nuc, bits in _NUC2BITS.items()}


def nuc2bits(nuc: str) -> int:
    """Return the 4-bit mask for a nucleotide character."""
    return _NUC2BITS.get(nuc, ANY)


def bits2nuc(bits: int) -> str:
    """Return the IUPAC character for a mask; ``N`` for anything else."""
    return _BITS2NUC.get(bits, "N")


def bits2seq(masks) -> str:
    return "".join(bits2nuc(m) for m in masks)
