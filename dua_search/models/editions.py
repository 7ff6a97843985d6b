"""Hadith editions available in the search backend."""

from typing import Final

HADITH_EDITIONS: Final[tuple[str, ...]] = (
    "eng-bukhari",
    "eng-muslim",
    "eng-abudawud",
    "eng-tirmidhi",
    "eng-nasai",
    "eng-ibnmajah",
    "eng-malik",
    "eng-nawawi",
    "eng-qudsi",
    "eng-dehlawi",
)

EDITION_LABELS: Final[dict[str, str]] = {
    "eng-bukhari": "Sahih Bukhari",
    "eng-muslim": "Sahih Muslim",
    "eng-abudawud": "Sunan Abu Dawud",
    "eng-tirmidhi": "Jami At Tirmidhi",
    "eng-nasai": "Sunan an-Nasai",
    "eng-ibnmajah": "Sunan Ibn Majah",
    "eng-malik": "Muwatta Malik",
    "eng-nawawi": "Forty Hadith Nawawi",
    "eng-qudsi": "Forty Hadith Qudsi",
    "eng-dehlawi": "Forty Hadith Dehlawi",
}


def is_valid_edition(edition: str | None) -> bool:
    """Empty or None means "all editions" and is always valid."""
    if not edition:
        return True
    return edition in HADITH_EDITIONS
