"""
Normalization of declared document languages to two-letter codes.
"""

import re

# Deprecated ISO 639-1 codes and common ISO 639-2 codes mapped to current codes
LANGUAGE_ALIASES = {
    "iw": "he",
    "in": "id",
    "ji": "yi",
    "jw": "jv",
    "mo": "ro",
    "sh": "sr",
    "ara": "ar",
    "chi": "zh",
    "zho": "zh",
    "cze": "cs",
    "ces": "cs",
    "dan": "da",
    "dut": "nl",
    "nld": "nl",
    "eng": "en",
    "fin": "fi",
    "fre": "fr",
    "fra": "fr",
    "ger": "de",
    "deu": "de",
    "gre": "el",
    "ell": "el",
    "heb": "he",
    "hin": "hi",
    "hun": "hu",
    "ita": "it",
    "jpn": "ja",
    "kor": "ko",
    "nor": "no",
    "nob": "nb",
    "pol": "pl",
    "por": "pt",
    "rus": "ru",
    "spa": "es",
    "swe": "sv",
    "tur": "tr",
    "ukr": "uk",
    "vie": "vi",
}

SUPPORTED_LANGUAGES = frozenset({
    "af", "ar", "bg", "bn", "ca", "cs", "cy", "da", "de", "el",
    "en", "eo", "es", "et", "eu", "fa", "fi", "fr", "ga", "gl",
    "he", "hi", "hr", "hu", "hy", "id", "is", "it", "ja", "jv",
    "ka", "kk", "ko", "la", "lt", "lv", "mk", "ms", "mt", "nb",
    "nl", "nn", "no", "pl", "pt", "ro", "ru", "sk", "sl", "sq",
    "sr", "sv", "sw", "ta", "th", "tr", "uk", "ur", "vi", "yi",
    "zh",
})

SUBTAG_SEPARATOR = re.compile(r"[-_]")


def normalize_language(declared: str) -> str:
    """
    Reduce a declared language (``en-GB``, ``pt_BR``, ``ENG``) to a supported
    two-letter code, or an empty string when unknown or unsupported.
    """
    if not declared:
        return ""

    primary = SUBTAG_SEPARATOR.split(declared.strip(), maxsplit=1)[0].lower()
    primary = LANGUAGE_ALIASES.get(primary, primary)

    if primary not in SUPPORTED_LANGUAGES:
        return ""
    return primary
