"""
Response Language Resolution

Maps the configured response language to the one the LLM should answer in.
"auto" is resolved per entry using langdetect + Unicode script fallback.
"""

import re
from typing import Optional

from langdetect import DetectorFactory, detect_langs
from langdetect.lang_detect_exception import LangDetectException

from .schemas import ResponseLanguage

# Matches any Kana or CJK character
_JAPANESE_RE = re.compile(
    r'[\u3040-\u309F\u30A0-\u30FF\u3400-\u4DBF\u4E00-\u9FFF]'
)

# Seed langdetect for deterministic results
DetectorFactory.seed = 0


def _detect_script_language(text: str) -> Optional[ResponseLanguage]:
    """Japanese if a meaningful share of characters are Kana/CJK."""
    letters = [ch for ch in text if not ch.isspace() and ch not in '.,!?;:"\'-()[]{}']
    if not letters:
        return None
    japanese = sum(1 for ch in letters if _JAPANESE_RE.match(ch))
    if japanese > len(letters) * 0.15:
        return ResponseLanguage.JAPANESE
    return None


def detect_language(text: str) -> ResponseLanguage:
    """Detect which supported response language fits ``text``.

    Short texts (<10 chars) and anything that is not Japanese fall back to
    English.
    """
    if not text or not text.strip():
        return ResponseLanguage.ENGLISH

    cleaned = text.strip()
    script_lang = _detect_script_language(cleaned)

    if len(cleaned) < 10:
        return script_lang or ResponseLanguage.ENGLISH

    try:
        results = detect_langs(cleaned)
        if results:
            top = results[0]
            # langdetect misreads short Latin text as fr/nl/af; only trust
            # a Japanese verdict when the script agrees.
            if top.lang == "ja" and _JAPANESE_RE.search(cleaned):
                return ResponseLanguage.JAPANESE
            # Kanji-heavy Japanese is often reported as Chinese; the
            # script check decides
            return script_lang or ResponseLanguage.ENGLISH
    except LangDetectException:
        pass  # no detectable features, fall through

    return script_lang or ResponseLanguage.ENGLISH


def resolve_language(setting: str, content: str = "") -> ResponseLanguage:
    """Turn a configured language ("english", "japanese", "auto") into a
    concrete ResponseLanguage."""
    value = (setting or "english").lower()
    if value == "auto":
        return detect_language(content)
    try:
        return ResponseLanguage(value)
    except ValueError:
        return ResponseLanguage.ENGLISH
