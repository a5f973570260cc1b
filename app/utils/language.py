"""언어 코드 정규화 및 간단한 언어 판별 휴리스틱

판별은 불용어 빈도 기반의 품질 점검용이며 정확한 언어 감지기가 아님
"""
import re
from collections import Counter

LANGUAGE_NAMES: dict[str, str] = {
    "ro": "Romanian (limba română)",
    "en": "English",
    "fr": "French (français)",
    "de": "German (Deutsch)",
    "es": "Spanish (español)",
    "it": "Italian (italiano)",
    "hu": "Hungarian (magyar)",
}

STOPWORDS: dict[str, frozenset[str]] = {
    "ro": frozenset({
        "și", "si", "să", "sa", "în", "este", "sunt", "care", "pentru", "din", "cu", "pe",
        "nu", "mai", "sau", "ce", "al", "ale", "lui", "fost", "această", "acest", "cel",
        "cea", "cele", "fi", "unei", "unui", "prin", "către", "dintre", "căror", "căruia",
        "dar", "doar", "când", "atunci", "poate", "fiecare", "toate", "între", "despre",
    }),
    "en": frozenset({
        "the", "of", "and", "is", "are", "which", "what", "to", "in", "that", "for", "with",
        "by", "from", "this", "these", "was", "were", "be", "an", "following", "does", "not",
        "it", "its", "as", "on", "at", "most", "how", "why", "when", "who",
    }),
    "fr": frozenset({
        "le", "la", "les", "des", "est", "et", "une", "du", "que", "qui", "dans", "pour",
        "sur", "pas", "avec", "sont", "ce", "cette", "quelle", "quel", "suivantes", "au",
        "aux", "par", "ou",
    }),
    "de": frozenset({
        "der", "die", "das", "und", "ist", "nicht", "ein", "eine", "welche", "welcher",
        "mit", "von", "zu", "den", "dem", "des", "sich", "auf", "für", "im", "sind", "wird",
        "oder", "auch", "wie",
    }),
    "es": frozenset({
        "el", "los", "las", "es", "y", "una", "del", "que", "cuál", "cual", "en", "por",
        "para", "con", "son", "se", "su", "lo", "como", "más", "pero", "siguientes",
    }),
    "it": frozenset({
        "il", "lo", "gli", "della", "delle", "di", "è", "e", "che", "quale", "per", "con",
        "sono", "una", "del", "nel", "nella", "non", "si", "come", "dei", "seguenti",
    }),
    "hu": frozenset({
        "a", "az", "és", "hogy", "nem", "egy", "van", "mi", "melyik", "mely", "ez", "azt",
        "meg", "volt", "vagy", "csak", "már", "mint", "kell", "következő", "is",
    }),
}

_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)

# 판별에 필요한 최소 불용어 적중 수
MIN_EVIDENCE = 8


def normalize_language(value: str | None, supported: list[str], default: str) -> str:
    """언어 코드 정규화 ('ro-RO' -> 'ro'), 미지원 코드는 기본 언어로 대체"""
    if not value:
        return default
    code = value.strip().lower().replace("_", "-").split("-")[0]
    return code if code in supported else default


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def stopword_counts(text: str) -> Counter:
    """언어별 불용어 적중 수"""
    counts: Counter = Counter()
    for word in _WORD_RE.findall(text.casefold()):
        for code, words in STOPWORDS.items():
            if word in words:
                counts[code] += 1
    return counts


def detect_language_mismatch(text: str, expected: str) -> str | None:
    """텍스트가 명백히 다른 언어로 보이면 그 언어 코드를 반환, 아니면 None

    근거가 부족하거나 expected 언어의 불용어 목록이 없으면 판단하지 않음
    """
    if expected not in STOPWORDS:
        return None
    counts = stopword_counts(text)
    expected_hits = counts.get(expected, 0)
    others = [(code, hits) for code, hits in counts.most_common() if code != expected]
    if not others:
        return None
    best_code, best_hits = others[0]
    if best_hits >= MIN_EVIDENCE and best_hits > 2 * expected_hits:
        return best_code
    return None
