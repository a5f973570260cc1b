import re

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"[\s\?\.\!:;,]+$")


def normalize_whitespace(text: str) -> str:
    """연속 공백/줄바꿈을 공백 하나로 축약"""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_question_text(text: str) -> str:
    """중복 문항 비교용 정규화 (대소문자, 공백, 끝 문장부호 무시)"""
    return _TRAILING_PUNCT_RE.sub("", normalize_whitespace(text).casefold())


def choice_key(text: str) -> str:
    """선택지 비교 키 (trim + 대소문자 무시)"""
    return normalize_whitespace(text).casefold()


def strip_code_fence(raw: str) -> str:
    """마크다운 코드 블록(```json ... ```) 제거"""
    result = raw.strip()
    if result.startswith("```json"):
        result = result[7:]
    elif result.startswith("```"):
        result = result[3:]
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


def truncate(text: str, limit: int) -> str:
    """프롬프트 길이 제한용 자르기"""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + " …"
