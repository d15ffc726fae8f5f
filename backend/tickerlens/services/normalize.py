import re
import unicodedata
from functools import lru_cache
from typing import List

_STOPWORDS = {
    "inc", "corporation", "corp", "co", "company", "plc", "sa", "nv", "ag", "se",
    "the", "ltd", "limited", "holdings", "holding", "group", "class",
}

# listing-form words: same company, different instrument wrapper
_LISTING_FORM_RE = re.compile(
    r"\b(sp|spon|sponsored|adr|ads|pref|preferred|share|shares|ordinary)\b"
)
_CLASS_KEY_RE = re.compile(r"\bclass[abc]\b")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_WS_RE = re.compile(r"\s+")

@lru_cache(maxsize=16384)
def unaccent(s: str) -> str:
    return unicodedata.normalize("NFKD", s or "").encode("ascii", "ignore").decode("ascii")

@lru_cache(maxsize=16384)
def tokenize(s: str) -> List[str]:
    s = _NON_ALNUM_RE.sub(" ", unaccent(s).lower())
    return [t for t in s.split() if t]

@lru_cache(maxsize=65536)
def simplify_name(name: str) -> str:
    """
    Lowercased, unaccented, corp suffixes dropped; "class a" kept as "classa".
    "Alibaba Group Holding Ltd" -> "alibaba"
    """
    toks = tokenize(name)
    out = []
    i = 0
    while i < len(toks):
        t = toks[i]
        if t in _STOPWORDS:
            if t == "class" and i + 1 < len(toks) and toks[i + 1] in {"a", "b", "c"}:
                out.append(f"class{toks[i + 1]}")
                i += 2
                continue
            i += 1
            continue
        out.append(t)
        i += 1
    return " ".join(out)

@lru_cache(maxsize=65536)
def company_key(name: str) -> str:
    """Identity of the issuer behind a listing; cross-listings share it."""
    s = _LISTING_FORM_RE.sub(" ", simplify_name(name))
    s = _CLASS_KEY_RE.sub(" ", s)
    s = _WS_RE.sub(" ", s).strip()
    return s or (name or "").strip().lower()

def trim_quotes(text: str) -> str:
    if not text:
        return ""
    s = text.strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in {'"', "'"}:
        return s[1:-1].strip()
    return s
