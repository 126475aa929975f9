"""
Text normalization for concept extraction.

Strips the structure that transcripts and notes carry around the actual prose
(speaker labels, markdown markers, timestamps) and owns the token-level
vocabulary filters (stopwords, pronouns, interjections, structural labels)
used by statistical extraction and relation evidence.
"""

import re
from typing import Iterable, List, Pattern, Set, Tuple

# Speaker-label prefixes, English and Japanese, optionally quote-marked.
SPEAKER_LABEL_PATTERNS: List[Pattern] = [
    re.compile(
        r"(?:>\s*)?\b(?i:speaker|participant|interviewer|interviewee|respondent|moderator)"
        r"(?:\s*(?:\d+|[A-Za-z])\b)?\s*[:：]"
    ),
    re.compile(r"(?:>\s*)?話者\s*\d+\s*[:：]"),
    re.compile(r"(?:>\s*)?発言者\s*[A-Z]\s*[:：]"),
]

# (pattern, replacement) pairs; inline markers keep their text, code blocks are dropped.
MARKDOWN_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"```.*?```", re.DOTALL), " "),
    (re.compile(r"^[ \t]*(?:>[ \t]*)+", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE), ""),
    (re.compile(r"\*\*([^*\n]+)\*\*"), r"\1"),
    (re.compile(r"__([^_\n]+)__"), r"\1"),
    (re.compile(r"\*([^*\n]+)\*"), r"\1"),
    (re.compile(r"(?<!\w)_([^_\n]+)_(?!\w)"), r"\1"),
    (re.compile(r"`([^`\n]+)`"), r"\1"),
]

DATETIME_PATTERNS: List[Pattern] = [
    re.compile(r"\d{4}年\d{1,2}月\d{1,2}日"),
    re.compile(r"\d{1,2}時\d{1,2}分"),
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}(?:[T ]\d{1,2}:\d{2}(?::\d{2})?)?\b"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\[?\b\d{1,2}:\d{1,2}(?::\d{1,2})?\b\]?"),
]

# Characters outside word characters, whitespace and the kana/kanji ranges become separators.
TOKEN_SEPARATOR_PATTERN = re.compile(r"[^\w\s\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF]")
LATIN_ONLY_PATTERN = re.compile(r"^[a-zA-Z]+$")
NUMERIC_PATTERN = re.compile(r"^\d+$")

STOPWORDS: Set[str] = {
    # Japanese particles and fillers
    "の", "は", "が", "を", "に", "で", "と", "から", "まで", "より", "へ",
    "こと", "もの", "とき", "とこ", "そう", "よう", "ため", "ところ", "など",
    "ちょっと", "なんか", "だから", "でも", "けど", "まあ", "あと", "それで",
    # English function words long enough to survive the length filters
    "about", "after", "also", "because", "been", "before", "being", "could",
    "does", "each", "even", "from", "have", "here", "into", "just", "like",
    "more", "most", "much", "only", "other", "over", "really", "same", "should",
    "some", "such", "than", "that", "their", "them", "then", "there", "these",
    "they", "thing", "things", "think", "this", "those", "very", "want", "were",
    "what", "when", "where", "which", "while", "will", "with", "would", "your",
    "yeah", "okay",
}

PRONOUNS: Set[str] = {
    "これ", "それ", "あれ", "どれ", "ここ", "そこ", "あそこ", "どこ",
    "ourselves", "themselves", "yourself", "myself", "itself", "someone", "everyone",
}

INTERJECTIONS: Set[str] = {
    "うん", "はい", "ええ", "いえ", "そう", "なるほど", "へえ",
    "hmm", "uhm", "umm", "well", "right",
}

# Speaker, ordinal and meta-descriptor words that describe the document, not the topic.
STRUCTURAL_LABEL_PATTERNS: List[Pattern] = [
    re.compile(r"話者\d*|発言者[A-Z]*"),
    re.compile(r"第\d+|番目|回目|\d+目|時点|段階"),
    re.compile(r"項目|要素|部分|箇所|個所|事項"),
    re.compile(r"内容|情報|データ|詳細|説明|記述"),
    # Latin labels match whole tokens only
    re.compile(r"^(?:speaker|participant|stage|step)\d*$|^part\d+$", re.IGNORECASE),
    re.compile(r"^(?:item|section|detail|content|info)s?$", re.IGNORECASE),
]

# Particles dropped when comparing labels for shared keywords.
EVIDENCE_STOPWORDS: Set[str] = {"の", "は", "が", "を", "に", "で", "と", "から", "まで", "the", "and", "for"}

_HORIZONTAL_WHITESPACE = re.compile(r"[ \t\u3000]+")


def _normalize_once(text: str) -> str:
    cleaned = text
    for pattern, replacement in MARKDOWN_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)
    for pattern in SPEAKER_LABEL_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    for pattern in DATETIME_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)

    lines = []
    for line in cleaned.splitlines():
        line = _HORIZONTAL_WHITESPACE.sub(" ", line).strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


def normalize_text(text: str) -> str:
    """
    Remove speaker labels, markdown markers and date/time tokens.

    Passes repeat until the text stops changing, so normalizing already
    normalized text returns it unchanged.
    """
    if not text:
        return ""

    current = str(text)
    while True:
        cleaned = _normalize_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned


def word_tokens(text: str) -> List[str]:
    """Lowercase word-like tokens, keeping kana and kanji runs intact."""
    lowered = TOKEN_SEPARATOR_PATTERN.sub(" ", (text or "").lower())
    return lowered.split()


def is_valid_token(word: str) -> bool:
    if len(word) < 2 or len(word) > 20:
        return False
    if NUMERIC_PATTERN.match(word):
        return False
    if LATIN_ONLY_PATTERN.match(word) and len(word) < 4:
        return False
    return word not in STOPWORDS


def is_semantically_meaningful(word: str) -> bool:
    if word in PRONOUNS or word in INTERJECTIONS:
        return False
    return len(word) >= 2


def is_structural_label(word: str) -> bool:
    return any(pattern.search(word) for pattern in STRUCTURAL_LABEL_PATTERNS)


def split_sentences(text: str) -> List[str]:
    parts = re.split(r"(?<=[.!?。！？])\s+|\n+", text or "")
    return [part.strip() for part in parts if part and part.strip()]


def whitespace_tokens(text: str) -> List[str]:
    return (text or "").lower().split()


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Jaccard index over whitespace-separated lowercase tokens."""
    tokens_a = set(whitespace_tokens(text_a))
    tokens_b = set(whitespace_tokens(text_b))
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def common_keywords(text_a: str, text_b: str) -> List[str]:
    """Tokens of ``text_a`` that also appear in ``text_b``, ignoring particles and short words."""
    tokens_b = set(whitespace_tokens(text_b))
    shared = []
    for token in whitespace_tokens(text_a):
        if token in tokens_b and len(token) > 2 and token not in EVIDENCE_STOPWORDS and token not in shared:
            shared.append(token)
    return shared


class TextNormalizer:
    """Joins cluster documents into one normalized text and tokenizes it for counting."""

    def __init__(self, extra_stopwords: Iterable[str] = ()):
        self.extra_stopwords = {word.lower() for word in extra_stopwords}

    def normalize(self, text: str) -> str:
        return normalize_text(text)

    def document_text(self, title: str, content: str) -> str:
        return f"{title or ''} {content or ''}".strip()

    def normalize_documents(self, documents) -> str:
        raw = "\n".join(self.document_text(doc.title, doc.content) for doc in documents)
        return self.normalize(raw)

    def candidate_tokens(self, normalized_text: str) -> List[str]:
        """Tokens that pass the length, numeric, Latin-fragment and stopword filters."""
        return [
            token
            for token in word_tokens(normalized_text)
            if is_valid_token(token) and token not in self.extra_stopwords
        ]
