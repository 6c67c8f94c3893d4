# cool_ikigai/services/text_analyzer.py
"""
Text analysis for free-text Ikigai answers.

Pure functions only: keyword extraction, topic extraction, a lexicon-based
sentiment and a confidence score. No I/O, no state, deterministic output
for a given (text, context) pair.
"""
import re
from collections import Counter
from typing import Dict, List, Union

from cool_ikigai.models.flow_models import Domain, Sentiment, TextAnalysis

MAX_KEYWORDS = 5
MAX_TOPIC_WORDS = 6

# Bilingual stop words (French and English)
STOP_WORDS = {
    # fr
    "le", "la", "les", "un", "une", "des", "du", "de", "et", "ou", "en", "au", "aux",
    "ce", "cet", "cette", "ces", "mon", "ma", "mes", "ton", "ta", "tes", "son", "sa", "ses",
    "notre", "nos", "votre", "vos", "leur", "leurs", "je", "tu", "il", "elle", "nous",
    "vous", "ils", "elles", "on", "que", "qui", "quoi", "dont", "dans", "pour", "par",
    "sur", "avec", "sans", "pas", "plus", "très", "bien", "tout", "tous", "toute",
    "toutes", "est", "suis", "sont", "être", "avoir", "fait", "faire", "aime", "adore",
    "beaucoup", "aussi", "mais", "donc", "car", "comme", "quand", "moi", "toi", "lui",
    "cela", "ça", "peux", "peut", "veux", "sais", "vraiment", "chose", "choses",
    # en
    "the", "and", "for", "with", "you", "your", "are", "was", "were", "have", "has",
    "this", "that", "these", "those", "not", "but", "very", "really", "like", "love",
    "also", "just", "about", "from", "what", "when", "can", "could", "would", "enjoy",
    "things", "thing", "good",
}

POSITIVE_WORDS = [
    "aime", "adore", "passion", "heureux", "heureuse", "joie", "plaisir", "super",
    "génial", "formidable", "excellent", "content", "contente", "fier", "fière",
    "épanoui", "love", "enjoy", "happy", "great", "excited", "proud", "fun", "amazing",
]

NEGATIVE_WORDS = [
    "déteste", "ennui", "ennuie", "triste", "difficile", "peur", "stress", "fatigue",
    "nul", "horrible", "malheureux", "hate", "boring", "sad", "hard", "afraid",
    "tired", "awful", "bad",
]

# Trigger phrases per domain; the captured group is the topic phrase
TOPIC_PATTERNS: Dict[Domain, List[str]] = {
    Domain.PASSIONS: [
        r"j'aime (?:beaucoup |bien |vraiment )?",
        r"j'adore ",
        r"je suis passionn[ée]e? par ",
        r"ma passion,? c'est ",
        r"ma passion est ",
        r"je kiffe ",
        r"i love ",
        r"i enjoy ",
        r"i'm passionate about ",
        r"i am passionate about ",
    ],
    Domain.TALENTS: [
        r"je suis dou[ée]e? (?:pour|en|dans) ",
        r"je suis bonn?e? (?:en|pour|à|dans) ",
        r"je sais (?:bien )?",
        r"mon talent,? c'est ",
        r"je suis capable de ",
        r"on me dit que je ",
        r"i'm good at ",
        r"i am good at ",
        r"i'm skilled at ",
        r"i can ",
    ],
    Domain.WORLD_NEEDS: [
        r"le monde a besoin (?:de |d')",
        r"les gens ont besoin (?:de |d')",
        r"il faut ",
        r"je veux (?:améliorer|changer|protéger) ",
        r"aider (?:à |les |des )?",
        r"the world needs ",
        r"people need ",
        r"help (?:to )?",
    ],
    Domain.MONETIZATION: [
        r"(?:je peux|je pourrais) être payée? pour ",
        r"on me paie pour ",
        r"on me paye pour ",
        r"vendre ",
        r"travailler comme ",
        r"en tant que ",
        r"mon métier,? c'est ",
        r"i (?:can|could) get paid (?:for|to) ",
        r"i could sell ",
        r"work as ",
    ],
}

_PUNCTUATION = re.compile(r"[^\w\s]")
_PHRASE_END = re.compile(r"[.,;:!?\n]")

_COMPILED_PATTERNS: Dict[Domain, List[re.Pattern]] = {
    domain: [re.compile(trigger + r"(.+)") for trigger in triggers]
    for domain, triggers in TOPIC_PATTERNS.items()
}


def _normalize(text: str) -> str:
    return text.lower().replace("’", "'")


def extract_keywords(text: str) -> List[str]:
    """Top 5 content words by frequency, ties in first-seen order"""
    cleaned = _PUNCTUATION.sub(" ", _normalize(text))
    tokens = [t for t in cleaned.split() if len(t) > 2 and t not in STOP_WORDS]
    counts = Counter(tokens)
    first_seen = {}
    for index, token in enumerate(tokens):
        first_seen.setdefault(token, index)
    ranked = sorted(counts, key=lambda token: (-counts[token], first_seen[token]))
    return ranked[:MAX_KEYWORDS]


def detect_sentiment(text: str) -> Sentiment:
    """Lexicon count; negation is not handled"""
    lowered = _normalize(text)
    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)
    if positive > negative:
        return Sentiment.POSITIVE
    if negative > positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def extract_topics(text: str, context: Union[Domain, str]) -> List[str]:
    lowered = _normalize(text)
    topics: List[str] = []
    for pattern in _COMPILED_PATTERNS.get(context, []):
        for match in pattern.finditer(lowered):
            phrase = _PHRASE_END.split(match.group(1), maxsplit=1)[0]
            words = phrase.split()[:MAX_TOPIC_WORDS]
            if not words:
                continue
            topic = " ".join(words)
            if topic not in topics:
                topics.append(topic)
    if not topics:
        return extract_keywords(text)
    return topics


def score_confidence(text: str, topics: List[str]) -> float:
    return min(1.0, 0.5 * len(text) / 50 + 0.5 * len(topics) / 3)


def analyze(text: str, context: Union[Domain, str]) -> TextAnalysis:
    """
    Analyze one free-text answer.

    Args:
        text: The raw answer
        context: Domain the answer belongs to, selects the topic patterns

    Returns:
        TextAnalysis with keywords, topics, sentiment and confidence
    """
    if not text or not text.strip():
        return TextAnalysis()

    keywords = extract_keywords(text)
    topics = extract_topics(text, context)
    return TextAnalysis(
        keywords=keywords,
        topics=topics,
        sentiment=detect_sentiment(text),
        confidence=score_confidence(text, topics),
    )
