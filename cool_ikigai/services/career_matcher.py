# cool_ikigai/services/career_matcher.py
"""
Career suggestions from aggregated Ikigai keywords.

A fixed, ordered category table is scored against the keyword lists of the
four domains. Passion and talent overlaps weigh more than world-need and
monetization overlaps.
"""
from dataclasses import dataclass
from typing import Iterable, List, Sequence

PASSION_TALENT_WEIGHT = 3
NEED_MONETIZATION_WEIGHT = 2
MAX_CATEGORIES = 3
CAREERS_PER_CATEGORY = 2
MAX_SUGGESTIONS = 4


@dataclass(frozen=True)
class CareerCategory:
    name: str
    keywords: Sequence[str]
    careers: Sequence[str]


# Declaration order breaks score ties
CAREER_CATEGORIES: List[CareerCategory] = [
    CareerCategory(
        name="creative",
        keywords=("art", "dessin", "musique", "peinture", "design", "créa", "écri",
                  "photo", "film", "music", "draw", "paint", "writ"),
        careers=("Designer graphique", "Illustrateur·rice", "Musicien·ne", "Directeur·rice artistique"),
    ),
    CareerCategory(
        name="technology",
        keywords=("informatique", "programm", "code", "logiciel", "ordinateur", "technolog",
                  "données", "computer", "software", "data", "web"),
        careers=("Développeur·se logiciel", "Data scientist", "Chef·fe de projet digital"),
    ),
    CareerCategory(
        name="education",
        keywords=("enseign", "apprendre", "expliquer", "former", "école", "éducation",
                  "transmettre", "enfant", "teach", "learn"),
        careers=("Enseignant·e", "Formateur·rice", "Coach pédagogique"),
    ),
    CareerCategory(
        name="health",
        keywords=("santé", "soign", "médecin", "bien-être", "sport", "écoute",
                  "psycholog", "health", "care"),
        careers=("Infirmier·ère", "Coach bien-être", "Psychologue"),
    ),
    CareerCategory(
        name="environment",
        keywords=("nature", "environnement", "écolog", "climat", "planète", "animaux",
                  "jardin", "durable", "environment", "climate"),
        careers=("Chargé·e de mission environnement", "Paysagiste", "Ingénieur·e en énergies renouvelables"),
    ),
    CareerCategory(
        name="business",
        keywords=("vendre", "vente", "commerce", "entreprise", "gestion", "argent",
                  "négoci", "marketing", "business", "sell", "manage", "finance"),
        careers=("Entrepreneur·e", "Responsable marketing", "Consultant·e"),
    ),
    CareerCategory(
        name="social",
        keywords=("social", "communauté", "solidarité", "associat", "bénévol", "justice",
                  "inclusion", "aider", "gens", "humain", "people", "help"),
        careers=("Éducateur·rice spécialisé·e", "Chargé·e de projet associatif", "Médiateur·rice"),
    ),
    CareerCategory(
        name="communication",
        keywords=("parler", "communic", "langue", "journal", "raconter", "histoire",
                  "média", "speak"),
        careers=("Journaliste", "Chargé·e de communication", "Traducteur·rice"),
    ),
    CareerCategory(
        name="crafts",
        keywords=("cuisine", "cuisiner", "bricol", "construire", "réparer", "manuel",
                  "bois", "cook", "build"),
        careers=("Chef·fe cuisinier·ère", "Artisan·e", "Menuisier·ère"),
    ),
]


def _overlaps(category_keyword: str, user_keywords: Iterable[str]) -> bool:
    """Either string contains the other; empty keywords never match"""
    for keyword in user_keywords:
        if not keyword:
            continue
        if keyword in category_keyword or category_keyword in keyword:
            return True
    return False


def score_category(
    category: CareerCategory,
    passion_keywords: Sequence[str],
    talent_keywords: Sequence[str],
    need_keywords: Sequence[str],
    monetization_keywords: Sequence[str],
) -> int:
    strong = list(passion_keywords) + list(talent_keywords)
    weak = list(need_keywords) + list(monetization_keywords)
    score = 0
    for category_keyword in category.keywords:
        if _overlaps(category_keyword, strong):
            score += PASSION_TALENT_WEIGHT
        if _overlaps(category_keyword, weak):
            score += NEED_MONETIZATION_WEIGHT
    return score


def suggest_careers(
    passion_keywords: Sequence[str],
    talent_keywords: Sequence[str],
    need_keywords: Sequence[str] = (),
    monetization_keywords: Sequence[str] = (),
) -> List[str]:
    """
    Rank the category table against the four keyword lists.

    Returns:
        Up to 4 career titles: 2 from each of the 3 best categories with a
        positive score, in table order on ties. Empty if nothing scores.
    """
    scored = [
        (score_category(category, passion_keywords, talent_keywords,
                        need_keywords, monetization_keywords), category)
        for category in CAREER_CATEGORIES
    ]
    # sorted() is stable, so equal scores keep declaration order
    ranked = sorted((item for item in scored if item[0] > 0), key=lambda item: -item[0])

    suggestions: List[str] = []
    for _, category in ranked[:MAX_CATEGORIES]:
        suggestions.extend(category.careers[:CAREERS_PER_CATEGORY])
    return suggestions[:MAX_SUGGESTIONS]
