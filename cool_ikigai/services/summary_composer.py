# cool_ikigai/services/summary_composer.py
"""
Builds the final Ikigai narrative from the four domain summaries.
"""
from collections import Counter
from typing import List, Optional

from cool_ikigai.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from cool_ikigai.models.flow_models import Domain, IkigaiSummary
from cool_ikigai.services.career_matcher import suggest_careers
from cool_ikigai.services.text_analyzer import analyze

MIN_DOMAINS_FOR_THEME = 2


def find_common_themes(keyword_lists: List[List[str]]) -> List[str]:
    """Keywords that appear in at least two domains, first-seen order"""
    domain_counts = Counter()
    ordered: List[str] = []
    for keywords in keyword_lists:
        for keyword in dict.fromkeys(keywords):
            domain_counts[keyword] += 1
            if keyword not in ordered:
                ordered.append(keyword)
    return [keyword for keyword in ordered if domain_counts[keyword] >= MIN_DOMAINS_FOR_THEME]


def compose(
    passions: str,
    talents: str,
    world_needs: str,
    monetization: str,
    prompt_manager: Optional[PromptManager] = None,
) -> IkigaiSummary:
    """
    Compose the cross-domain summary.

    Args:
        passions: DomainSummary for passions
        talents: DomainSummary for talents
        world_needs: DomainSummary for world needs
        monetization: DomainSummary for monetization
        prompt_manager: Source of the narrative templates

    Returns:
        IkigaiSummary whose narrative contains all four domain strings
    """
    prompts = prompt_manager or get_prompt_manager()

    keyword_lists = [
        analyze(passions, Domain.PASSIONS).keywords,
        analyze(talents, Domain.TALENTS).keywords,
        analyze(world_needs, Domain.WORLD_NEEDS).keywords,
        analyze(monetization, Domain.MONETIZATION).keywords,
    ]
    themes = find_common_themes(keyword_lists)
    careers = suggest_careers(*keyword_lists)

    parts = [prompts.get_prompt(
        PromptType.SUMMARY_NARRATIVE_DOMAINS,
        passions=passions,
        talents=talents,
        world_needs=world_needs,
        monetization=monetization,
    )]
    if themes:
        parts.append(prompts.get_prompt(PromptType.SUMMARY_NARRATIVE_THEMES, themes=", ".join(themes)))
    if careers:
        parts.append(prompts.get_prompt(PromptType.SUMMARY_NARRATIVE_CAREERS, careers=", ".join(careers)))
    parts.append(prompts.get_prompt(PromptType.SUMMARY_NARRATIVE_CLOSING))

    return IkigaiSummary(
        passions=passions,
        talents=talents,
        world_needs=world_needs,
        monetization=monetization,
        common_themes=themes,
        careers=careers,
        narrative="\n\n".join(parts),
    )
