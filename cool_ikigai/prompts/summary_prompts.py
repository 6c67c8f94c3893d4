# cool_ikigai/prompts/summary_prompts.py
"""
Templates for the composed Ikigai summary and everything derived from it:
the narrative, the downloadable document and the delivery messages.
"""

# ============================================================================
# NARRATIVE
# ============================================================================

NARRATIVE_DOMAINS = """Vos passions : {passions}
Vos talents : {talents}
Ce dont le monde a besoin : {world_needs}
Ce pour quoi vous pouvez être payé(e) : {monetization}"""

NARRATIVE_THEMES = "Les thèmes qui reviennent dans vos réponses : {themes}."

NARRATIVE_CAREERS = "Quelques pistes de métiers à explorer : {careers}."

NARRATIVE_CLOSING = (
    "Votre Ikigai se trouve à l'intersection de ces quatre dimensions. "
    "Prenez le temps d'y réfléchir et d'explorer les pistes qui vous font vibrer."
)

# ============================================================================
# DOCUMENT
# ============================================================================

DOCUMENT_TITLE = "Mon Ikigai"

DOCUMENT = """# {title}

_Généré le {date}_

## Vos passions

{passions}

## Vos talents

{talents}

## Ce dont le monde a besoin

{world_needs}

## Ce pour quoi vous pouvez être payé(e)

{monetization}

## Votre Ikigai

{narrative}
"""

# ============================================================================
# DELIVERY
# ============================================================================

WHATSAPP = """🌟 VOTRE IKIGAI 🌟

VOS PASSIONS:
{passions}

VOS TALENTS:
{talents}

CE DONT LE MONDE A BESOIN:
{world_needs}

CE POUR QUOI VOUS POUVEZ ÊTRE PAYÉ:
{monetization}

VOTRE IKIGAI (RÉSUMÉ):
{summary}"""

EMAIL_SUBJECT = "Votre Ikigai"

EMAIL_BODY = """Bonjour,

Voici le résumé de votre Ikigai, établi avec Bob.

Vos passions : {passions}
Vos talents : {talents}
Ce dont le monde a besoin : {world_needs}
Ce pour quoi vous pouvez être payé(e) : {monetization}

{summary}

À bientôt !"""
