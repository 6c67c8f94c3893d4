# cool_ikigai/prompts/common_prompts.py
"""
Common prompts and patterns for Cool Ikigai.

Quick-reply option labels plus the word lists used to classify short
answers. Only the string constants are registered as prompts; the lists
are read directly by the validation service.
"""

# ============================================================================
# OPTION LABELS
# ============================================================================

OPTION_YES = "Oui"
OPTION_NO = "Non"
OPTION_NOT_SURE = "Pas sûr"
OPTION_START = "Commencer"
OPTION_CONTINUE = "Continuer"

# ============================================================================
# YES/NO/UNCERTAIN PATTERNS
# ============================================================================

# Exact matches, compared lower-cased
AFFIRMATIVE_PATTERNS = [
    "oui",
    "yes",
]

NEGATIVE_PATTERNS = [
    "non",
    "no",
]

# Substring matches
UNCERTAIN_FRAGMENTS = [
    "sûr",
    "sure",
]

# Exact matches
UNCERTAIN_PATTERNS = [
    "pas sûr",
    "not sure",
]

# ============================================================================
# ANSWER CONTENT PATTERNS
# ============================================================================

DONT_KNOW_PATTERNS = [
    "je ne sais pas",
    "je sais pas",
    "j'sais pas",
    "sais pas",
    "aucune idée",
    "pas d'idée",
    "je ne vois pas",
    "i don't know",
    "i dont know",
    "no idea",
    "not sure what",
]

RESTART_COMMANDS = [
    "recommencer",
    "on recommence",
    "start over",
    "restart",
]
