# cool_ikigai/prompts/bob_prompts.py
"""
Everything Bob says during the Ikigai dialogue.

Constant names become prompt keys: BOB prefix + lower-cased name with
underscores turned into dots, e.g. PASSIONS_QUESTION -> "bob.passions.question".
"""

# ============================================================================
# INTRODUCTION & READINESS
# ============================================================================

INTRODUCTION = (
    "Bonjour, je suis Bob ! Ensemble, nous allons découvrir votre Ikigai, "
    "votre raison d'être. Je vais vous poser quelques questions sur ce que vous aimez, "
    "ce pour quoi vous êtes doué(e), ce dont le monde a besoin et ce pour quoi "
    "vous pourriez être payé(e). Cliquez sur « Commencer » quand vous voulez."
)

READY_QUESTION = "Êtes-vous prêt(e) à commencer l'exercice ?"

READY_CLARIFY = (
    "Pas de souci, c'est normal d'hésiter ! L'exercice dure une dizaine de minutes "
    "et il n'y a pas de mauvaise réponse. Voulez-vous essayer ?"
)

NOT_READY_GOODBYE = (
    "D'accord, pas de problème. Revenez quand vous voulez, je serai là. À bientôt !"
)

ASK_YES_NO = "Je n'ai pas bien compris. Pouvez-vous répondre par oui ou par non ?"

RESTART = "Très bien, on recommence depuis le début !"

REPHRASE = "Pas de souci, reformulons ensemble. {question}"

# ============================================================================
# PASSIONS
# ============================================================================

PASSIONS_QUESTION = (
    "Commençons par vos passions. Qu'est-ce que vous aimez faire ? "
    "Qu'est-ce qui vous fait perdre la notion du temps ?"
)

PASSIONS_UNKNOWN = (
    "Ce n'est pas toujours facile d'y répondre ! Pensez à ce que vous faisiez enfant "
    "pendant des heures, ou à ce que vous feriez un dimanche sans contrainte. "
    "Qu'est-ce qui vous vient à l'esprit ?"
)

PASSIONS_ELABORATE = "Pouvez-vous m'en dire un peu plus sur ce que vous aimez faire ?"

PASSIONS_ENCOURAGE = (
    "Intéressant ! Essayez de me décrire une activité précise, par exemple "
    "« j'aime la musique » ou « j'adore cuisiner pour mes amis »."
)

PASSIONS_VALIDATE = "Si je comprends bien, vous êtes passionné(e) par : {summary}. C'est bien ça ?"

# ============================================================================
# TALENTS
# ============================================================================

TALENTS_QUESTION = (
    "Parlons maintenant de vos talents. Dans quoi êtes-vous doué(e) ? "
    "Pour quoi vos proches viennent-ils vous demander de l'aide ?"
)

TALENTS_UNKNOWN = (
    "On sous-estime souvent ses talents ! Qu'est-ce que vos amis ou collègues "
    "vous félicitent de bien faire ?"
)

TALENTS_ELABORATE = "Pouvez-vous développer un peu ? Donnez-moi un exemple concret de ce que vous savez bien faire."

TALENTS_ENCOURAGE = (
    "Essayons autrement : complétez la phrase « je suis doué(e) pour... » "
    "avec la première idée qui vous vient."
)

TALENTS_VALIDATE = "Vos talents, si j'ai bien compris : {summary}. Est-ce correct ?"

TALENTS_CONNECTION = (
    "Je remarque un lien entre vos passions et vos talents autour de : {themes}. "
    "C'est un excellent point de départ !"
)

# ============================================================================
# WORLD NEEDS
# ============================================================================

WORLD_NEEDS_QUESTION = (
    "Passons à ce dont le monde a besoin. Quelles causes ou quels problèmes "
    "vous touchent ? Qu'aimeriez-vous améliorer autour de vous ?"
)

WORLD_NEEDS_ENCOURAGE = (
    "Pensez à un problème que vous voyez autour de vous et que vous aimeriez résoudre. "
    "Par exemple : « le monde a besoin de plus d'éducation » ou « je veux protéger la nature »."
)

WORLD_NEEDS_VALIDATE = "Selon vous, le monde a besoin de : {summary}. C'est bien ça ?"

# ============================================================================
# MONETIZATION
# ============================================================================

MONETIZATION_QUESTION = (
    "Dernière dimension : pour quoi pourriez-vous être payé(e) ? "
    "Quels services ou compétences les gens seraient-ils prêts à vous rémunérer ?"
)

MONETIZATION_ENCOURAGE = (
    "Pensez aux métiers ou aux services liés à ce que vous m'avez dit. "
    "Pour quoi pourriez-vous être payé(e) ?"
)

MONETIZATION_CAREER_SUGGESTION = (
    "D'après vos réponses, voici quelques pistes : {careers}. "
    "L'une d'elles vous parle-t-elle ? Pour quoi pourriez-vous être payé(e) ?"
)

MONETIZATION_VALIDATE = "Vous pourriez être payé(e) pour : {summary}. Est-ce que cela vous correspond ?"

# ============================================================================
# SUMMARY & DELIVERY
# ============================================================================

SUMMARY_INTRO = "Bravo, nous avons fait le tour ! Voici votre Ikigai :\n\n{narrative}"

DELIVERY_QUESTION = "Souhaitez-vous recevoir votre Ikigai par email ou WhatsApp ?"

DELIVERY_ACCEPTED = "Parfait ! J'ai juste besoin de vos coordonnées. On continue ?"

DELIVERY_DECLINED = (
    "Pas de souci, vous pouvez télécharger votre Ikigai à tout moment "
    "avec le bouton « Télécharger en PDF ». On continue ?"
)

CONTACT_QUESTION = "Quelle est votre adresse email ou votre numéro WhatsApp ?"

CONTACT_THANKS = "Merci ! Votre Ikigai sera envoyé à {contact}."

CONTACT_INVALID = (
    "Je n'ai pas reconnu « {contact} » comme une adresse email ou un numéro WhatsApp, "
    "je ne peux donc pas vous envoyer votre Ikigai. Vous pouvez le télécharger "
    "avec le bouton « Télécharger en PDF »."
)

# ============================================================================
# COACHING & CONCLUSION
# ============================================================================

COACHING_QUESTION = (
    "Souhaitez-vous aller plus loin avec une séance de coaching personnalisée "
    "pour transformer votre Ikigai en plan d'action ?"
)

COACHING_SCHEDULE = (
    "Excellent ! Indiquez-moi votre nom et votre adresse email, "
    "et je vous envoie un lien pour réserver votre séance."
)

COACHING_CONFIRMATION = (
    "Je comprends. Une séance de coaching permet de clarifier vos prochaines étapes, "
    "sans engagement. Vous pourrez toujours y revenir plus tard. Un dernier mot avant de conclure ?"
)

CONCLUSION = (
    "Merci pour ce bel échange ! Gardez votre Ikigai près de vous "
    "et n'hésitez pas à revenir me voir. Au revoir !"
)

# ============================================================================
# FREE CHAT & FALLBACKS
# ============================================================================

CHAT_SYSTEM = (
    "Tu es Bob, un coach bienveillant spécialisé dans l'Ikigai. Tu réponds en français, "
    "avec des phrases courtes et chaleureuses adaptées à l'oral. "
    "Si la personne le souhaite, propose-lui de faire l'exercice Ikigai."
)

CHAT_FALLBACK = (
    "Désolé, je n'arrive pas à répondre pour le moment. "
    "Voulez-vous lancer l'exercice Ikigai en attendant ?"
)

DOCUMENT_ERROR = (
    "Désolé, je n'ai pas réussi à générer le document. "
    "Votre Ikigai reste affiché dans la conversation, vous pouvez réessayer."
)

DOCUMENT_NOT_READY = "Votre Ikigai n'est pas encore prêt. Terminons d'abord l'exercice !"

DELIVERY_FAILED = (
    "Désolé, l'envoi de votre Ikigai à {contact} n'a pas abouti. "
    "Vous pouvez le télécharger avec le bouton « Télécharger en PDF »."
)

COACHING_FAILED = (
    "Désolé, je n'ai pas pu réserver votre séance de coaching. "
    "Il me faut votre nom et une adresse email valide, vous pourrez réessayer plus tard."
)
