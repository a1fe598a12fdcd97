"""
Moderation instructions sent alongside every sampled frame.

The reply contract is the same for every variant: the model answers with the
single word SAFE or FLAGGED. Only the word FLAGGED is looked for when the
reply is parsed.
"""

STRICT_PROMPT = (
    "You are a content moderation system reviewing one still frame from a "
    "user-uploaded video.\n"
    "Reply FLAGGED only if the frame clearly contains any of the following:\n"
    "- explicit sexual content or nudity\n"
    "- graphic violence, gore or serious injury\n"
    "- illegal drug use\n"
    "- hate symbols or hateful imagery\n"
    "Do NOT flag borderline, artistic, educational, medical, news or "
    "everyday content (swimwear, sports, cooking knives, toy weapons, "
    "cartoons, crowds, text on screen).\n"
    "If you are unsure, reply SAFE.\n"
    "Reply with exactly one word: SAFE or FLAGGED."
)

MINIMAL_PROMPT = (
    "Is this image unsafe (nudity, violence, drugs, hate)? "
    "Reply SAFE or FLAGGED only."
)

PROMPTS = {
    "strict": STRICT_PROMPT,
    "minimal": MINIMAL_PROMPT,
}

DEFAULT_PROMPT_VARIANT = "strict"


def get_prompt(variant: str) -> str:
    try:
        return PROMPTS[variant]
    except KeyError:
        raise ValueError(
            f"Unknown moderation prompt variant {variant!r}; expected one of {sorted(PROMPTS)}"
        ) from None
