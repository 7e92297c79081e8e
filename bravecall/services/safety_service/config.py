"""Safety Service configuration: pre-filter keywords and redirection lines."""
from dataclasses import dataclass
from typing import FrozenSet, Tuple


@dataclass(frozen=True)
class SafetyConfig:
    """Configuration for safety checking behavior."""

    # Version tracking for logs and stored verdicts
    keyword_version: str = "2026.10.01"


# Cheap pre-filter: any case-insensitive substring hit sends the message
# to the safety model. Not a verdict on its own.
HARMFUL_KEYWORDS: FrozenSet[str] = frozenset({
    "kill",
    "die",
    "suicide",
    "hurt myself",
    "hate myself",
    "hate you",
    "stupid",
    "dumb",
})

# Generic on purpose: never echoes the unsafe content back to the child
REDIRECTION_MESSAGES: Tuple[str, ...] = (
    "Let's talk about something happy and positive instead! What's your favorite thing to do for fun?",
    "I'd rather chat about things that make you smile! What made you laugh today?",
    "How about we talk about something cheerful? Do you have a favorite game or book?",
    "Let's focus on positive things! Tell me about something you're proud of!",
    "I'm here to chat about fun and friendly topics! What's something cool you learned recently?",
)

SYSTEM_ERROR_CONCERN = "Unable to verify safety due to system error"
