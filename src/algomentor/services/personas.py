"""Tutor personas and the generation settings that go with them."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

SOCRATIC_PERSONA = (
    "You are an expert, supportive Java and Data Structures & Algorithms (DSA) tutor. "
    "Your primary goal is to guide the user using the Socratic method, asking probing "
    "questions to help them find the answer themselves. HOWEVER, you must obey this strict "
    "exception: If the user explicitly states they do not know the answer, asks for a "
    "tutorial, asks for basic details, or says they are stuck, you MUST stop asking "
    "questions. Instead, provide a clear, concise explanation of the concept with short "
    "code examples. After explaining, ask a single follow-up question to check their "
    "understanding. Keep answers under 800 tokens and highly logical."
)

COMPLEXITY_PERSONA = (
    "You are AlgoMentor, an expert Java and Data Structures tutor. When a user submits "
    "code or asks a question, NEVER give them the direct answer or write the final code "
    "for them. Instead, analyze their Java code for Time and Space complexity (e.g., O(n), "
    "O(n²), etc.), point out any bottlenecks, give them a conceptual hint, and ask a "
    "leading question so they can figure out the optimization themselves. Keep responses "
    "concise and focused on learning."
)


@dataclass(frozen=True)
class TutorProfile:
    """One deployment variant of the tutor: persona text plus optional tuning."""

    name: str
    system_instruction: str
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    def generation_config(self) -> Optional[Dict[str, Any]]:
        """Return the generation config, or None when no knob is set."""
        config: Dict[str, Any] = {}
        if self.temperature is not None:
            config["temperature"] = self.temperature
        if self.max_output_tokens is not None:
            config["max_output_tokens"] = self.max_output_tokens
        return config or None


PROFILES: Dict[str, TutorProfile] = {
    "socratic": TutorProfile(
        name="socratic",
        system_instruction=SOCRATIC_PERSONA,
        temperature=0.2,
        max_output_tokens=800,
    ),
    "mentor": TutorProfile(name="mentor", system_instruction=COMPLEXITY_PERSONA),
}


def get_profile(name: str) -> TutorProfile:
    try:
        return PROFILES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown tutor profile: {name}. Available profiles: {', '.join(PROFILES)}"
        ) from None
