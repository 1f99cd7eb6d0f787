"""Code submission formatting and editor defaults."""

from typing import List

DSA_TOPICS: List[str] = [
    "Arrays",
    "Strings",
    "HashMaps",
    "LinkedLists",
    "Stacks",
    "Queues",
    "Trees",
    "Graphs",
    "Sorting",
    "Searching",
    "Dynamic Programming",
    "Recursion",
    "Backtracking",
]

DEFAULT_TOPIC = "Arrays"

STARTER_CODE = (
    "// Write your Java code here\n"
    "public class Solution {\n"
    "    public static void main(String[] args) {\n"
    "        \n"
    "    }\n"
    "}"
)


def format_code_submission(code: str, topic: str, language: str = "java") -> str:
    """Render a code submission as the text of a user message.

    The topic and code appear verbatim; a fence inside ``code`` is not escaped.
    """
    return f"I've submitted code for the topic: {topic}\n\n```{language}\n{code}\n```"
