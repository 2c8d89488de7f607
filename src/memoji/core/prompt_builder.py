"""Prompt template for the query -> emoji model call.

The model is asked for a JSON object of the shape ``{"output": "<emoji>"}``.
Users may type in Hindi or other languages, so the template tells the model
to translate before picking an emoji.  The query is appended verbatim; no
escaping or trimming is applied.
"""

from __future__ import annotations

PROMPT_TEMPLATE = """
I am making a meme website, and you're the core ai behind it. Your task is to generate good structured response for me. So, basically i ask users "what do you want?", and the user responds. based on the query, i show a meme. But there are some special cases. the user query can be in hindi, please convert it to english if its not in english.

Your output structure: {{ output: string }} json schema
Just output an emoji based on the query

Examples:
1. query: "laptop", response: {{ output: "\U0001f4bb" }}
2. query: "tea", response: {{ output: "\U0001f375" }}
3. query: "coffee", response: {{ output: "☕" }}

ALWAYS OUTPUT EMOJIS as output.

Here's the query: {query}
"""


def build_prompt(query: str) -> str:
    """Embed *query* in the emoji prompt template.

    Args:
        query: Raw user query, used exactly as received.

    Returns:
        The full prompt string sent to the generative model.
    """
    return PROMPT_TEMPLATE.format(query=query)
