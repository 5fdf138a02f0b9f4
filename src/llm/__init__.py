"""This package contain modules related to large language models (LLMs).
prompts.py : Contain instruction prompts
openai.py : Contain OpenAI-compatible client initialization
"""

from .prompts import _genre_classification_prompt, _book_description_input
from .openai import init_llm_openai


__all__ = ["_genre_classification_prompt", "_book_description_input", "init_llm_openai"]
