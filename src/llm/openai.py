import logging
import os
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI


def init_llm_openai(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_s: float = 15.0,
) -> OpenAI | None:
    """
    Initialize an OpenAI-compatible LLM client.

    OPENAI_BASE_URL points the client at a compatible gateway such as
    OpenRouter; it defaults to the OpenAI API.

    Returns:
        OpenAI client instance, or None when no API key is configured.
    """
    logger = logging.getLogger("classifier")
    try:
        load_dotenv()
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        base_url = base_url or os.environ.get("OPENAI_BASE_URL") or None
        if not api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables.")
        return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout_s)
    except ValueError as e:
        logger.warning(f"Environment configuration error: {e}")
        return None
    except (OSError, IOError) as e:
        logger.warning(f"Failed to load environment file: {e}")
        return None
