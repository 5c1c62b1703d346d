"""OpenAI client construction."""

from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv
from openai import OpenAI

__all__ = ["API_KEY_ENV", "load_client"]

API_KEY_ENV = "OPENAI_API_KEY"


def load_client(*, timeout: float | None = None) -> Any:
    """Build an OpenAI client from ``OPENAI_API_KEY`` (``.env`` honoured).

    SDK retries are disabled: a failed request surfaces immediately and the
    user decides whether to try again.
    """
    load_dotenv()
    api_key = os.getenv(API_KEY_ENV)
    if not api_key:
        raise RuntimeError(
            f"{API_KEY_ENV} not found in environment. Set it or add to .env"
        )
    if timeout is None:
        return OpenAI(api_key=api_key, max_retries=0)
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
