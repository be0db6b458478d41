# gpt_service.py
import json
import logging
import re

import httpx

from config import Config

logger = logging.getLogger(__name__)

# --- OpenRouter config ---
OPENROUTER_API_KEY = Config.OPENROUTER_API_KEY
OPENROUTER_MODEL = Config.OPENROUTER_MODEL
API_URL = "https://openrouter.ai/api/v1/chat/completions"

# Optional: helps OpenRouter attribute traffic (recommended)
PUBLIC_APP_URL = Config.PUBLIC_APP_URL


def configure(config) -> None:
    """Point the client at the OpenRouter settings of a Flask app config."""
    global OPENROUTER_API_KEY, OPENROUTER_MODEL, PUBLIC_APP_URL
    OPENROUTER_API_KEY = config.get("OPENROUTER_API_KEY")
    OPENROUTER_MODEL = config.get("OPENROUTER_MODEL") or Config.OPENROUTER_MODEL
    PUBLIC_APP_URL = config.get("PUBLIC_APP_URL") or ""


MAX_ADJECTIVES = 15
MIN_ANALYZABLE_LENGTH = 10
FALLBACK_DAILY_PROMPT = "What is something that made you smile today?"

SYSTEM_PROMPT = (
    "You are a warm assistant inside a gratitude journal. "
    "Always answer with a single JSON object and nothing else."
)

SIMILAR_ENTRIES_PROMPT = """You are an AI assistant designed to find journal entries with similar mood scores.

You will be given a current mood score and a list of past entries with their mood scores.
Find the entries with mood scores that are most similar to the current mood score.
Return only the entries that are most similar, and nothing else.

Current Mood Score: {mood_score}

Past Entries:
{entries}

Respond as JSON: {{"similar_entries": [{{"id": "<id>", "text": "<text>"}}]}}"""

ADJECTIVES_PROMPT = """You are a linguistic analyst. I will provide you with a collection of journal entries.
Your task is to identify the top 15 most frequently used adjectives.

Analyze the following text:
---
{text}
---

Instructions:
1. Read through all the provided text.
2. Identify all adjectives (positive, neutral, and negative).
3. Count the occurrences of each adjective.
4. Return the top 15 adjectives, sorted from most frequent to least frequent.

Respond as JSON: {{"adjectives": [{{"adjective": "<word>", "count": <n>}}]}}"""

DAILY_PROMPT_PROMPT = """You are a gratitude expert. Generate a unique and thoughtful prompt to inspire
a user's daily gratitude entry. The prompt should encourage reflection on different aspects of life
and avoid repetition. Do not start the prompt with "Think about".

Example Prompts:
* What is a skill you are grateful to have learned?
* What is a place that brings you comfort and joy?
* What is a small act of kindness you witnessed or experienced today?
* What is a challenge you overcame recently, and what did you learn from it?
* What is a beautiful thing you saw in nature today?

Respond as JSON: {"prompt": "<one prompt>"}"""


class LLMError(Exception):
    """Raised internally when the LLM call or its output is unusable."""


def _strip_code_fence(content: str) -> str:
    match = re.search(r"```(?:json)?\s*(.*?)```", content, re.DOTALL)
    return match.group(1).strip() if match else content.strip()


def _chat_json(user_prompt: str, client: httpx.Client = None, max_tokens: int = 600) -> dict:
    """Send one chat completion and parse the reply as a JSON object."""
    if not OPENROUTER_API_KEY:
        raise LLMError("OPENROUTER_API_KEY is not set")

    headers = {
        "Authorization": f"Bearer {OPENROUTER_API_KEY}",
        "Content-Type": "application/json",
        "HTTP-Referer": PUBLIC_APP_URL,
        "X-Title": "Gratitude Journal",
    }

    body = {
        "model": OPENROUTER_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": max_tokens,
        "temperature": 0.7,
    }

    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=30)
    try:
        resp = client.post(API_URL, headers=headers, json=body)
        logger.debug("LLM status: %s", resp.status_code)
        resp.raise_for_status()
    finally:
        if own_client:
            client.close()

    try:
        data = resp.json()
        content = data["choices"][0]["message"]["content"]
        parsed = json.loads(_strip_code_fence(content))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise LLMError(f"Malformed LLM response: {e}") from e
    if not isinstance(parsed, dict):
        raise LLMError("LLM response is not a JSON object")
    return parsed


def find_similar_mood_entries(current_mood_score: int, past_entries, client: httpx.Client = None):
    """
    Ask the LLM which past entries match the current mood.

    ``past_entries`` is a list of {"id", "mood_score", "text"} dicts. Returns
    a list of {"id", "text"}; only ids from the input are kept. Any failure
    yields an empty list.
    """
    if not past_entries:
        return []

    known = {str(e["id"]): e for e in past_entries}
    lines = [
        f"Id: {e['id']}\nMood Score: {e['mood_score']}\nText: {e['text']}"
        for e in past_entries
    ]
    user_prompt = SIMILAR_ENTRIES_PROMPT.format(
        mood_score=current_mood_score,
        entries="\n\n".join(lines),
    )

    try:
        data = _chat_json(user_prompt, client=client, max_tokens=1200)
        items = data.get("similar_entries") or []
        if not isinstance(items, list):
            raise LLMError("similar_entries is not a list")
        similar = []
        for item in items:
            entry_id = str(item.get("id", ""))
            if entry_id in known:
                similar.append({"id": entry_id, "text": known[entry_id]["text"]})
        return similar
    except httpx.HTTPStatusError as e:
        logger.error("Similar-entries HTTP error: %s", e.response.text[:300])
    except (httpx.HTTPError, LLMError, AttributeError, TypeError, ValueError) as e:
        logger.error("Similar-entries LLM error: %s", e)
    return []


def analyze_adjectives(texts, client: httpx.Client = None):
    """
    Extract the most frequent adjectives from a batch of entry texts.

    Returns at most 15 {"adjective", "count"} dicts, most frequent first.
    Short texts are dropped before the call; failures yield an empty list.
    """
    usable = [t for t in texts if t and len(t.strip()) > MIN_ANALYZABLE_LENGTH]
    if not usable:
        return []

    user_prompt = ADJECTIVES_PROMPT.format(text="\n\n".join(usable))

    try:
        data = _chat_json(user_prompt, client=client)
        adjectives = []
        for item in data.get("adjectives") or []:
            word = str(item.get("adjective", "")).strip()
            if not word:
                continue
            adjectives.append({"adjective": word, "count": max(0, int(item.get("count", 0)))})
        adjectives.sort(key=lambda a: a["count"], reverse=True)
        return adjectives[:MAX_ADJECTIVES]
    except httpx.HTTPStatusError as e:
        logger.error("Adjective analysis HTTP error: %s", e.response.text[:300])
    except (httpx.HTTPError, LLMError, AttributeError, TypeError, ValueError) as e:
        logger.error("Adjective analysis LLM error: %s", e)
    return []


def generate_daily_prompt(client: httpx.Client = None) -> str:
    """A fresh gratitude prompt, or a safe generic one if the LLM is unavailable."""
    try:
        data = _chat_json(DAILY_PROMPT_PROMPT, client=client, max_tokens=120)
        prompt = str(data.get("prompt") or "").strip()
        if prompt:
            return prompt
    except httpx.HTTPStatusError as e:
        logger.error("Daily prompt HTTP error: %s", e.response.text[:300])
    except (httpx.HTTPError, LLMError, TypeError, ValueError) as e:
        logger.error("Daily prompt LLM error: %s", e)
    return FALLBACK_DAILY_PROMPT
