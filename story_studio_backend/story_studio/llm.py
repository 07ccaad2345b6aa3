import os, json, logging
from .models import AdvancedOptions
from .prompts import (SYSTEM_PROMPT, USER_PROMPT_TEMPLATE, STORY_SCHEMA, GENRE_CLAUSE,
                      AUDIENCE_CLAUSE, TONE_CLAUSE, INCLUDE_CLAUSE, AVOID_CLAUSE)
from .settings import OPENAI_STORY_MODEL

logger = logging.getLogger(__name__)

_client = None

def _get_client():
    global _client
    if _client is None:
        from openai import OpenAI
        api_key = os.getenv("OPENAI_API_KEY", "")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is not set; please configure your .env")
        _client = OpenAI(api_key=api_key)
    return _client

def build_system_prompt(options: AdvancedOptions) -> str:
    clauses = [SYSTEM_PROMPT]
    for template, value in (
        (GENRE_CLAUSE, options.genre),
        (AUDIENCE_CLAUSE, options.audience),
        (TONE_CLAUSE, options.tone),
        (INCLUDE_CLAUSE, options.include),
        (AVOID_CLAUSE, options.avoid),
    ):
        if value.strip():
            clauses.append(template.format(value=value.strip()))
    return "\n".join(clauses)

def build_user_prompt(topic: str, number_of_scenes: int) -> str:
    return USER_PROMPT_TEMPLATE.format(
        topic=topic,
        number_of_scenes=number_of_scenes,
        schema=STORY_SCHEMA,
    )

def get_story_scenes(topic: str, number_of_scenes: int, options: AdvancedOptions) -> list:
    logger.info("Calling OpenAI API to generate story scenes")
    messages = [
        {"role": "system", "content": build_system_prompt(options)},
        {"role": "user", "content": build_user_prompt(topic, number_of_scenes)},
    ]
    try:
        client = _get_client()
        resp = client.chat.completions.create(
            model=OPENAI_STORY_MODEL,
            messages=messages,
            temperature=0.8,
            response_format={"type": "json_object"},
        )
        content = resp.choices[0].message.content
        logger.info("Successfully received response from OpenAI")
        data = json.loads(content)
    except Exception as e:
        logger.error(f"OpenAI API call failed: {str(e)}")
        raise
    # JSON mode always yields an object; the scene list sits under "scenes"
    scenes = data.get("scenes") if isinstance(data, dict) else data
    return scenes if isinstance(scenes, list) else []
