"""
LLM suggestions of interest tags a user could add to their profile.
"""

import json
from typing import Iterable, List

from campus_feed.constants import (
    FALLBACK_INTEREST_SUGGESTIONS,
    MAX_INTEREST_SUGGESTIONS,
    MAX_INTEREST_TAG_LENGTH,
    PROMPTS_DIR,
)
from campus_feed.models import ContentItem, UserProfile
from llm.llm_util import GatewayError, InferenceGateway, parse_json_response
from util.logging_util import setup_logger

logger = setup_logger(__name__)

SUGGEST_INTERESTS_TEMPLATE = PROMPTS_DIR / "suggest_interests.jinja2"


def suggest_interests(
    gateway: InferenceGateway,
    profile: UserProfile,
    registered_items: Iterable[ContentItem],
) -> List[str]:
    """
    Suggest new interest tags for a user.

    Returns up to MAX_INTEREST_SUGGESTIONS short tags the user does not have
    yet, or a static list if the call fails.
    """
    context = {
        "student_info": {
            "program": profile.study_program,
            "year": profile.year_on_study_program,
            "university": profile.university,
        },
        "current_interests": list(profile.interests),
        "past_activities": [item.title for item in registered_items],
    }

    response = ""
    try:
        response = gateway.complete(
            SUGGEST_INTERESTS_TEMPLATE,
            {
                "profile": json.dumps(context, ensure_ascii=False),
                "max_length": MAX_INTEREST_TAG_LENGTH,
            },
        )
        suggestions = parse_json_response(response)
    except (GatewayError, json.JSONDecodeError) as e:
        logger.error(f"Error generating interest suggestions: {e}")
        return list(FALLBACK_INTEREST_SUGGESTIONS)

    if not isinstance(suggestions, list):
        logger.error(f"Suggestion response is not a list: {response}")
        return list(FALLBACK_INTEREST_SUGGESTIONS)

    current = {tag.lower() for tag in profile.interests}
    result = []
    for suggestion in suggestions:
        if not isinstance(suggestion, str):
            continue
        suggestion = suggestion.strip()
        if not suggestion or len(suggestion) > MAX_INTEREST_TAG_LENGTH or suggestion.lower() in current:
            continue
        if suggestion not in result:
            result.append(suggestion)
    return result[:MAX_INTEREST_SUGGESTIONS]
