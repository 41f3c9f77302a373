"""Prompt text for story narration and seed generation."""

from __future__ import annotations

from .models import ContentInput, ContentStyle, TextDescription, describe_content_input

NARRATOR_SYSTEM = (
    "You are an expert travel narrator who creates engaging, informative content about locations "
    "for road trip travelers. Your narrations are conversational, educational, and entertaining."
)

STYLE_INSTRUCTIONS = {
    ContentStyle.HISTORICAL: (
        "Focus on historical events, founding stories, significant moments in time, and the people who "
        "shaped this place. Include dates, historical context, and how past events connect to the present."
    ),
    ContentStyle.CULTURAL: (
        "Emphasize cultural significance, notable people, arts, local traditions, festivals, and what makes "
        "the local community unique."
    ),
    ContentStyle.GEOGRAPHICAL: (
        "Highlight geographical features, natural phenomena, environmental aspects, geology, climate, and "
        "how the landscape was formed."
    ),
    ContentStyle.MIXED: (
        "Include a balanced mix of historical facts, cultural significance, and geographical information."
    ),
}


def get_story_prompt(content_input: ContentInput, style: ContentStyle, target_duration: int = 180) -> str:
    minutes = max(1, round(target_duration / 60))
    words = round(target_duration / 60 * 155)

    if isinstance(content_input, TextDescription):
        subject = content_input.description
        context = ""
    else:
        subject = f"{content_input.name}, a {content_input.category.replace('_', ' ')}"
        if content_input.location_description:
            subject += f" in {content_input.location_description}"
        context = f"Additional context: {content_input.description}. " if content_input.description else ""
        context += (
            f"Located at coordinates {content_input.location.latitude}, {content_input.location.longitude}. "
        )

    return f"""Create an engaging {minutes}-minute podcast-style narration about {subject}. {context}{STYLE_INSTRUCTIONS[style]}

The narration should be:
- Approximately {minutes} minutes when spoken (around {words} words)
- Engaging and conversational, suitable for a road trip audience
- Educational but entertaining
- Written in a warm, friendly tone as if speaking to passengers in a car
- Jump straight into the content, without "Welcome to" or "Thank you for listening"

Focus on specific details that make this place unique and memorable for travelers passing through."""


def get_seed_focus_prompt(title: str, summary: str) -> str:
    return f"""The narration must tell this specific story:
TITLE: {title}
SUMMARY: {summary}"""


def get_story_seeds_prompt(content_input: ContentInput) -> str:
    return f"""Generate candidate stories for narrating a point of interest during a road trip. Later, one story will be selected and elaborated into a 3-minute segment.

Give up to 20 summaries of potential stories. Each summary should be a factual paragraph, followed by a descriptive title of less than 10 words that identifies the story. Good topics include surprising facts, events of historical significance, recent events, associations with well-known people, and origin stories of the place.

The stories must be distinct from each other. If there is no information to build a good story idea, respond "no story ideas".

Format each story as:
SUMMARY: [paragraph summary]
TITLE: [descriptive title under 10 words]

The point of interest is: {describe_content_input(content_input)}"""
