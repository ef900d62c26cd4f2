"""
Prompt rendering of a ContactContext.
"""

from typing import List, Optional

from secondme.retrieval.models import ContactContext, RankedResult


def _describe_person(person: RankedResult) -> str:
    desc = person.name
    if person.occupation:
        desc += f" ({person.occupation})"
    if person.company:
        desc += f" at {person.company}"
    if person.notes:
        desc += f" - {person.notes}"
    return f"- {desc}"


def _describe_topic(topic: RankedResult) -> str:
    desc = topic.name
    if topic.category:
        desc += f" [{topic.category}]"
    if topic.times and topic.times > 1:
        desc += f" (mentioned {topic.times}x)"
    return f"- {desc}"


def _describe_event(event: RankedResult) -> str:
    desc = event.name
    if event.date:
        desc += f" on {event.date}"
    if event.description:
        desc += f": {event.description}"
    return f"- {desc}"


def format_context_for_prompt(context: ContactContext) -> Optional[str]:
    """
    Render the context as markdown sections.

    Returns:
        The rendered text, or None when the context is empty so the
        caller can omit the section entirely
    """
    parts: List[str] = []

    if context.people:
        lines = "\n".join(_describe_person(p) for p in context.people)
        parts.append(f"**People mentioned:**\n{lines}")

    if context.topics:
        lines = "\n".join(_describe_topic(t) for t in context.topics)
        parts.append(f"**Relevant topics:**\n{lines}")

    if context.events:
        lines = "\n".join(_describe_event(e) for e in context.events)
        parts.append(f"**Recent events:**\n{lines}")

    return "\n\n".join(parts) if parts else None
